from __future__ import annotations

import pytest

from inkwell.document.markup import parse_markup
from inkwell.document.model import Document, InsertText
from inkwell.engine.positions import PositionMapper
from inkwell.errors import OutOfRange

MIXED = (
    "<h2>Title</h2>"
    "<p>The <b>cat</b> sat</p>"
    '<div data-page-break="true" class="page-break"></div>'
    "<p></p>"
    "<p>end</p>"
)


def _doc(markup: str) -> Document:
    return Document(parse_markup(markup))


def test_flattened_text_concatenates_leaves_without_separators() -> None:
    mapper = PositionMapper(_doc(MIXED))

    assert mapper.text == "TitleThe cat satend"
    assert mapper.length == 19


def test_round_trip_for_every_offset() -> None:
    mapper = PositionMapper(_doc(MIXED))

    for offset in range(mapper.length + 1):
        assert mapper.position_to_offset(mapper.offset_to_position(offset)) == offset


def test_round_trip_with_backward_association() -> None:
    mapper = PositionMapper(_doc(MIXED))

    for offset in range(mapper.length + 1):
        assert mapper.position_to_offset(mapper.offset_to_position(offset, assoc=-1)) == offset


def test_offsets_inside_leaves() -> None:
    mapper = PositionMapper(_doc(MIXED))

    assert mapper.offset_to_position(0) == 1
    # "cat" starts at offset 9 and sits in its own bold run.
    assert mapper.offset_to_position(9) == 12
    assert mapper.offset_to_position(mapper.length) == 27


def test_block_boundary_resolves_to_next_leaf() -> None:
    mapper = PositionMapper(_doc(MIXED))

    # Offset 5 is the end of "Title" and the start of "The".
    assert mapper.offset_to_position(5) == 8
    assert mapper.offset_to_position(5, assoc=-1) == 6


def test_positions_between_leaves_snap_forward() -> None:
    mapper = PositionMapper(_doc(MIXED))

    assert mapper.position_to_offset(0) == 0
    # The page break and the empty paragraph map to the start of "end".
    assert mapper.position_to_offset(20) == 16
    assert mapper.position_to_offset(22) == 16


def test_out_of_range_offsets_and_positions() -> None:
    doc = _doc(MIXED)
    mapper = PositionMapper(doc)

    with pytest.raises(OutOfRange):
        mapper.offset_to_position(-1)
    with pytest.raises(OutOfRange):
        mapper.offset_to_position(mapper.length + 1)
    with pytest.raises(OutOfRange):
        mapper.position_to_offset(doc.size + 1)


def test_mapper_refuses_use_after_mutation() -> None:
    doc = _doc("<p>abc</p>")
    mapper = PositionMapper(doc)
    doc.transact([InsertText(2, "x")])

    with pytest.raises(OutOfRange):
        mapper.offset_to_position(0)
    assert PositionMapper(doc).text == "axbc"


def test_empty_document() -> None:
    mapper = PositionMapper(Document())

    assert mapper.length == 0
    assert mapper.offset_to_position(0) == 0
    assert mapper.position_to_offset(0) == 0
