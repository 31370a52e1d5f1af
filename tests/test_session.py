from __future__ import annotations

from pathlib import Path

from inkwell.document.marks import Bold
from inkwell.document.model import DeleteRange
from inkwell.session import EditorSession


def _marker(number: int) -> str:
    return f'<sup data-footnote="{number}">{number}</sup>'


def _note(number: int, body: str) -> str:
    return f'<p class="footnote-text" data-footnote="{number}"><sup>{number}</sup> {body}</p>'


# ---------------------------------------------------------------------------
# find
# ---------------------------------------------------------------------------


def test_find_selects_first_match_and_cycles() -> None:
    session = EditorSession("<p>cat dog cat</p>")

    status = session.find("cat")
    assert (status.title, status.description) == ("Search Results", "Found 2 matches")
    assert session.document.selection == (1, 4)

    assert session.find_next().description == "2 of 2"
    assert session.document.selection == (9, 12)
    assert session.find_next().description == "1 of 2"
    assert session.find_previous().description == "2 of 2"


def test_find_without_matches() -> None:
    session = EditorSession("<p>dog</p>")

    assert session.find("cat").description == "No matches found"
    assert session.find_next().description == "No matches found"


def test_find_reports_invalid_expression() -> None:
    status = EditorSession("<p>dog</p>").find("([")

    assert not status.ok
    assert status.title == "Invalid Search"


def test_navigation_rebuilds_matches_after_edit() -> None:
    session = EditorSession("<p>cat cat cat</p>")
    session.find("cat")

    session.document.transact([DeleteRange(1, 5)])

    assert session.find_next().description == "2 of 2"
    assert session.document.text_between(*session.document.selection) == "cat"


# ---------------------------------------------------------------------------
# replace
# ---------------------------------------------------------------------------


def test_replace_all_reapplying_style() -> None:
    session = EditorSession("<p>The <b>cat</b> sat, the cat ran</p>")

    status = session.replace_all("cat", "dog", mode="reapply-style")

    assert status.title == "Replace Complete"
    assert status.description == 'Replaced 2 instance(s) of "cat" with "dog"'
    assert session.markup == "<p>The <b>dog</b> sat, the <b>dog</b> ran</p>"
    assert session.search is None


def test_replace_all_notes_missing_style() -> None:
    session = EditorSession("<p>cat cat</p>")

    status = session.replace_all("cat", "dog", mode="reapply-style")

    assert status.ok
    assert "no style applied" in status.description


def test_replace_all_without_matches() -> None:
    session = EditorSession("<p>The cat sat</p>")

    status = session.replace_all("dog", "cat")

    assert status.ok
    assert status.title == "No Matches"
    assert session.markup == "<p>The cat sat</p>"


def test_replace_all_reports_invalid_expression() -> None:
    status = EditorSession("<p>text</p>").replace_all("(", "x")

    assert not status.ok
    assert status.title == "Invalid Search"


def test_replacing_a_marker_renumbers_remaining_footnotes() -> None:
    session = EditorSession(
        f"<p>a{_marker(1)} b{_marker(2)}</p>" + _note(1, "one") + _note(2, "two")
    )

    session.replace_all("a1", "", mode="reapply-style")

    assert session.markup == f"<p> b{_marker(1)}</p>" + _note(1, "two")
    assert session.footnotes.next_number == 2


def test_apply_style_to_all() -> None:
    session = EditorSession("<p>cat and cat</p>")

    status = session.apply_style_to_all("cat", [Bold()])

    assert status.title == "Style Applied"
    assert session.markup == "<p><b>cat</b> and <b>cat</b></p>"


# ---------------------------------------------------------------------------
# footnotes
# ---------------------------------------------------------------------------


def test_loading_renumbers_footnotes() -> None:
    session = EditorSession(f"<p>x{_marker(3)}</p>" + _note(3, "body") + _note(5, "orphan"))

    assert session.markup == f"<p>x{_marker(1)}</p>" + _note(1, "body")
    assert session.footnotes.next_number == 2


def test_insert_footnote_at_selection() -> None:
    session = EditorSession("<p>Hello world</p>")
    session.document.set_selection(6)

    status = session.insert_footnote("A note")

    assert status.description == "Footnote 1 added at bottom of page."
    assert session.markup == f"<p>Hello{_marker(1)} world</p>" + _note(1, "A note")


def test_insert_footnote_in_empty_document() -> None:
    status = EditorSession().insert_footnote("note")

    assert not status.ok
    assert status.title == "Footnote Not Inserted"


# ---------------------------------------------------------------------------
# import and counts
# ---------------------------------------------------------------------------


def test_import_replaces_document(tmp_path: Path) -> None:
    path = tmp_path / "notes.txt"
    path.write_text("first line\nsecond line\n", encoding="utf-8")
    session = EditorSession("<p>old</p>")

    status = session.import_file(path)

    assert (status.title, status.description) == ("Import Successful", "notes.txt has been imported.")
    assert session.markup == "<p>first line</p><p>second line</p>"


def test_failed_import_keeps_document() -> None:
    session = EditorSession("<p>old</p>", max_import_bytes=16)

    too_large = session.import_file(b"x" * 32, "big.txt")
    unsupported = session.import_file(b"data", "sheet.xlsx")

    assert (too_large.ok, too_large.title) == (False, "File Too Large")
    assert (unsupported.ok, unsupported.title) == (False, "Unsupported Format")
    assert session.markup == "<p>old</p>"


def test_word_counts() -> None:
    session = EditorSession("<p>one two</p><p>three</p>")
    session.document.set_selection(1, 4)

    assert session.word_count() == 3
    assert session.selected_word_count() == 1


def test_replace_all_reports_matches_it_could_not_replace() -> None:
    session = EditorSession("<p>ab</p><p>cd</p>")

    status = session.replace_all("bc", "X")

    assert status.ok
    assert status.title == "Nothing Replaced"
    assert session.markup == "<p>ab</p><p>cd</p>"
