import asyncio
from pathlib import Path

import fitz
import pytest

from inkwell.document.markup import serialize
from inkwell.errors import FileTooLarge, ImportFailed, UnsupportedFormat
from inkwell.importer import import_file, text_to_markup
from inkwell.importer import pdf as pdf_module
from inkwell.importer.pdf import (
    MAX_IMPORT_BYTES,
    InferredBlock,
    PDFImporter,
    PdfRun,
    group_lines,
    infer_blocks,
    infer_page,
    to_document_blocks,
)

PAGE_BREAK = '<div data-page-break="true" class="page-break"></div>'


def _sample_pdf() -> bytes:
    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 72), "Big Title", fontsize=20)
    page.insert_text((72, 120), "Body text here.", fontsize=11)
    page = doc.new_page()
    page.insert_text((72, 72), "Section", fontsize=16)
    data = doc.tobytes()
    doc.close()
    return data


# ---------------------------------------------------------------------------
# line grouping and classification
# ---------------------------------------------------------------------------


def test_runs_within_tolerance_merge_into_one_block() -> None:
    blocks = infer_page([PdfRun("Hello ", 100.0, 11.0), PdfRun("world", 104.0, 11.0)])

    assert blocks == [InferredBlock.paragraph("Hello world")]


def test_runs_are_concatenated_without_word_break_correction() -> None:
    lines = group_lines([PdfRun("Hel", 50.0, 11.0), PdfRun("lo", 50.0, 11.0)])

    assert [line.text for line in lines] == ["Hello"]


def test_new_y_band_at_size_20_is_heading_2() -> None:
    blocks = infer_page([PdfRun("Body", 300.0, 11.0), PdfRun("Results", 200.0, 20.0)])

    assert blocks == [InferredBlock.paragraph("Body"), InferredBlock.heading("Results", 2)]


@pytest.mark.parametrize(
    ("size", "expected"),
    [
        (24.0, InferredBlock.heading("Line", 2)),
        (18.0, InferredBlock.heading("Line", 3)),
        (16.0, InferredBlock.heading("Line", 3)),
        (14.0, InferredBlock.paragraph("Line")),
        (10.0, InferredBlock.paragraph("Line")),
    ],
)
def test_heading_thresholds(size: float, expected: InferredBlock) -> None:
    assert infer_page([PdfRun("Line", 0.0, size)]) == [expected]


def test_dominant_size_decides_the_line() -> None:
    runs = [PdfRun("A ", 80.0, 24.0), PdfRun("long run of ordinary body text", 80.0, 10.0)]

    assert infer_page(runs) == [InferredBlock.paragraph("A long run of ordinary body text")]


def test_runs_without_text_are_skipped() -> None:
    runs = [PdfRun("one", 10.0, 11.0), PdfRun(None, 500.0, 0.0), PdfRun(" two", 10.0, 11.0)]

    assert infer_page(runs) == [InferredBlock.paragraph("one two")]


def test_bold_is_recorded_but_not_used() -> None:
    lines = group_lines([PdfRun("Caption", 10.0, 11.0, "Helvetica-Bold")])

    assert lines[0].bold
    assert infer_page([PdfRun("Caption", 10.0, 11.0, "Helvetica-Bold")]) == [InferredBlock.paragraph("Caption")]


def test_page_breaks_only_between_pages() -> None:
    pages = [[PdfRun("one", 0.0, 11.0)], [], [PdfRun("three", 0.0, 11.0)]]

    kinds = [block.kind for block in infer_blocks(pages)]

    assert kinds == ["paragraph", "page_break", "page_break", "paragraph"]
    assert infer_blocks([[PdfRun("only", 0.0, 11.0)]]) == [InferredBlock.paragraph("only")]


def test_inferred_blocks_serialize_to_markup() -> None:
    inferred = [InferredBlock.heading("T", 2), InferredBlock.page_break(), InferredBlock.paragraph("a < b")]

    assert serialize(to_document_blocks(inferred)) == f"<h2>T</h2>{PAGE_BREAK}<p>a &lt; b</p>"


# ---------------------------------------------------------------------------
# PDF byte streams
# ---------------------------------------------------------------------------


def test_pdf_import_infers_headings_and_page_breaks() -> None:
    markup = PDFImporter().import_bytes(_sample_pdf())

    assert markup == f"<h2>Big Title</h2><p>Body text here.</p>{PAGE_BREAK}<h3>Section</h3>"


def test_async_import_matches_sync_import() -> None:
    data = _sample_pdf()

    assert asyncio.run(PDFImporter().aimport_bytes(data)) == PDFImporter().import_bytes(data)


def test_oversized_pdf_rejected_before_parsing(monkeypatch: pytest.MonkeyPatch) -> None:
    def fail_open(*args, **kwargs):
        raise AssertionError("parser must not run")

    monkeypatch.setattr(pdf_module.fitz, "open", fail_open)
    data = b"%PDF-1.7\n" + b"\0" * int(50.1 * 1024 * 1024)

    with pytest.raises(FileTooLarge) as excinfo:
        PDFImporter().import_bytes(data)

    assert excinfo.value.limit == MAX_IMPORT_BYTES
    assert "50 MB" in excinfo.value.user_message


def test_stream_without_pdf_signature_is_unsupported() -> None:
    with pytest.raises(UnsupportedFormat):
        PDFImporter().import_bytes(b"just some text")


def test_unreadable_pdf_raises_import_failed(monkeypatch: pytest.MonkeyPatch) -> None:
    def broken_open(*args, **kwargs):
        raise RuntimeError("cannot open broken document")

    monkeypatch.setattr(pdf_module.fitz, "open", broken_open)

    with pytest.raises(ImportFailed) as excinfo:
        PDFImporter().import_bytes(b"%PDF-1.7 truncated")

    assert excinfo.value.title == "Import Failed"


def test_page_errors_become_import_failed(monkeypatch: pytest.MonkeyPatch) -> None:
    def broken_page(page):
        raise KeyError("spans")

    monkeypatch.setattr(pdf_module, "extract_page_runs", broken_page)
    data = _sample_pdf()

    with pytest.raises(ImportFailed):
        PDFImporter().import_bytes(data)
    with pytest.raises(ImportFailed):
        asyncio.run(PDFImporter().aimport_bytes(data))


# ---------------------------------------------------------------------------
# import boundary
# ---------------------------------------------------------------------------


def test_import_file_dispatches_on_extension(tmp_path: Path) -> None:
    pdf_path = tmp_path / "paper.pdf"
    pdf_path.write_bytes(_sample_pdf())
    html_path = tmp_path / "page.html"
    html_path.write_text("<html><body><h1>Hi</h1><p>there</p></body></html>", encoding="utf-8")
    txt_path = tmp_path / "notes.txt"
    txt_path.write_text("first\n\n  second  \n", encoding="utf-8")

    assert import_file(pdf_path).startswith("<h2>Big Title</h2>")
    assert import_file(html_path) == "<h1>Hi</h1><p>there</p>"
    assert import_file(txt_path) == "<p>first</p><p>second</p>"


def test_import_file_rejects_unknown_extension() -> None:
    with pytest.raises(UnsupportedFormat) as excinfo:
        import_file(b"PK\x03\x04", "report.docx")

    assert "Supported formats: TXT, HTML, PDF." in excinfo.value.user_message


def test_import_file_checks_size_before_reading(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "big.txt"
    path.write_bytes(b"x" * 64)

    def fail_read(self):
        raise AssertionError("file must not be read")

    monkeypatch.setattr(Path, "read_bytes", fail_read)

    with pytest.raises(FileTooLarge):
        import_file(path, max_bytes=32)


def test_text_to_markup_escapes_lines() -> None:
    assert text_to_markup("a & b\n<c>") == "<p>a &amp; b</p><p>&lt;c&gt;</p>"
