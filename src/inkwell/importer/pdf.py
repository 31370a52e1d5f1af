"""PDF import using PyMuPDF with heuristic heading inference.

Runs are grouped into lines by baseline Y, each line becomes one block, and a
line's dominant font size decides whether it is a heading. Pages are processed
strictly in order because line grouping depends on consecutive Y deltas.
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Sequence

import fitz  # PyMuPDF

from inkwell.document.markup import serialize
from inkwell.document.model import Block, Heading, PageBreak, Paragraph, TextRun
from inkwell.errors import FileTooLarge, ImportFailed, ParseWarning, UnsupportedFormat

logger = logging.getLogger(__name__)

MAX_IMPORT_BYTES = 50 * 1024 * 1024
Y_TOLERANCE = 5.0
H2_MIN_SIZE = 18.0
H3_MIN_SIZE = 14.0

_PDF_SIGNATURE = b"%PDF-"
_BOLD_HINTS = ("bold", "black", "heavy", "semibold", "demi")


@dataclass(frozen=True, slots=True)
class PdfRun:
    """One text item as extracted from a page. ``text`` is None for non-text operators."""

    text: str | None
    y: float
    font_size: float
    font_name: str = ""


@dataclass(frozen=True, slots=True)
class InferredLine:
    text: str
    font_size: float
    bold: bool = False


@dataclass(frozen=True, slots=True)
class InferredBlock:
    kind: str
    text: str = ""
    level: int = 0

    @classmethod
    def heading(cls, text: str, level: int) -> InferredBlock:
        return cls(kind="heading", text=text, level=level)

    @classmethod
    def paragraph(cls, text: str) -> InferredBlock:
        return cls(kind="paragraph", text=text)

    @classmethod
    def page_break(cls) -> InferredBlock:
        return cls(kind="page_break")


def classify_line(line: InferredLine) -> InferredBlock:
    # ``line.bold`` is recorded but does not take part in classification yet.
    if line.font_size > H2_MIN_SIZE:
        return InferredBlock.heading(line.text, 2)
    if line.font_size > H3_MIN_SIZE:
        return InferredBlock.heading(line.text, 3)
    return InferredBlock.paragraph(line.text)


def group_lines(runs: Iterable[PdfRun], *, y_tolerance: float = Y_TOLERANCE) -> list[InferredLine]:
    """Group runs into lines: a run more than ``y_tolerance`` away from the previous one starts a new line."""
    lines: list[InferredLine] = []
    parts: list[str] = []
    sizes: Counter[float] = Counter()
    bold = False
    last_y: float | None = None

    def flush() -> None:
        nonlocal bold
        text = "".join(parts).strip()
        if text:
            lines.append(InferredLine(text=text, font_size=_dominant_size(sizes), bold=bold))
        parts.clear()
        sizes.clear()
        bold = False

    for run in runs:
        if run.text is None:
            continue
        if last_y is not None and abs(run.y - last_y) > y_tolerance:
            flush()
        parts.append(run.text)
        sizes[float(run.font_size)] += len(run.text.strip()) or 1
        bold = bold or _is_bold(run.font_name)
        last_y = run.y

    flush()
    return lines


def infer_page(runs: Iterable[PdfRun], *, y_tolerance: float = Y_TOLERANCE) -> list[InferredBlock]:
    return [classify_line(line) for line in group_lines(runs, y_tolerance=y_tolerance)]


def infer_blocks(pages: Iterable[Sequence[PdfRun]], *, y_tolerance: float = Y_TOLERANCE) -> list[InferredBlock]:
    """Infer blocks for every page, with a page break between consecutive pages."""
    pages = list(pages)
    blocks: list[InferredBlock] = []
    for index, runs in enumerate(pages):
        blocks.extend(infer_page(runs, y_tolerance=y_tolerance))
        if index < len(pages) - 1:
            blocks.append(InferredBlock.page_break())
    return blocks


def to_document_blocks(inferred: Iterable[InferredBlock]) -> list[Block]:
    blocks: list[Block] = []
    for item in inferred:
        if item.kind == "page_break":
            blocks.append(PageBreak())
        elif item.kind == "heading":
            blocks.append(Heading(level=item.level, runs=[TextRun(item.text)]))
        else:
            blocks.append(Paragraph(runs=[TextRun(item.text)]))
    return blocks


def extract_page_runs(page: "fitz.Page") -> list[PdfRun]:
    """Text spans of one page in extraction order, keyed by baseline Y."""
    data = page.get_text("dict")
    runs: list[PdfRun] = []
    for block in data.get("blocks", []):
        # Image blocks carry no "lines" and contribute nothing.
        for line in block.get("lines", []):
            for span in line.get("spans", []):
                runs.append(_span_to_run(span))
    return runs


def check_size(size: int, limit: int = MAX_IMPORT_BYTES) -> None:
    if size > limit:
        raise FileTooLarge(size, limit)


class PDFImporter:
    """Import a PDF byte stream into document markup."""

    def __init__(self, max_bytes: int = MAX_IMPORT_BYTES, y_tolerance: float = Y_TOLERANCE) -> None:
        self.max_bytes = max_bytes
        self.y_tolerance = y_tolerance
        self.warnings: list[ParseWarning] = []

    def import_bytes(self, data: bytes) -> str:
        return serialize(to_document_blocks(self.infer(data)))

    def infer(self, data: bytes) -> list[InferredBlock]:
        doc = self._open(data)
        blocks: list[InferredBlock] = []
        try:
            for page_blocks in self._iter_pages(doc):
                blocks.extend(page_blocks)
        except Exception as exc:
            raise ImportFailed(f"The PDF could not be read: {exc}") from exc
        finally:
            doc.close()
            self._collect_warnings()
        return blocks

    async def aimport_bytes(self, data: bytes) -> str:
        """Like :meth:`import_bytes`, yielding to the event loop between pages."""
        doc = self._open(data)
        blocks: list[InferredBlock] = []
        try:
            for page_blocks in self._iter_pages(doc):
                blocks.extend(page_blocks)
                await asyncio.sleep(0)
        except Exception as exc:
            raise ImportFailed(f"The PDF could not be read: {exc}") from exc
        finally:
            doc.close()
            self._collect_warnings()
        return serialize(to_document_blocks(blocks))

    def _open(self, data: bytes) -> "fitz.Document":
        check_size(len(data), self.max_bytes)
        if _PDF_SIGNATURE not in data[:1024]:
            raise UnsupportedFormat("The selected file")
        self.warnings = []
        fitz.TOOLS.reset_mupdf_warnings()
        try:
            return fitz.open(stream=data, filetype="pdf")
        except Exception as exc:
            self._collect_warnings()
            raise ImportFailed(f"The PDF could not be opened: {exc}") from exc

    def _iter_pages(self, doc: "fitz.Document") -> Iterator[list[InferredBlock]]:
        page_count = len(doc)
        for index in range(page_count):
            blocks = self._infer_page(doc, index)
            if index < page_count - 1:
                blocks.append(InferredBlock.page_break())
            yield blocks

    def _infer_page(self, doc: "fitz.Document", index: int) -> list[InferredBlock]:
        runs = extract_page_runs(doc[index])
        blocks = infer_page(runs, y_tolerance=self.y_tolerance)
        logger.debug("Page %d: %d run(s) -> %d block(s)", index + 1, len(runs), len(blocks))
        return blocks

    def _collect_warnings(self) -> None:
        raw = fitz.TOOLS.mupdf_warnings() or ""
        for message in raw.splitlines():
            message = message.strip()
            if not message:
                continue
            warning = ParseWarning(message)
            self.warnings.append(warning)
            logger.warning("PDF parser warning: %s", warning)


def _span_to_run(span: dict[str, Any]) -> PdfRun:
    text = span.get("text")
    origin = span.get("origin")
    if origin is None:
        bbox = span.get("bbox") or (0.0, 0.0, 0.0, 0.0)
        origin = (bbox[0], bbox[3])
    return PdfRun(
        text=text if isinstance(text, str) else None,
        y=float(origin[1]),
        font_size=float(span.get("size") or 0.0),
        font_name=str(span.get("font") or ""),
    )


def _dominant_size(sizes: Counter[float]) -> float:
    if not sizes:
        return 0.0
    return max(sizes.items(), key=lambda item: (item[1], item[0]))[0]


def _is_bold(font_name: str) -> bool:
    lowered = font_name.lower()
    return any(hint in lowered for hint in _BOLD_HINTS)
