"""Import boundary: turn an uploaded file into document markup."""

from __future__ import annotations

import logging
from pathlib import Path

from inkwell.document.markup import parse_markup, serialize
from inkwell.document.model import Paragraph, TextRun
from inkwell.errors import UnsupportedFormat

from .pdf import MAX_IMPORT_BYTES, PDFImporter, PdfRun, check_size, infer_blocks

logger = logging.getLogger(__name__)

_HTML_EXTENSIONS = (".html", ".htm")
_TEXT_EXTENSIONS = (".txt",)


def import_file(source: Path | str | bytes, filename: str | None = None, *, max_bytes: int = MAX_IMPORT_BYTES) -> str:
    """Import ``source`` (a path or raw bytes named ``filename``) and return markup.

    The size ceiling is enforced before the file is read or parsed.
    """
    if isinstance(source, (str, Path)):
        path = Path(source)
        name = filename or path.name
        # Stat first so oversized files are rejected without being loaded.
        check_size(path.stat().st_size, max_bytes)
        data = path.read_bytes()
    else:
        name = filename or "upload"
        data = source

    check_size(len(data), max_bytes)
    lowered = name.lower()
    logger.info("Importing %s (%d bytes)", name, len(data))

    if lowered.endswith(".pdf"):
        return PDFImporter(max_bytes=max_bytes).import_bytes(data)
    if lowered.endswith(_HTML_EXTENSIONS):
        return serialize(parse_markup(data.decode("utf-8", errors="replace")))
    if lowered.endswith(_TEXT_EXTENSIONS):
        return text_to_markup(data.decode("utf-8", errors="replace"))
    raise UnsupportedFormat(name)


def text_to_markup(text: str) -> str:
    """One paragraph per non-empty line."""
    lines = [line.strip() for line in text.splitlines()]
    return serialize([Paragraph(runs=[TextRun(line)]) for line in lines if line])


__all__ = [
    "MAX_IMPORT_BYTES",
    "PDFImporter",
    "PdfRun",
    "import_file",
    "infer_blocks",
    "text_to_markup",
]
