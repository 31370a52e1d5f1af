"""Render a document into a self-contained HTML page."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from pathlib import Path

from jinja2 import Environment, FileSystemLoader
from markupsafe import Markup

from inkwell.document.markup import serialize
from inkwell.document.model import Block, FootnoteNote, Heading, PageBreak, block_text


@dataclass(slots=True)
class RenderedPage:
    number: int
    html: str


@dataclass(slots=True)
class RenderedFootnote:
    number: int
    html: str


class HTMLRenderer:
    """Render document blocks into the export template."""

    def __init__(self, template_path: Path | None = None) -> None:
        if template_path is None:
            template_path = Path(__file__).resolve().parent.parent / "template" / "document.html"

        loader = FileSystemLoader(str(template_path.parent))
        self._env = Environment(loader=loader, autoescape=True, trim_blocks=True, lstrip_blocks=True)
        self._template_name = template_path.name

    def render(
        self,
        blocks: list[Block] | tuple[Block, ...],
        *,
        title_override: str | None = None,
        dark_mode: bool = False,
    ) -> str:
        body = [b for b in blocks if not isinstance(b, FootnoteNote)]
        notes = sorted((b for b in blocks if isinstance(b, FootnoteNote)), key=lambda b: b.number)

        pages = [
            RenderedPage(number=idx, html=serialize(chunk))
            for idx, chunk in enumerate(_split_pages(body), start=1)
        ]
        footnotes = [
            RenderedFootnote(number=note.number, html=serialize([note]))
            for note in notes
        ]

        template = self._env.get_template(self._template_name)
        return template.render(
            page_title=title_override or _infer_title(body) or "Untitled",
            pages=[{**asdict(p), "html": Markup(p.html)} for p in pages],
            footnotes=[{**asdict(f), "html": Markup(f.html)} for f in footnotes],
            dark_mode=dark_mode,
        )


def _split_pages(blocks: list[Block]) -> list[list[Block]]:
    pages: list[list[Block]] = [[]]
    for block in blocks:
        if isinstance(block, PageBreak):
            pages.append([])
        else:
            pages[-1].append(block)
    return pages


def _infer_title(blocks: list[Block]) -> str | None:
    for block in blocks:
        if isinstance(block, Heading) and block_text(block).strip():
            return block_text(block).strip()
    for block in blocks:
        text = block_text(block).strip()
        if text:
            return text.split("\n")[0][:80]
    return None
