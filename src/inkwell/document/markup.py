"""Convert between the editor's HTML markup and document blocks."""

from __future__ import annotations

import html
import re

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString

from inkwell.document.marks import (
    AllCaps,
    Bold,
    Color,
    FontFamily,
    FontSize,
    FontWeight,
    FootnoteRef,
    Italic,
    Mark,
    SemanticTag,
    SmallCaps,
    Strike,
    Superscript,
    Underline,
    wrap_text,
)
from inkwell.document.model import Block, FootnoteNote, Heading, PageBreak, Paragraph, TextRun

_HEADING_LEVEL = {"h1": 1, "h2": 2, "h3": 3, "h4": 4, "h5": 5, "h6": 6}
_FLAG_TAGS: dict[str, Mark] = {
    "b": Bold(),
    "strong": Bold(),
    "i": Italic(),
    "em": Italic(),
    "u": Underline(),
    "s": Strike(),
    "strike": Strike(),
    "del": Strike(),
    "sup": Superscript(),
}
_CONTAINER_TAGS = {
    "html", "body", "div", "section", "article", "main", "header", "footer",
    "aside", "blockquote", "ul", "ol", "li", "table", "tbody", "thead", "tr", "td", "th",
}
_SKIP_TAGS = {"head", "script", "style", "noscript", "title", "meta"}
_BREAK_TAGS = {"hr", "br"}

FOOTNOTE_NOTE_CLASS = "footnote-text"


def parse_markup(markup: str) -> list[Block]:
    """Parse editor markup into blocks. Unknown wrappers are flattened."""
    soup = BeautifulSoup(markup or "", "html.parser")
    blocks: list[Block] = []
    loose: list[TextRun] = []

    def flush_loose() -> None:
        if any(run.text.strip() for run in loose):
            blocks.append(Paragraph(runs=list(loose)))
        loose.clear()

    def walk(container: Tag) -> None:
        for child in container.children:
            if isinstance(child, PreformattedString):
                continue
            if isinstance(child, NavigableString):
                if str(child).strip():
                    loose.append(TextRun(str(child)))
                continue
            if not isinstance(child, Tag):
                continue

            name = child.name.lower()
            if name in _SKIP_TAGS:
                continue
            if name in _BREAK_TAGS:
                flush_loose()
                continue
            if name == "div" and child.has_attr("data-page-break"):
                flush_loose()
                blocks.append(PageBreak())
                continue
            if name == "p":
                flush_loose()
                blocks.append(_parse_paragraph(child))
                continue
            if name in _HEADING_LEVEL:
                flush_loose()
                blocks.append(Heading(level=_HEADING_LEVEL[name], runs=_inline_runs(child, frozenset())))
                continue
            if name in _CONTAINER_TAGS:
                flush_loose()
                walk(child)
                flush_loose()
                continue
            loose.extend(_inline_runs_of(child, frozenset()))

    walk(soup)
    flush_loose()
    return blocks


def serialize(blocks: list[Block] | tuple[Block, ...]) -> str:
    parts: list[str] = []
    for block in blocks:
        if isinstance(block, PageBreak):
            parts.append('<div data-page-break="true" class="page-break"></div>')
        elif isinstance(block, FootnoteNote):
            parts.append(
                f'<p class="{FOOTNOTE_NOTE_CLASS}" data-footnote="{block.number}">'
                f"<sup>{block.number}</sup> {_serialize_runs(block.runs)}</p>"
            )
        elif isinstance(block, Heading):
            level = max(1, min(6, block.level))
            parts.append(f"<h{level}>{_serialize_runs(block.runs)}</h{level}>")
        else:
            parts.append(f"<p>{_serialize_runs(block.runs)}</p>")
    return "".join(parts)


def _serialize_runs(runs: list[TextRun]) -> str:
    return "".join(wrap_text(run.text, run.marks) for run in runs)


def _parse_paragraph(tag: Tag) -> Block:
    number = _footnote_number(tag)
    classes = tag.get("class") or []
    if number is None or FOOTNOTE_NOTE_CLASS not in classes:
        return Paragraph(runs=_inline_runs(tag, frozenset()))

    runs: list[TextRun] = []
    label_skipped = False
    for child in tag.children:
        if not label_skipped and isinstance(child, Tag) and child.name.lower() == "sup":
            label_skipped = True
            continue
        runs.extend(_inline_runs_of(child, frozenset()))
    if runs and runs[0].text.startswith(" "):
        runs[0] = TextRun(runs[0].text[1:], runs[0].marks)
    return FootnoteNote(number=number, runs=[run for run in runs if run.text])


def _inline_runs(tag: Tag, marks: frozenset[Mark]) -> list[TextRun]:
    runs: list[TextRun] = []
    for child in tag.children:
        runs.extend(_inline_runs_of(child, marks))
    return runs


def _inline_runs_of(node, marks: frozenset[Mark]) -> list[TextRun]:
    if isinstance(node, PreformattedString):
        return []
    if isinstance(node, NavigableString):
        return [TextRun(str(node), marks)] if str(node) else []
    if not isinstance(node, Tag):
        return []

    name = node.name.lower()
    if name in _SKIP_TAGS:
        return []
    if name == "br":
        return [TextRun("\n", marks)]

    if name == "sup":
        number = _footnote_number(node)
        if number is not None:
            # The visible label is always re-derived from the id.
            return [TextRun(str(number), FootnoteRef(number).apply(marks))]

    inner = marks
    for mark in _marks_for_tag(node):
        inner = mark.apply(inner)
    return _inline_runs(node, inner)


def _footnote_number(tag: Tag) -> int | None:
    raw = tag.get("data-footnote")
    if raw is None:
        return None
    try:
        return int(str(raw).strip())
    except ValueError:
        return None


_STYLE_DECL_RE = re.compile(r"\s*([a-zA-Z-]+)\s*:\s*([^;]+)")


def _marks_for_tag(tag: Tag) -> list[Mark]:
    name = tag.name.lower()
    marks: list[Mark] = []
    if name in _FLAG_TAGS:
        marks.append(_FLAG_TAGS[name])
    if tag.has_attr("data-all-caps"):
        marks.append(AllCaps())
    if tag.has_attr("data-small-caps"):
        marks.append(SmallCaps())
    if tag.has_attr("data-tag"):
        marks.append(SemanticTag(name=str(tag["data-tag"])))

    for prop, value in _STYLE_DECL_RE.findall(str(tag.get("style") or "")):
        prop = prop.lower()
        value = html.unescape(value.strip())
        if prop == "color":
            marks.append(Color(value=value))
        elif prop == "font-family":
            marks.append(FontFamily(value=value))
        elif prop == "font-size":
            marks.append(FontSize(value=value))
        elif prop == "font-weight":
            marks.append(FontWeight(value=value))
        elif prop == "text-transform" and value.lower() == "uppercase":
            marks.append(AllCaps())
        elif prop == "font-variant" and value.lower() == "small-caps":
            marks.append(SmallCaps())
    return list(dict.fromkeys(marks))
