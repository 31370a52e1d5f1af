"""Formatting and semantic marks attached to text runs.

Marks form a closed union. Flag marks (bold, italic, ...) are idempotent when
applied; valued marks (color, font family, ...) replace any mark of the same
kind already present on the run.
"""

from __future__ import annotations

import html
from dataclasses import dataclass
from typing import ClassVar, Iterable


@dataclass(frozen=True, slots=True)
class _FlagMark:
    kind: ClassVar[str] = ""
    tag: ClassVar[str] = ""

    def apply(self, marks: frozenset[Mark]) -> frozenset[Mark]:
        return marks | {self}

    def wrap(self, inner: str) -> str:
        return f"<{self.tag}>{inner}</{self.tag}>"


@dataclass(frozen=True, slots=True)
class _ValueMark:
    kind: ClassVar[str] = ""

    def apply(self, marks: frozenset[Mark]) -> frozenset[Mark]:
        return frozenset(m for m in marks if m.kind != self.kind) | {self}


@dataclass(frozen=True, slots=True)
class Bold(_FlagMark):
    kind: ClassVar[str] = "bold"
    tag: ClassVar[str] = "b"


@dataclass(frozen=True, slots=True)
class Italic(_FlagMark):
    kind: ClassVar[str] = "italic"
    tag: ClassVar[str] = "i"


@dataclass(frozen=True, slots=True)
class Underline(_FlagMark):
    kind: ClassVar[str] = "underline"
    tag: ClassVar[str] = "u"


@dataclass(frozen=True, slots=True)
class Strike(_FlagMark):
    kind: ClassVar[str] = "strike"
    tag: ClassVar[str] = "s"


@dataclass(frozen=True, slots=True)
class Superscript(_FlagMark):
    kind: ClassVar[str] = "superscript"
    tag: ClassVar[str] = "sup"


@dataclass(frozen=True, slots=True)
class AllCaps(_FlagMark):
    kind: ClassVar[str] = "allCaps"

    def wrap(self, inner: str) -> str:
        return f'<span data-all-caps="" style="text-transform: uppercase;">{inner}</span>'


@dataclass(frozen=True, slots=True)
class SmallCaps(_FlagMark):
    kind: ClassVar[str] = "smallCaps"

    def wrap(self, inner: str) -> str:
        return f'<span data-small-caps="" style="font-variant: small-caps;">{inner}</span>'


@dataclass(frozen=True, slots=True)
class Color(_ValueMark):
    kind: ClassVar[str] = "color"
    value: str = ""

    def wrap(self, inner: str) -> str:
        return f'<span style="color: {html.escape(self.value)}">{inner}</span>'


@dataclass(frozen=True, slots=True)
class FontFamily(_ValueMark):
    kind: ClassVar[str] = "fontFamily"
    value: str = ""

    def wrap(self, inner: str) -> str:
        return f'<span style="font-family: {html.escape(self.value)}">{inner}</span>'


@dataclass(frozen=True, slots=True)
class FontSize(_ValueMark):
    kind: ClassVar[str] = "fontSize"
    value: str = ""

    def wrap(self, inner: str) -> str:
        return f'<span style="font-size: {html.escape(self.value)}">{inner}</span>'


@dataclass(frozen=True, slots=True)
class FontWeight(_ValueMark):
    kind: ClassVar[str] = "fontWeight"
    value: str = ""

    def wrap(self, inner: str) -> str:
        return f'<span style="font-weight: {html.escape(self.value)}">{inner}</span>'


@dataclass(frozen=True, slots=True)
class SemanticTag(_ValueMark):
    kind: ClassVar[str] = "semanticTag"
    name: str = ""

    def wrap(self, inner: str) -> str:
        return f'<span data-tag="{html.escape(self.name)}">{inner}</span>'


@dataclass(frozen=True, slots=True)
class FootnoteRef(_ValueMark):
    """Marks a run as the inline marker of footnote ``id``."""

    kind: ClassVar[str] = "footnote"
    id: int = 0

    def wrap(self, inner: str) -> str:
        return f'<sup data-footnote="{self.id}">{self.id}</sup>'


Mark = (
    Bold
    | Italic
    | Underline
    | Strike
    | Superscript
    | AllCaps
    | SmallCaps
    | Color
    | FontFamily
    | FontSize
    | FontWeight
    | SemanticTag
    | FootnoteRef
)

# Outermost first. The footnote marker must stay innermost because its label is
# re-derived from the id when markup is parsed.
_NESTING = (
    SemanticTag,
    FontFamily,
    FontSize,
    FontWeight,
    Color,
    AllCaps,
    SmallCaps,
    Bold,
    Italic,
    Underline,
    Strike,
    Superscript,
    FootnoteRef,
)
_RANK = {cls: idx for idx, cls in enumerate(_NESTING)}


def apply_marks(marks: frozenset[Mark], extra: Iterable[Mark]) -> frozenset[Mark]:
    for mark in extra:
        marks = mark.apply(marks)
    return marks


def style_marks(marks: Iterable[Mark]) -> frozenset[Mark]:
    """Marks that describe formatting, i.e. everything except footnote references."""
    return frozenset(m for m in marks if not isinstance(m, FootnoteRef))


def footnote_id(marks: Iterable[Mark]) -> int | None:
    for mark in marks:
        if isinstance(mark, FootnoteRef):
            return mark.id
    return None


def ordered(marks: Iterable[Mark]) -> list[Mark]:
    """Marks sorted outermost first, with a stable order inside one kind."""
    return sorted(marks, key=lambda m: (_RANK[type(m)], repr(m)))


def wrap_text(text: str, marks: Iterable[Mark]) -> str:
    inner = html.escape(text, quote=False)
    for mark in reversed(ordered(marks)):
        inner = mark.wrap(inner)
    return inner
