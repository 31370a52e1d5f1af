"""Document tree, marks and markup conversion."""

from .markup import parse_markup, serialize
from .marks import (
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
)
from .model import (
    AddMarks,
    AppendBlock,
    Block,
    ChangeEvent,
    DeleteRange,
    Document,
    FootnoteNote,
    Heading,
    InsertText,
    PageBreak,
    Paragraph,
    ReplaceContent,
    SetSelection,
    TextRun,
)

__all__ = [
    "AddMarks",
    "AllCaps",
    "AppendBlock",
    "Block",
    "Bold",
    "ChangeEvent",
    "Color",
    "DeleteRange",
    "Document",
    "FontFamily",
    "FontSize",
    "FontWeight",
    "FootnoteNote",
    "FootnoteRef",
    "Heading",
    "InsertText",
    "Italic",
    "Mark",
    "PageBreak",
    "Paragraph",
    "ReplaceContent",
    "SemanticTag",
    "SetSelection",
    "SmallCaps",
    "Strike",
    "Superscript",
    "TextRun",
    "Underline",
    "parse_markup",
    "serialize",
]
