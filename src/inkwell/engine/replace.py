"""Find-and-replace across the whole document, in two styling modes.

``preserve-style`` substitutes text inside the serialized markup, so every
replacement inherits the marks of the element it lands in.

``reapply-style`` captures one mark set up front and stamps it on every
inserted replacement. All matches are mapped to structural positions with a
single mapper before anything is mutated; each replacement shifts the
positions after it, so later ranges are corrected by the running delta of the
replacements already queued in the pass.
"""

from __future__ import annotations

import enum
import html
import logging
import re
from dataclasses import dataclass

from inkwell.document.marks import Mark, ordered, style_marks
from inkwell.document.markup import FOOTNOTE_NOTE_CLASS, parse_markup, serialize
from inkwell.document.model import AddMarks, DeleteRange, Document, InsertText, ReplaceContent, SetSelection, Step
from inkwell.engine.positions import PositionMapper
from inkwell.engine.search import Match, SearchOptions, SearchSession, compile_pattern, find_all

logger = logging.getLogger(__name__)

_TAG_SPLIT_RE = re.compile(r"(<[^>]*>)")
_MARKER_OPEN_RE = re.compile(r"^<sup\b[^>]*\bdata-footnote=", re.IGNORECASE)
_NOTE_OPEN_RE = re.compile(rf'^<p\b[^>]*\bclass="{FOOTNOTE_NOTE_CLASS}"', re.IGNORECASE)


class ReplaceMode(str, enum.Enum):
    PRESERVE_STYLE = "preserve-style"
    REAPPLY_STYLE = "reapply-style"


class ReplaceStatus(str, enum.Enum):
    REPLACED = "replaced"
    NO_MATCHES = "no-matches"
    UNCHANGED = "unchanged"


@dataclass(frozen=True, slots=True)
class ReplaceRequest:
    pattern: str
    replacement: str
    match_case: bool = False
    whole_words: bool = False
    mode: ReplaceMode = ReplaceMode.PRESERVE_STYLE

    @property
    def options(self) -> SearchOptions:
        return SearchOptions(match_case=self.match_case, whole_words=self.whole_words)


@dataclass(frozen=True, slots=True)
class ReplaceOutcome:
    status: ReplaceStatus
    count: int = 0
    marks: frozenset[Mark] = frozenset()
    ambiguous_style: bool = False

    @classmethod
    def no_matches(cls) -> ReplaceOutcome:
        return cls(status=ReplaceStatus.NO_MATCHES)


class ReplaceEngine:
    """Replace every occurrence of a pattern in ``document``."""

    def __init__(self, document: Document) -> None:
        self.document = document

    def replace(self, request: ReplaceRequest, session: SearchSession | None = None) -> ReplaceOutcome:
        mode = ReplaceMode(request.mode)
        if mode is ReplaceMode.PRESERVE_STYLE:
            outcome = self._replace_in_markup(request)
        else:
            outcome = self._replace_reapplying_style(request)

        if outcome.status is ReplaceStatus.REPLACED:
            self._reset(session)
        logger.info(
            "Replace %r -> %r (%s): %s, %d replacement(s)",
            request.pattern,
            request.replacement,
            mode.value,
            outcome.status.value,
            outcome.count,
        )
        return outcome

    def apply_style_to_all(
        self,
        pattern: str,
        marks: tuple[Mark, ...] | list[Mark],
        options: SearchOptions = SearchOptions(),
    ) -> ReplaceOutcome:
        """Add ``marks`` to every occurrence of ``pattern`` without changing any text."""
        mapper = PositionMapper(self.document)
        matches = find_all(mapper.text, pattern, options)
        if not matches:
            return ReplaceOutcome.no_matches()

        spans = self._map_all(mapper, matches)
        steps: list[Step] = [AddMarks(start, end, tuple(marks)) for start, end in spans]
        self.document.transact(steps)
        return ReplaceOutcome(status=ReplaceStatus.REPLACED, count=len(spans), marks=frozenset(marks))

    # -- preserve-style -----------------------------------------------------

    def _replace_in_markup(self, request: ReplaceRequest) -> ReplaceOutcome:
        mapper = PositionMapper(self.document)
        matches = find_all(mapper.text, request.pattern, request.options)
        if not matches:
            return ReplaceOutcome.no_matches()

        markup, count = substitute_in_markup(serialize(self.document.blocks), matches, request.replacement)
        if not count:
            logger.info("Every match of %r spans element boundaries; markup left unchanged", request.pattern)
            return ReplaceOutcome(status=ReplaceStatus.UNCHANGED)
        self.document.transact([ReplaceContent(tuple(parse_markup(markup)))])
        return ReplaceOutcome(status=ReplaceStatus.REPLACED, count=count)

    # -- reapply-style ------------------------------------------------------

    def _replace_reapplying_style(self, request: ReplaceRequest) -> ReplaceOutcome:
        mapper = PositionMapper(self.document)
        matches = find_all(mapper.text, request.pattern, request.options)
        if not matches:
            return ReplaceOutcome.no_matches()

        regex = compile_pattern(request.pattern, request.options)
        spans = self._map_all(mapper, matches)
        captured = self._capture_style(regex, spans)
        ambiguous = not captured
        if ambiguous:
            logger.warning(
                "No styled occurrence of %r found; replacements will carry no marks", request.pattern
            )
        marks = tuple(ordered(captured))
        replacement = request.replacement

        steps: list[Step] = []
        delta = 0
        for start, end in spans:
            start += delta
            end += delta
            steps.append(DeleteRange(start, end))
            if replacement:
                steps.append(InsertText(start, replacement))
                steps.append(SetSelection(start, start + len(replacement)))
                if marks:
                    steps.append(AddMarks(start, start + len(replacement), marks))
            delta += len(replacement) - (end - start)

        self.document.transact(steps)
        return ReplaceOutcome(
            status=ReplaceStatus.REPLACED,
            count=len(spans),
            marks=captured,
            ambiguous_style=ambiguous,
        )

    def _capture_style(self, regex: re.Pattern[str], spans: list[tuple[int, int]]) -> frozenset[Mark]:
        """Marks from the selection when it holds the pattern, else from the first marked occurrence."""
        anchor, head = self.document.selection
        start, end = sorted((anchor, head))
        if start != end and regex.fullmatch(self.document.text_between(start, end)):
            selected = style_marks(self.document.marks_between(start, end))
            logger.debug("Captured style from selection: %s", selected)
            return selected

        for span_start, span_end in spans:
            found = style_marks(self.document.marks_between(span_start, span_end))
            if found:
                logger.debug("Captured style from occurrence at %d: %s", span_start, found)
                return found
        return frozenset()

    def _map_all(self, mapper: PositionMapper, matches: list[Match]) -> list[tuple[int, int]]:
        # Every match is mapped before the first mutation, so an unmappable
        # match aborts the pass with the document untouched.
        return [(mapper.offset_to_position(m.start), mapper.offset_to_position(m.end, assoc=-1)) for m in matches]

    def _reset(self, session: SearchSession | None) -> None:
        if session is not None:
            session.reset()
        self.document.set_selection(PositionMapper(self.document).offset_to_position(0))


def substitute_in_markup(markup: str, matches: list[Match], replacement: str) -> tuple[str, int]:
    """Substitute ``replacement`` for ``matches`` in the text segments of ``markup``.

    ``matches`` are offsets into the flattened text of the same document, so a
    pattern sees the same context here as it does in search. Only matches that
    lie inside a single text segment are substituted. Tags and attribute values
    are never touched, nor are footnote labels, which are derived from the
    footnote number. Returns the new markup and the number of substitutions.
    """
    pieces = _TAG_SPLIT_RE.split(markup)
    total = 0
    offset = 0
    pending = 0
    label: str | None = None
    note_gap = False
    previous_tag = ""

    for index, piece in enumerate(pieces):
        if piece.startswith("<"):
            if _MARKER_OPEN_RE.match(piece):
                label = "marker"
            elif piece.lower() == "<sup>" and _NOTE_OPEN_RE.match(previous_tag):
                label = "note"
            else:
                # The separator after a note label is not part of the flattened text.
                note_gap = label == "note" and piece.lower() == "</sup>"
                label = None
            previous_tag = piece
            continue
        if not piece or label == "note":
            continue

        text = html.unescape(piece)
        prefix = ""
        if note_gap:
            prefix, text = text[:1], text[1:]
            note_gap = False
        seg_start = offset
        seg_end = offset + len(text)
        offset = seg_end

        parts: list[str] = []
        cursor = 0
        while pending < len(matches) and matches[pending].start < seg_end:
            match = matches[pending]
            pending += 1
            if label == "marker" or match.start < seg_start or match.end > seg_end:
                continue
            parts.append(text[cursor : match.start - seg_start])
            parts.append(replacement)
            cursor = match.end - seg_start
            total += 1
        if parts:
            parts.append(text[cursor:])
            pieces[index] = html.escape(prefix + "".join(parts), quote=False)
    return "".join(pieces), total
