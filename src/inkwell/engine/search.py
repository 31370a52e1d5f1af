"""Pattern search over the flattened text view, plus match navigation."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from inkwell.document.model import Document
from inkwell.engine.positions import PositionMapper
from inkwell.errors import InvalidPattern

logger = logging.getLogger(__name__)

_WORD_RE = re.compile(r"\S+")


@dataclass(frozen=True, slots=True)
class SearchOptions:
    match_case: bool = False
    whole_words: bool = False


@dataclass(frozen=True, slots=True)
class Match:
    start: int
    end: int
    text: str


def compile_pattern(pattern: str, options: SearchOptions = SearchOptions()) -> re.Pattern[str]:
    """Compile ``pattern`` as a regular expression.

    The pattern is used as-is, without escaping, so regex metacharacters keep
    their meaning. Searches ignore case unless ``match_case`` is set.
    """
    expression = rf"\b(?:{pattern})\b" if options.whole_words else pattern
    flags = 0 if options.match_case else re.IGNORECASE
    try:
        return re.compile(expression, flags)
    except re.error as exc:
        raise InvalidPattern(pattern, str(exc)) from exc


def find_all(text: str, pattern: str, options: SearchOptions = SearchOptions()) -> list[Match]:
    """Ordered, non-overlapping matches of ``pattern`` in ``text``. Empty hits are skipped."""
    if not pattern:
        return []
    regex = compile_pattern(pattern, options)
    return [Match(m.start(), m.end(), m.group(0)) for m in regex.finditer(text) if m.end() > m.start()]


@dataclass(slots=True)
class SearchSession:
    """Find state owned by the caller: the match list and a circular cursor over it."""

    pattern: str
    options: SearchOptions = field(default_factory=SearchOptions)
    matches: list[Match] = field(default_factory=list)
    cursor: int = -1

    @classmethod
    def start(cls, document: Document, pattern: str, options: SearchOptions = SearchOptions()) -> SearchSession:
        mapper = PositionMapper(document)
        matches = find_all(mapper.text, pattern, options)
        logger.debug("Found %d match(es) for %r", len(matches), pattern)
        return cls(pattern=pattern, options=options, matches=matches, cursor=0 if matches else -1)

    @property
    def total(self) -> int:
        return len(self.matches)

    @property
    def current(self) -> Match | None:
        if self.cursor < 0 or not self.matches:
            return None
        return self.matches[self.cursor]

    def next(self) -> Match | None:
        if not self.matches:
            return None
        self.cursor = (self.cursor + 1) % len(self.matches)
        return self.matches[self.cursor]

    def previous(self) -> Match | None:
        if not self.matches:
            return None
        self.cursor = (self.cursor - 1) % len(self.matches) if self.cursor >= 0 else len(self.matches) - 1
        return self.matches[self.cursor]

    def reset(self) -> None:
        self.matches = []
        self.cursor = -1


def select_match(document: Document, match: Match) -> tuple[int, int]:
    """Select ``match`` in the document and return its structural range."""
    mapper = PositionMapper(document)
    start = mapper.offset_to_position(match.start)
    end = mapper.offset_to_position(match.end, assoc=-1)
    document.set_selection(start, end)
    return start, end


def count_words(text: str) -> int:
    return len(_WORD_RE.findall(text))


def selected_word_count(document: Document) -> int:
    anchor, head = document.selection
    if anchor == head:
        return 0
    return count_words(document.text_between(anchor, head, block_separator=" "))
