"""Editing session: owns the active document and turns engine results into status messages."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from inkwell.document.marks import Mark
from inkwell.document.markup import parse_markup, serialize
from inkwell.document.model import Document, ReplaceContent, block_text
from inkwell.engine.footnotes import FootnoteMaintainer
from inkwell.engine.positions import PositionMapper
from inkwell.engine.replace import ReplaceEngine, ReplaceMode, ReplaceRequest, ReplaceStatus
from inkwell.engine.search import SearchOptions, SearchSession, count_words, select_match, selected_word_count
from inkwell.errors import ImportErrorBase, InvalidPattern
from inkwell.importer import import_file
from inkwell.importer.pdf import MAX_IMPORT_BYTES

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StatusMessage:
    level: str
    title: str
    description: str

    @property
    def ok(self) -> bool:
        return self.level != "error"


class EditorSession:
    """One open document with footnote upkeep wired to its change events."""

    def __init__(self, markup: str = "", *, max_import_bytes: int = MAX_IMPORT_BYTES) -> None:
        self.document = Document(parse_markup(markup))
        self.footnotes = FootnoteMaintainer(self.document)
        self.footnotes.attach()
        self.footnotes.maintain()
        self.search: SearchSession | None = None
        self._search_revision = -1
        self.max_import_bytes = max_import_bytes

    # -- content ------------------------------------------------------------

    @property
    def markup(self) -> str:
        return serialize(self.document.blocks)

    def load_markup(self, markup: str) -> None:
        """Replace the whole document, e.g. on opening another file."""
        self.document.transact([ReplaceContent(tuple(parse_markup(markup)))])
        self.search = None

    def word_count(self) -> int:
        return sum(count_words(block_text(block)) for block in self.document.blocks)

    def selected_word_count(self) -> int:
        return selected_word_count(self.document)

    # -- find ---------------------------------------------------------------

    def find(self, pattern: str, *, match_case: bool = False, whole_words: bool = False) -> StatusMessage:
        options = SearchOptions(match_case=match_case, whole_words=whole_words)
        try:
            self.search = SearchSession.start(self.document, pattern, options)
            self._search_revision = self.document.revision
        except InvalidPattern as exc:
            self.search = None
            return StatusMessage("error", "Invalid Search", exc.reason)

        if not self.search.matches:
            return StatusMessage("info", "Search Results", "No matches found")
        select_match(self.document, self.search.matches[0])
        return StatusMessage("info", "Search Results", f"Found {self.search.total} matches")

    def find_next(self) -> StatusMessage:
        return self._step(forward=True)

    def find_previous(self) -> StatusMessage:
        return self._step(forward=False)

    def _step(self, *, forward: bool) -> StatusMessage:
        if self.search is None:
            return StatusMessage("info", "Search Results", "No matches found")
        if self.document.revision != self._search_revision:
            # Offsets from an earlier revision no longer line up with the text.
            cursor = self.search.cursor
            self.search = SearchSession.start(self.document, self.search.pattern, self.search.options)
            self.search.cursor = min(cursor, self.search.total - 1)
            self._search_revision = self.document.revision
        match = self.search.next() if forward else self.search.previous()
        if match is None:
            return StatusMessage("info", "Search Results", "No matches found")
        select_match(self.document, match)
        return StatusMessage("info", "Search Results", f"{self.search.cursor + 1} of {self.search.total}")

    # -- replace ------------------------------------------------------------

    def replace_all(
        self,
        pattern: str,
        replacement: str,
        *,
        match_case: bool = False,
        whole_words: bool = False,
        mode: ReplaceMode | str = ReplaceMode.PRESERVE_STYLE,
    ) -> StatusMessage:
        if not pattern:
            return StatusMessage("info", "Replace", "Enter text to find")
        request = ReplaceRequest(
            pattern=pattern,
            replacement=replacement,
            match_case=match_case,
            whole_words=whole_words,
            mode=ReplaceMode(mode),
        )
        try:
            outcome = ReplaceEngine(self.document).replace(request, session=self.search)
        except InvalidPattern as exc:
            return StatusMessage("error", "Invalid Search", exc.reason)

        self.search = None
        if outcome.status is ReplaceStatus.NO_MATCHES:
            return StatusMessage("info", "No Matches", f'No instances of "{pattern}" found')
        if outcome.status is ReplaceStatus.UNCHANGED:
            return StatusMessage(
                "info",
                "Nothing Replaced",
                f'Every match of "{pattern}" crosses a formatting boundary; use reapply-style to replace it',
            )
        description = f'Replaced {outcome.count} instance(s) of "{pattern}" with "{replacement}"'
        if outcome.ambiguous_style:
            description += " (no styled occurrence found; no style applied)"
        return StatusMessage("success", "Replace Complete", description)

    def apply_style_to_all(
        self,
        pattern: str,
        marks: list[Mark] | tuple[Mark, ...],
        *,
        match_case: bool = False,
        whole_words: bool = False,
    ) -> StatusMessage:
        options = SearchOptions(match_case=match_case, whole_words=whole_words)
        try:
            outcome = ReplaceEngine(self.document).apply_style_to_all(pattern, marks, options)
        except InvalidPattern as exc:
            return StatusMessage("error", "Invalid Search", exc.reason)
        if outcome.status is ReplaceStatus.NO_MATCHES:
            return StatusMessage("info", "No Matches", f'No instances of "{pattern}" found')
        return StatusMessage("success", "Style Applied", f'Applied style to {outcome.count} instances of "{pattern}"')

    # -- footnotes ----------------------------------------------------------

    def insert_footnote(self, body: str = "", position: int | None = None) -> StatusMessage:
        mapper = PositionMapper(self.document)
        if mapper.length == 0:
            return StatusMessage("error", "Footnote Not Inserted", "Add some text before inserting a footnote.")
        if position is None:
            position = max(self.document.selection)
        # Snap to the nearest text so the marker never lands between blocks.
        position = mapper.offset_to_position(mapper.position_to_offset(position), assoc=-1)
        number = self.footnotes.insert_footnote(position, body)
        return StatusMessage("success", "Footnote Inserted", f"Footnote {number} added at bottom of page.")

    # -- import -------------------------------------------------------------

    def import_file(self, source: Path | str | bytes, filename: str | None = None) -> StatusMessage:
        """Import a file and replace the document; on failure the document is left untouched."""
        name = filename or (Path(source).name if isinstance(source, (str, Path)) else "file")
        try:
            markup = import_file(source, filename, max_bytes=self.max_import_bytes)
        except ImportErrorBase as exc:
            logger.warning("Import of %s failed: %s", name, exc.user_message)
            return StatusMessage("error", exc.title, exc.user_message)

        self.load_markup(markup)
        return StatusMessage("success", "Import Successful", f"{name} has been imported.")
