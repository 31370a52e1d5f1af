"""Keep footnote markers numbered 1..N and paired with exactly one note each.

The maintainer runs after every document change. Markers are renumbered by
ascending original number (document order only breaks ties between duplicates),
so a marker's position on the page does not influence its new number.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Callable

from inkwell.document.marks import FootnoteRef, footnote_id
from inkwell.document.model import (
    AppendBlock,
    Block,
    ChangeEvent,
    Document,
    FootnoteNote,
    InsertText,
    ReplaceContent,
    TextRun,
    is_textblock,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MaintenanceReport:
    renumbered: dict[int, int]
    removed_orphans: tuple[int, ...] = ()
    created_notes: tuple[int, ...] = ()
    next_number: int = 1

    @property
    def changed(self) -> bool:
        return bool(self.renumbered or self.removed_orphans or self.created_notes)


class FootnoteMaintainer:
    """Post-mutation hook enforcing sequential footnote numbering on one document."""

    def __init__(self, document: Document) -> None:
        self.document = document
        self.next_number = 1
        self._attached = False

    def attach(self) -> None:
        if not self._attached:
            self.document.on_change(self._on_change)
            self._attached = True

    def detach(self) -> None:
        if self._attached:
            self.document.off_change(self._on_change)
            self._attached = False

    def _on_change(self, event: ChangeEvent) -> None:
        try:
            report = self.maintain()
        except Exception:
            logger.exception("Footnote maintenance failed after revision %d", event.revision)
            return
        if report.changed:
            logger.debug("Footnotes maintained after revision %d: %s", event.revision, report)

    def maintain(self) -> MaintenanceReport:
        blocks = self.document.blocks
        markers = _marker_numbers(blocks)
        notes = [(idx, b.number) for idx, b in enumerate(blocks) if isinstance(b, FootnoteNote)]
        marker_set = set(markers)

        sequential = sorted(markers) == list(range(1, len(markers) + 1))
        note_numbers = [number for _, number in notes]
        paired = sorted(note_numbers) == sorted(marker_set) and len(note_numbers) == len(set(note_numbers))
        if sequential and paired:
            self.next_number = len(markers) + 1
            return MaintenanceReport(renumbered={}, next_number=self.next_number)

        # Occurrence k of the markers gets the rank of (old number, k).
        order = sorted(range(len(markers)), key=lambda k: (markers[k], k))
        final = [0] * len(markers)
        first_new: dict[int, int] = {}
        for rank, k in enumerate(order, start=1):
            final[k] = rank
            first_new.setdefault(markers[k], rank)

        working = [copy.deepcopy(b) for b in blocks]

        # Orphans and duplicate notes go first; surviving notes follow their marker.
        removed: list[int] = []
        kept_for: set[int] = set()
        survivors: list[Block] = []
        for block in working:
            if isinstance(block, FootnoteNote):
                if block.number not in first_new or block.number in kept_for:
                    removed.append(block.number)
                    continue
                kept_for.add(block.number)
            survivors.append(block)

        # Relabel through a temporary namespace above every live number so a
        # swap or cycle never collides with a label not yet rewritten.
        temp_base = max(markers + note_numbers + [len(markers)]) + 1
        _relabel(survivors, marker_label=lambda k, _old: temp_base + final[k], note_label=lambda old: temp_base + first_new[old])
        _relabel(survivors, marker_label=lambda _k, old: old - temp_base, note_label=lambda old: old - temp_base)

        noted = {b.number for b in survivors if isinstance(b, FootnoteNote)}
        created = [number for number in range(1, len(markers) + 1) if number not in noted]
        survivors.extend(FootnoteNote(number=number) for number in created)

        renumbered = {}
        for k, old in enumerate(markers):
            if old != final[k]:
                renumbered.setdefault(old, final[k])

        self.document.transact([ReplaceContent(tuple(survivors))], silent=True)
        self.next_number = max(final, default=0) + 1
        report = MaintenanceReport(
            renumbered=renumbered,
            removed_orphans=tuple(removed),
            created_notes=tuple(created),
            next_number=self.next_number,
        )
        logger.info(
            "Renumbered %d footnote(s), removed %d orphan note(s), created %d note(s)",
            len(renumbered),
            len(removed),
            len(created),
        )
        return report

    def insert_footnote(self, position: int, body: str = "") -> int:
        """Insert a marker at ``position`` and append its note; returns the number used."""
        number = max(_marker_numbers(self.document.blocks), default=0) + 1
        marker = frozenset({FootnoteRef(number)})
        note = FootnoteNote(number=number, runs=[TextRun(body)] if body else [])
        self.document.transact([InsertText(position, str(number), marker), AppendBlock(note)])
        logger.info("Inserted footnote %d at position %d", number, position)
        return number


def _marker_numbers(blocks: tuple[Block, ...] | list[Block]) -> list[int]:
    numbers = []
    for block in blocks:
        if not is_textblock(block):
            continue
        for run in block.runs:
            number = footnote_id(run.marks)
            if number is not None:
                numbers.append(number)
    return numbers


def _relabel(
    blocks: list[Block],
    *,
    marker_label: Callable[[int, int], int],
    note_label: Callable[[int], int],
) -> None:
    k = 0
    for block in blocks:
        if isinstance(block, FootnoteNote):
            block.number = note_label(block.number)
        if not is_textblock(block):
            continue
        for run in block.runs:
            old = footnote_id(run.marks)
            if old is None:
                continue
            new = marker_label(k, old)
            ref = FootnoteRef(new)
            run.marks = ref.apply(run.marks)
            run.text = str(new)
            k += 1
