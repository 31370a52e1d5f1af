"""In-memory document tree: blocks of marked text runs addressed by structural positions.

Positions follow the usual rich-text editor scheme. A text block occupies
``len(text) + 2`` positions (an opening token, one per character, a closing
token) and a page break occupies one. Position 0 sits before the first block.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Callable, Iterator, Sequence

from inkwell.document.marks import Mark, apply_marks, footnote_id
from inkwell.errors import OutOfRange

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TextRun:
    text: str
    marks: frozenset[Mark] = frozenset()


@dataclass(slots=True)
class Paragraph:
    runs: list[TextRun] = field(default_factory=list)


@dataclass(slots=True)
class Heading:
    level: int
    runs: list[TextRun] = field(default_factory=list)


@dataclass(slots=True)
class FootnoteNote:
    """Block holding the body of footnote ``number``; the number itself is rendered, not stored as text."""

    number: int
    runs: list[TextRun] = field(default_factory=list)


@dataclass(slots=True)
class PageBreak:
    pass


TextBlock = Paragraph | Heading | FootnoteNote
Block = Paragraph | Heading | FootnoteNote | PageBreak


def is_textblock(block: Block) -> bool:
    return not isinstance(block, PageBreak)


def block_text(block: Block) -> str:
    if isinstance(block, PageBreak):
        return ""
    return "".join(run.text for run in block.runs)


def block_size(block: Block) -> int:
    if isinstance(block, PageBreak):
        return 1
    return len(block_text(block)) + 2


@dataclass(frozen=True, slots=True)
class Leaf:
    """A text run together with where it sits in the tree."""

    run: TextRun
    start: int
    block_index: int

    @property
    def end(self) -> int:
        return self.start + len(self.run.text)


# ---------------------------------------------------------------------------
# Transaction steps
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class DeleteRange:
    start: int
    end: int


@dataclass(frozen=True, slots=True)
class InsertText:
    position: int
    text: str
    marks: frozenset[Mark] = frozenset()


@dataclass(frozen=True, slots=True)
class AddMarks:
    start: int
    end: int
    marks: tuple[Mark, ...]


@dataclass(frozen=True, slots=True)
class SetSelection:
    anchor: int
    head: int


@dataclass(frozen=True, slots=True)
class AppendBlock:
    block: Block


@dataclass(frozen=True, slots=True)
class ReplaceContent:
    blocks: tuple[Block, ...]


Step = DeleteRange | InsertText | AddMarks | SetSelection | AppendBlock | ReplaceContent


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    revision: int
    steps: tuple[Step, ...]


ChangeListener = Callable[[ChangeEvent], None]


class Document:
    """Mutable document tree owned by one editing session."""

    def __init__(self, blocks: Sequence[Block] | None = None) -> None:
        self._blocks: list[Block] = [copy.deepcopy(b) for b in blocks or []]
        for block in self._blocks:
            if is_textblock(block):
                block.runs = _normalize(block.runs)
        self._selection = (0, 0)
        self._listeners: list[ChangeListener] = []
        self.revision = 0

    # -- reading ------------------------------------------------------------

    @property
    def blocks(self) -> tuple[Block, ...]:
        return tuple(self._blocks)

    @property
    def size(self) -> int:
        return sum(block_size(b) for b in self._blocks)

    @property
    def selection(self) -> tuple[int, int]:
        return self._selection

    def leaves(self) -> Iterator[Leaf]:
        yield from _leaves(self._blocks)

    def text(self) -> str:
        return "".join(leaf.run.text for leaf in self.leaves())

    def text_between(self, start: int, end: int, block_separator: str = "") -> str:
        """Text in the range; ``block_separator`` is inserted wherever the text moves to another block."""
        start, end = sorted((start, end))
        parts = []
        last_block: int | None = None
        for leaf in self.leaves():
            lo = max(start, leaf.start)
            hi = min(end, leaf.end)
            if lo < hi:
                if last_block is not None and leaf.block_index != last_block:
                    parts.append(block_separator)
                parts.append(leaf.run.text[lo - leaf.start : hi - leaf.start])
                last_block = leaf.block_index
        return "".join(parts)

    def marks_between(self, start: int, end: int) -> frozenset[Mark]:
        """Marks shared by every character in the range (the marks at ``start`` for an empty range)."""
        start, end = sorted((start, end))
        shared: frozenset[Mark] | None = None
        for leaf in self.leaves():
            if start == end:
                if leaf.start <= start < leaf.end:
                    return leaf.run.marks
                continue
            if max(start, leaf.start) < min(end, leaf.end):
                shared = leaf.run.marks if shared is None else shared & leaf.run.marks
        return shared or frozenset()

    # -- selection ----------------------------------------------------------

    def set_selection(self, anchor: int, head: int | None = None) -> None:
        head = anchor if head is None else head
        size = self.size
        for pos in (anchor, head):
            if pos < 0 or pos > size:
                raise OutOfRange(f"Selection position {pos} outside document of size {size}")
        self._selection = (anchor, head)

    # -- change notification ------------------------------------------------

    def on_change(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def off_change(self, listener: ChangeListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # -- mutation -----------------------------------------------------------

    def transact(self, steps: Sequence[Step], *, silent: bool = False) -> ChangeEvent:
        """Apply ``steps`` atomically; nothing is committed if any step fails."""
        working = copy.deepcopy(self._blocks)
        selection = self._selection
        for step in steps:
            if isinstance(step, SetSelection):
                selection = (step.anchor, step.head)
            else:
                working = _apply_step(working, step)

        size = sum(block_size(b) for b in working)
        if not all(0 <= pos <= size for pos in selection):
            selection = (0, 0)

        self._blocks = working
        self._selection = selection
        self.revision += 1
        event = ChangeEvent(revision=self.revision, steps=tuple(steps))
        logger.debug("Committed revision %d with %d step(s)", self.revision, len(steps))

        if not silent:
            for listener in list(self._listeners):
                listener(event)
        return event


# ---------------------------------------------------------------------------
# Step application (operates on a private working copy)
# ---------------------------------------------------------------------------

def _leaves(blocks: Sequence[Block]) -> Iterator[Leaf]:
    pos = 0
    for index, block in enumerate(blocks):
        if not is_textblock(block):
            pos += 1
            continue
        pos += 1
        for run in block.runs:
            if run.text:
                yield Leaf(run=run, start=pos, block_index=index)
                pos += len(run.text)
        pos += 1


def _locate(blocks: Sequence[Block], position: int) -> tuple[int, int]:
    """Resolve a position inside text block content to ``(block_index, local_offset)``."""
    pos = 0
    for index, block in enumerate(blocks):
        size = block_size(block)
        if is_textblock(block) and pos + 1 <= position <= pos + size - 1:
            return index, position - pos - 1
        pos += size
    raise OutOfRange(f"Position {position} is not inside any text block")


def _split(runs: list[TextRun], offset: int) -> int:
    """Ensure a run boundary at ``offset``; return the index of the first run after it."""
    acc = 0
    for index, run in enumerate(runs):
        if offset == acc:
            return index
        length = len(run.text)
        if offset < acc + length:
            cut = offset - acc
            runs[index : index + 1] = [
                TextRun(run.text[:cut], run.marks),
                TextRun(run.text[cut:], run.marks),
            ]
            return index + 1
        acc += length
    if offset == acc:
        return len(runs)
    raise OutOfRange(f"Local offset {offset} beyond block length {acc}")


def _normalize(runs: list[TextRun]) -> list[TextRun]:
    out: list[TextRun] = []
    for run in runs:
        if not run.text:
            continue
        # Each footnote marker stays its own run, even next to an identical one.
        if out and out[-1].marks == run.marks and footnote_id(run.marks) is None:
            out[-1] = TextRun(out[-1].text + run.text, run.marks)
        else:
            out.append(TextRun(run.text, run.marks))
    return out


def _apply_step(blocks: list[Block], step: Step) -> list[Block]:
    if isinstance(step, ReplaceContent):
        return Document(step.blocks)._blocks
    if isinstance(step, AppendBlock):
        block = copy.deepcopy(step.block)
        if is_textblock(block):
            block.runs = _normalize(block.runs)
        return blocks + [block]
    if isinstance(step, InsertText):
        return _insert_text(blocks, step)
    if isinstance(step, DeleteRange):
        return _delete_range(blocks, step)
    if isinstance(step, AddMarks):
        return _add_marks(blocks, step)
    raise TypeError(f"Unknown step {step!r}")


def _insert_text(blocks: list[Block], step: InsertText) -> list[Block]:
    index, local = _locate(blocks, step.position)
    block = blocks[index]
    at = _split(block.runs, local)
    block.runs.insert(at, TextRun(step.text, step.marks))
    block.runs = _normalize(block.runs)
    return blocks


def _delete_range(blocks: list[Block], step: DeleteRange) -> list[Block]:
    if step.end < step.start:
        raise OutOfRange(f"Inverted range {step.start}..{step.end}")
    if step.start == step.end:
        return blocks
    first, first_local = _locate(blocks, step.start)
    last, last_local = _locate(blocks, step.end)

    head = blocks[first]
    tail = blocks[last]
    cut = _split(head.runs, first_local)
    kept_head = head.runs[:cut]
    if first == last:
        resume = _split(head.runs, last_local)
        head.runs = _normalize(kept_head + head.runs[resume:])
        return blocks

    resume = _split(tail.runs, last_local)
    head.runs = _normalize(kept_head + tail.runs[resume:])
    return blocks[: first + 1] + blocks[last + 1 :]


def _add_marks(blocks: list[Block], step: AddMarks) -> list[Block]:
    start, end = sorted((step.start, step.end))
    pos = 0
    for block in blocks:
        size = block_size(block)
        if not is_textblock(block):
            pos += size
            continue
        content_start = pos + 1
        content_end = pos + size - 1
        lo = max(start, content_start)
        hi = min(end, content_end)
        if lo < hi:
            first = _split(block.runs, lo - content_start)
            last = _split(block.runs, hi - content_start)
            for run in block.runs[first:last]:
                run.marks = apply_marks(run.marks, step.marks)
            block.runs = _normalize(block.runs)
        pos += size
    return blocks
