"""Map between flattened-text offsets and structural document positions."""

from __future__ import annotations

from bisect import bisect_left, bisect_right

from inkwell.document.model import Document
from inkwell.errors import OutOfRange


class PositionMapper:
    """Snapshot of the flattened text view of one document revision.

    The flattened text is the concatenation of every leaf in document order,
    with no separators between blocks. A mapper is only valid for the revision
    it was built from; build a new one after every mutation.
    """

    def __init__(self, document: Document) -> None:
        self._document = document
        self._revision = document.revision
        self._doc_size = document.size

        self._offsets: list[int] = []
        self._starts: list[int] = []
        self._lengths: list[int] = []
        parts: list[str] = []
        offset = 0
        for leaf in document.leaves():
            length = len(leaf.run.text)
            self._offsets.append(offset)
            self._starts.append(leaf.start)
            self._lengths.append(length)
            parts.append(leaf.run.text)
            offset += length
        self.text = "".join(parts)
        self.length = offset

    def offset_to_position(self, offset: int, *, assoc: int = 1) -> int:
        """Structural position of a flattened-text offset.

        An offset on a leaf boundary resolves to the start of the next leaf.
        With ``assoc=-1`` it resolves to the end of the preceding leaf instead,
        which keeps the end of a range inside the block holding its last character.
        """
        self._check_fresh()
        if offset < 0 or offset > self.length:
            raise OutOfRange(f"Offset {offset} outside flattened text of length {self.length}")
        if not self._offsets:
            return 0

        if assoc < 0:
            if offset == 0:
                return self._starts[0]
            idx = bisect_left(self._offsets, offset) - 1
            return self._starts[idx] + (offset - self._offsets[idx])

        if offset == self.length:
            return self._starts[-1] + self._lengths[-1]
        idx = bisect_right(self._offsets, offset) - 1
        return self._starts[idx] + (offset - self._offsets[idx])

    def position_to_offset(self, position: int) -> int:
        """Flattened-text offset of a structural position.

        Positions between leaves (block tokens, page breaks, empty blocks) snap
        forward to the offset of the next leaf.
        """
        self._check_fresh()
        if position < 0 or position > self._doc_size:
            raise OutOfRange(f"Position {position} outside document of size {self._doc_size}")

        idx = bisect_right(self._starts, position) - 1
        if idx >= 0 and position <= self._starts[idx] + self._lengths[idx]:
            return self._offsets[idx] + (position - self._starts[idx])
        nxt = idx + 1
        if nxt < len(self._offsets):
            return self._offsets[nxt]
        return self.length

    def _check_fresh(self) -> None:
        if self._document.revision != self._revision:
            raise OutOfRange(
                f"Position mapper built for revision {self._revision} used at revision {self._document.revision}"
            )
