"""An iterator merging several sorted iterators into one sorted sequence."""

from __future__ import annotations

from enum import Enum
from typing import Optional, Sequence

from ldbcore.key_types import Comparator, bytewise_compare
from ldbcore.skipmap import Entry, LdbIterator


class _Direction(Enum):
    FORWARD = "forward"
    REVERSE = "reverse"


def _sign(value: int) -> int:
    return (value > 0) - (value < 0)


class MergingIter(LdbIterator):
    """Merges sorted iterators, always positioned on the smallest (or, backwards, largest) entry."""

    def __init__(self, iters: Sequence[LdbIterator], cmp: Comparator = bytewise_compare):
        self._iters = list(iters)
        self._cmp = cmp
        self._current: Optional[int] = None
        self._direction = _Direction.FORWARD

    def _init(self) -> None:
        for it in self._iters:
            it.reset()
            it.advance()
            if not it.valid():
                it.reset()
        self._find(smallest=True)

    def _update_direction(self, direction: _Direction) -> None:
        """Re-position all other iterators around the current entry after a direction change."""
        if self._direction is direction:
            return
        entry = self.current()
        if entry is None or self._current is None:
            return
        key = entry[0]
        others = [it for i, it in enumerate(self._iters) if i != self._current]

        if direction is _Direction.FORWARD:
            self._direction = _Direction.FORWARD
            for it in others:
                it.seek(key)
                found = it.current()
                if found is not None and self._cmp(found[0], key) == 0:
                    it.advance()
        else:
            self._direction = _Direction.REVERSE
            for it in others:
                it.seek(key)
                if it.valid():
                    it.prev()
                else:
                    while it.advance():
                        pass

    def _find(self, smallest: bool) -> None:
        if not self._iters:
            return
        wanted = -1 if smallest else 1
        best = 0
        for i, it in enumerate(self._iters[1:], start=1):
            candidate = it.current()
            if candidate is None:
                continue
            incumbent = self._iters[best].current()
            if incumbent is None or _sign(self._cmp(candidate[0], incumbent[0])) == wanted:
                best = i
        self._current = best

    def advance(self) -> bool:
        if self._current is None:
            self._init()
        else:
            self._update_direction(_Direction.FORWARD)
            it = self._iters[self._current]
            if not it.advance():
                # Out of rotation: an invalid iterator is ignored from now on.
                it.reset()
            self._find(smallest=True)
        return self.valid()

    def valid(self) -> bool:
        return self._current is not None and self._iters[self._current].valid()

    def current(self) -> Optional[Entry]:
        if self._current is None:
            return None
        return self._iters[self._current].current()

    def seek(self, key: bytes) -> None:
        for it in self._iters:
            it.seek(key)
        self._find(smallest=True)

    def reset(self) -> None:
        for it in self._iters:
            it.reset()
        self._current = None

    def prev(self) -> bool:
        if self._current is None or not self._iters[self._current].valid():
            return False
        self._update_direction(_Direction.REVERSE)
        self._iters[self._current].prev()
        self._find(smallest=False)
        return self.valid()