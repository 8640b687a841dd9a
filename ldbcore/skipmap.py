"""A skip list map ordered by a comparator, and the iterator protocol used over it."""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from typing import Callable, Iterator, Optional

from ldbcore.key_types import bytewise_compare

MAX_HEIGHT = 12
BRANCHING_FACTOR = 4

_POINTER_SIZE = 8
_NODE_OVERHEAD = 64
_MAP_OVERHEAD = 64

Comparator = Callable[[bytes, bytes], int]
Entry = tuple[bytes, bytes]


class LdbIterator(ABC):
    """A positioned iterator over key/value entries.

    A freshly created or reset iterator sits before the first entry and is not
    valid; :meth:`advance` moves it onto the next entry.
    """

    @abstractmethod
    def advance(self) -> bool:
        """Move to the next entry; return whether the iterator is now valid."""

    @abstractmethod
    def valid(self) -> bool:
        """Whether the iterator is positioned on an entry."""

    @abstractmethod
    def current(self) -> Optional[Entry]:
        """The (key, value) at the current position, or None if not valid."""

    @abstractmethod
    def seek(self, key: bytes) -> None:
        """Position at the first entry whose key is greater than or equal to ``key``."""

    @abstractmethod
    def reset(self) -> None:
        """Move back before the first entry."""

    @abstractmethod
    def prev(self) -> bool:
        """Move to the previous entry; return whether the iterator is still valid."""

    def next_entry(self) -> Optional[Entry]:
        """Advance and return the entry reached, or None at the end."""
        if not self.advance():
            return None
        return self.current()

    def __iter__(self) -> Iterator[Entry]:
        while (entry := self.next_entry()) is not None:
            yield entry


class _Node:
    __slots__ = ("key", "value", "skips")

    def __init__(self, key: bytes, value: bytes, height: int):
        self.key = key
        self.value = value
        self.skips: list[Optional[_Node]] = [None] * height


class SkipMap:
    """An ordered map backed by a skip list. Keys must be unique and non-empty."""

    def __init__(self, cmp: Comparator = bytewise_compare):
        self._cmp = cmp
        self._head = _Node(b"", b"", MAX_HEIGHT)
        self._rand = random.Random(0xDEADBEEF)
        self._len = 0
        self._approx_mem = _MAP_OVERHEAD + MAX_HEIGHT * _POINTER_SIZE

    def __len__(self) -> int:
        return self._len

    def approx_memory(self) -> int:
        """Approximate number of bytes used by the map."""
        return self._approx_mem

    def contains(self, key: bytes) -> bool:
        """Whether the first key greater than or equal to ``key`` starts with ``key``."""
        node = self._greater_or_equal(key)
        return node is not None and node.key.startswith(key)

    def insert(self, key: bytes, value: bytes) -> None:
        """Insert an entry. Raises ValueError for empty or duplicate keys."""
        key = bytes(key)
        value = bytes(value)
        if not key:
            raise ValueError("skip map keys may not be empty")

        height = self._random_height()
        prevs: list[_Node] = [self._head] * height
        current = self._head
        for level in range(MAX_HEIGHT - 1, -1, -1):
            while (nxt := current.skips[level]) is not None:
                order = self._cmp(nxt.key, key)
                if order == 0:
                    raise ValueError(f"duplicate key in skip map: {key!r}")
                if order > 0:
                    break
                current = nxt
            if level < height:
                prevs[level] = current

        node = _Node(key, value, height)
        for level, prev in enumerate(prevs):
            node.skips[level] = prev.skips[level]
            prev.skips[level] = node

        self._approx_mem += _NODE_OVERHEAD + _POINTER_SIZE * height + len(key) + len(value)
        self._len += 1

    def iter(self) -> SkipMapIterator:
        """An iterator positioned before the first entry."""
        return SkipMapIterator(self)

    def __iter__(self) -> Iterator[Entry]:
        return iter(self.iter())

    def _random_height(self) -> int:
        height = 1
        while height < MAX_HEIGHT and self._rand.getrandbits(32) % BRANCHING_FACTOR == 0:
            height += 1
        return height

    def _greater_or_equal(self, key: bytes) -> Optional[_Node]:
        current = self._head
        for level in range(MAX_HEIGHT - 1, -1, -1):
            while (nxt := current.skips[level]) is not None:
                order = self._cmp(nxt.key, key)
                if order < 0:
                    current = nxt
                    continue
                if order == 0 or level == 0:
                    return nxt
                break
        if current is self._head or self._cmp(current.key, key) < 0:
            return None
        return current

    def _next_smaller(self, key: bytes) -> Optional[_Node]:
        current = self._head
        for level in range(MAX_HEIGHT - 1, -1, -1):
            while (nxt := current.skips[level]) is not None and self._cmp(nxt.key, key) < 0:
                current = nxt
        if current is self._head or self._cmp(current.key, key) >= 0:
            return None
        return current


class SkipMapIterator(LdbIterator):
    """Iterates over a SkipMap; entries inserted while iterating are seen."""

    def __init__(self, skipmap: SkipMap):
        self._map = skipmap
        self._current = skipmap._head

    def advance(self) -> bool:
        nxt = self._current.skips[0]
        if nxt is None:
            self.reset()
            return False
        self._current = nxt
        return True

    def valid(self) -> bool:
        return self._current is not self._map._head

    def current(self) -> Optional[Entry]:
        if not self.valid():
            return None
        return self._current.key, self._current.value

    def seek(self, key: bytes) -> None:
        node = self._map._greater_or_equal(key)
        if node is None:
            self.reset()
        else:
            self._current = node

    def reset(self) -> None:
        self._current = self._map._head

    def prev(self) -> bool:
        if self.valid():
            node = self._map._next_smaller(self._current.key)
            if node is not None:
                self._current = node
                if node.key:
                    return True
        self.reset()
        return False