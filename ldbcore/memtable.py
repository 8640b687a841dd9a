"""In-memory table of recent writes, stored as encoded entries in a skip map."""

from __future__ import annotations

from functools import partial
from typing import Optional

from ldbcore.key_types import (
    Comparator,
    LookupKey,
    ValueType,
    build_memtable_key,
    bytewise_compare,
    cmp_memtable_key,
    parse_internal_key,
    parse_memtable_key,
)
from ldbcore.skipmap import Entry, LdbIterator, SkipMap, SkipMapIterator

_TAG_LEN = 8


def _is_value(tag: int) -> bool:
    return tag & 0xFF == ValueType.TYPE_VALUE


class MemTable:
    """Insert, look up and iterate entries held in memory.

    Key and value are both encoded into the skip map key; ``cmp`` orders the
    user keys, and entries with equal user keys are ordered by descending
    sequence number.
    """

    def __init__(self, cmp: Comparator = bytewise_compare):
        self._map = SkipMap(partial(cmp_memtable_key, cmp))

    def __len__(self) -> int:
        return len(self._map)

    def approx_mem_usage(self) -> int:
        """Approximate number of bytes used by the table."""
        return self._map.approx_memory()

    def add(self, seq: int, value_type: ValueType, key: bytes, value: bytes) -> None:
        """Record an entry for ``key`` at sequence number ``seq``."""
        self._map.insert(build_memtable_key(key, value, value_type, seq), b"")

    def get(self, lookup_key: LookupKey) -> tuple[Optional[bytes], bool]:
        """Return (value, deleted) for the newest entry not newer than the lookup key.

        The value is None when no entry exists; ``deleted`` tells a deletion
        marker apart from a missing entry.
        """
        it = self._map.iter()
        it.seek(lookup_key.memtable_key)
        entry = it.current()
        if entry is not None:
            found = entry[0]
            keylen, keyoff, tag, vallen, valoff = parse_memtable_key(found)
            if lookup_key.user_key == found[keyoff:keyoff + keylen]:
                if _is_value(tag):
                    return found[valoff:valoff + vallen], False
                return None, True
        return None, False

    def iter(self) -> MemtableIterator:
        """An iterator positioned before the first entry."""
        return MemtableIterator(self._map.iter())


class MemtableIterator(LdbIterator):
    """Iterates over a MemTable, yielding internal keys and their values.

    Deleted entries are not skipped when moving forward.
    """

    def __init__(self, inner: SkipMapIterator):
        self._inner = inner

    def advance(self) -> bool:
        if not self._inner.advance():
            return False
        return self._inner.valid()

    def valid(self) -> bool:
        return self._inner.valid()

    def current(self) -> Optional[Entry]:
        """The current (internal key, value), or None if not valid."""
        entry = self._inner.current()
        if entry is None:
            return None
        mkey = entry[0]
        keylen, keyoff, _, vallen, valoff = parse_memtable_key(mkey)
        return mkey[keyoff:keyoff + keylen + _TAG_LEN], mkey[valoff:valoff + vallen]

    def seek(self, key: bytes) -> None:
        """Position at the first entry at or after the given internal key."""
        _, seq, user_key = parse_internal_key(key)
        self._inner.seek(LookupKey(user_key, seq).memtable_key)

    def reset(self) -> None:
        self._inner.reset()

    def prev(self) -> bool:
        """Move back to the previous entry that is not a deletion."""
        while self._inner.prev():
            entry = self._inner.current()
            if entry is None:
                return False
            if _is_value(parse_memtable_key(entry[0])[2]):
                return True
        return False