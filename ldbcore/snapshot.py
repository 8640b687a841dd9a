"""Snapshots pin a sequence number; the list tracks those still alive."""

from __future__ import annotations

import weakref

MAX_SEQUENCE_NUMBER = (1 << 56) - 1


class Snapshot:
    """A handle on a sequence number, released explicitly or when it is garbage-collected."""

    def __init__(self, handle: int, seq: int, registry: dict[int, int]):
        self._handle = handle
        self._seq = seq
        self._finalizer = weakref.finalize(self, registry.pop, handle, None)

    @property
    def sequence(self) -> int:
        """The sequence number this snapshot refers to."""
        return self._seq

    def release(self) -> None:
        """Remove this snapshot from its list. Calling it again has no effect."""
        self._finalizer()

    def __enter__(self) -> Snapshot:
        return self

    def __exit__(self, *exc) -> None:
        self.release()

    def __repr__(self) -> str:
        return f"Snapshot(sequence={self._seq})"


class SnapshotList:
    """The snapshots currently held on a database."""

    def __init__(self) -> None:
        self._map: dict[int, int] = {}
        self._newest = 0
        self._oldest = 0

    def new_snapshot(self, seq: int) -> Snapshot:
        """Register and return a snapshot for ``seq``."""
        self._newest += 1
        self._map[self._newest] = seq
        if self._oldest == 0:
            self._oldest = self._newest
        return Snapshot(self._newest, seq, self._map)

    def oldest(self) -> int:
        """Lowest sequence number of the live snapshots, or 0 if there are none."""
        oldest = min(self._map.values(), default=MAX_SEQUENCE_NUMBER)
        return 0 if oldest == MAX_SEQUENCE_NUMBER else oldest

    def newest(self) -> int:
        """Highest sequence number of the live snapshots, or 0 if there are none."""
        return max(self._map.values(), default=0)

    def empty(self) -> bool:
        """Whether no snapshot has ever been taken from this list."""
        return self._oldest == 0