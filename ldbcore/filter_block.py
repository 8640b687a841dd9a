"""Filter blocks: one filter per 2 KiB range of table data, plus an offset index."""

from __future__ import annotations

import struct

from ldbcore.errors import Status, StatusCode
from ldbcore.filter import FilterPolicy

FILTER_BASE_LOG2 = 11
FILTER_BASE = 1 << FILTER_BASE_LOG2

_U32 = struct.Struct("<I")


def get_filter_index(offset: int, base_lg2: int) -> int:
    """Index of the filter covering the block that starts at ``offset``."""
    return offset >> base_lg2


class FilterBlockBuilder:
    """Builds a filter block.

    Layout: [filter0, filter1, ..., offset of filter0, offset of filter1, ...,
    offset of the offsets array, log2 of the filter base], where offsets take
    4 bytes each and the final field 1 byte. Consecutive offsets may be equal.
    """

    def __init__(self, policy: FilterPolicy):
        self.policy = policy
        self._filters = bytearray()
        self._filter_offsets: list[int] = []
        self._keys: list[bytes] = []

    def size_estimate(self) -> int:
        """Approximate size of the finished block in bytes."""
        return len(self._filters) + 4 * len(self._filter_offsets) + 4 + 1

    def filter_name(self) -> str:
        """Name of the filter policy in use."""
        return self.policy.name()

    def add_key(self, key: bytes) -> None:
        """Add a key to the filter of the current block."""
        self._keys.append(bytes(key))

    def start_block(self, offset: int) -> None:
        """Announce that a new data block begins at ``offset``."""
        filter_ix = get_filter_index(offset, FILTER_BASE_LOG2)
        if filter_ix < len(self._filter_offsets):
            raise ValueError(
                f"block offset {offset} lies before the current filter range"
            )
        while filter_ix > len(self._filter_offsets):
            self._generate_filter()

    def _generate_filter(self) -> None:
        self._filter_offsets.append(len(self._filters))
        if not self._keys:
            return
        self._filters.extend(self.policy.create_filter(self._keys))
        self._keys.clear()

    def finish(self) -> bytes:
        """Return the encoded filter block."""
        if self._keys:
            self._generate_filter()

        offsets_offset = len(self._filters)
        parts = [bytes(self._filters)]
        parts.extend(_U32.pack(offset) for offset in self._filter_offsets)
        parts.append(_U32.pack(offsets_offset))
        parts.append(bytes([FILTER_BASE_LOG2]))
        return b"".join(parts)


class FilterBlockReader:
    """Answers key queries against an encoded filter block."""

    def __init__(self, policy: FilterPolicy, data: bytes):
        if len(data) < 5:
            raise ValueError("filter block shorter than its footer")
        self.policy = policy
        self._block = bytes(data)
        self._filter_base_lg2 = self._block[-1]
        self._offsets_offset = _U32.unpack_from(self._block, len(self._block) - 5)[0]

    def num(self) -> int:
        """Number of filters in the block."""
        return (len(self._block) - self._offsets_offset - 5) // 4

    def offset_of(self, index: int) -> int:
        """Offset of the filter with the given index."""
        return _U32.unpack_from(self._block, self._offsets_offset + 4 * index)[0]

    def key_may_match(self, block_offset: int, key: bytes) -> bool:
        """Whether ``key`` may be in the data block starting at ``block_offset``."""
        index = get_filter_index(block_offset, self._filter_base_lg2)
        if index > self.num():
            return True

        begin = self.offset_of(index)
        end = self.offset_of(index + 1)
        if not begin < end or end > self._offsets_offset:
            raise Status(
                StatusCode.CORRUPTION,
                f"invalid filter range {begin}..{end} for block at {block_offset}",
            )
        return self.policy.key_may_match(key, self._block[begin:end])