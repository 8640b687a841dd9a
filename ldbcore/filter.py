"""Filter policies for quickly ruling out keys that a block cannot contain."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

_MASK32 = 0xFFFFFFFF
_BLOOM_SEED = 0xBC9F1D34
_TAG_LEN = 8


class FilterPolicy(ABC):
    """An algorithm for building and querying key filters."""

    @abstractmethod
    def name(self) -> str:
        """A string identifying this policy."""

    @abstractmethod
    def create_filter(self, keys: Sequence[bytes]) -> bytes:
        """Build a filter matching all of the given keys."""

    @abstractmethod
    def key_may_match(self, key: bytes, filter_data: bytes) -> bool:
        """Whether the key may be contained in the filter."""


class NoFilterPolicy(FilterPolicy):
    """A policy whose filters are empty and match every key."""

    def name(self) -> str:
        return "_"

    def create_filter(self, keys: Sequence[bytes]) -> bytes:
        return b""

    def key_may_match(self, key: bytes, filter_data: bytes) -> bool:
        return True


def bloom_hash(data: bytes) -> int:
    """The 32-bit hash used by the bloom filter."""
    m = 0xC6A4A793
    limit = len(data)
    h = _BLOOM_SEED ^ ((limit * m) & _MASK32)

    full = limit - limit % 4
    for ix in range(0, full, 4):
        w = int.from_bytes(data[ix:ix + 4], "little")
        h = (h + w) & _MASK32
        h = (h * m) & _MASK32
        h ^= h >> 16

    rest = data[full:]
    if rest:
        for i, b in enumerate(rest):
            h = (h + (b << (8 * i))) & _MASK32
        h = (h * m) & _MASK32
        h ^= h >> 24
    return h


def _probe_sequence(key: bytes, k: int, bits: int):
    h = bloom_hash(key)
    delta = ((h >> 17) | (h << 15)) & _MASK32
    for _ in range(k):
        yield h % bits
        h = (h + delta) & _MASK32


class BloomPolicy(FilterPolicy):
    """A bloom filter using a fixed number of bits per key."""

    def __init__(self, bits_per_key: int):
        self.bits_per_key = bits_per_key
        self.k = min(max(int(bits_per_key * 0.69), 1), 30)

    def name(self) -> str:
        return "leveldb.BuiltinBloomFilter2"

    def create_filter(self, keys: Sequence[bytes]) -> bytes:
        filter_bits = len(keys) * self.bits_per_key
        size = 8 if filter_bits < 64 else (filter_bits + 7) // 8
        bits = bytearray(size)
        adj_bits = size * 8

        for key in keys:
            for bitpos in _probe_sequence(key, self.k, adj_bits):
                bits[bitpos // 8] |= 1 << (bitpos % 8)

        bits.append(self.k)
        return bytes(bits)

    def key_may_match(self, key: bytes, filter_data: bytes) -> bool:
        if not filter_data:
            return True
        k = filter_data[-1]
        if k > 30:
            return True
        bits = (len(filter_data) - 1) * 8
        return all(
            filter_data[bitpos // 8] & (1 << (bitpos % 8))
            for bitpos in _probe_sequence(key, k, bits)
        )


def _user_key(internal_key: bytes) -> bytes:
    if len(internal_key) < _TAG_LEN:
        raise ValueError("internal key shorter than its tag")
    return internal_key[:-_TAG_LEN]


class InternalFilterPolicy(FilterPolicy):
    """Wraps a policy, stripping the 8-byte tag from internal keys before use."""

    def __init__(self, inner: FilterPolicy):
        self.inner = inner

    def name(self) -> str:
        return self.inner.name()

    def create_filter(self, keys: Sequence[bytes]) -> bytes:
        return self.inner.create_filter([_user_key(key) for key in keys])

    def key_may_match(self, key: bytes, filter_data: bytes) -> bool:
        return self.inner.key_may_match(_user_key(key), filter_data)