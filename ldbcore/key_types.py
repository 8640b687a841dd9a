"""Encodings of user, internal, lookup and memtable keys."""

from __future__ import annotations

from enum import IntEnum
from typing import Callable

_TAG_LEN = 8

Comparator = Callable[[bytes, bytes], int]


class ValueType(IntEnum):
    """Kind of an entry: a deletion marker or a value."""

    TYPE_DELETION = 0
    TYPE_VALUE = 1


def encode_varint(value: int) -> bytes:
    """Encode a non-negative integer as a little-endian base-128 varint."""
    if value < 0:
        raise ValueError("varint value must be non-negative")
    out = bytearray()
    while value >= 0x80:
        out.append((value & 0x7F) | 0x80)
        value >>= 7
    out.append(value)
    return bytes(out)


def decode_varint(data: bytes, offset: int = 0) -> tuple[int, int]:
    """Decode a varint at ``offset``; return (value, number of bytes consumed)."""
    value = 0
    shift = 0
    for consumed, byte in enumerate(data[offset:], start=1):
        value |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return value, consumed
        shift += 7
    raise ValueError("truncated varint")


def bytewise_compare(a: bytes, b: bytes) -> int:
    """Lexicographic byte comparison returning -1, 0 or 1."""
    return (a > b) - (a < b)


def _encode_tag(value_type: ValueType, seq: int) -> bytes:
    return ((seq << 8) | int(value_type)).to_bytes(_TAG_LEN, "little")


def _decode_tag(data: bytes) -> int:
    return int.from_bytes(data[:_TAG_LEN], "little")


def parse_tag(tag: int) -> tuple[ValueType, int]:
    """Split a tag into (value type, sequence number)."""
    seq = tag >> 8
    typ = ValueType.TYPE_DELETION if tag & 0xFF == 0 else ValueType.TYPE_VALUE
    return typ, seq


class LookupKey:
    """A key of the form [keylen: varint, user key, tag: 8 bytes] used for lookups."""

    __slots__ = ("_key", "_key_offset")

    def __init__(self, user_key: bytes, seq: int, value_type: ValueType = ValueType.TYPE_VALUE):
        internal_len = len(user_key) + _TAG_LEN
        prefix = encode_varint(internal_len)
        self._key = prefix + bytes(user_key) + _encode_tag(value_type, seq)
        self._key_offset = len(prefix)

    @property
    def memtable_key(self) -> bytes:
        """The full memtable-formatted key."""
        return self._key

    @property
    def user_key(self) -> bytes:
        """Only the user key portion."""
        return self._key[self._key_offset:-_TAG_LEN]

    @property
    def internal_key(self) -> bytes:
        """The user key followed by the tag."""
        return self._key[self._key_offset:]

    def __repr__(self) -> str:
        return f"LookupKey({self._key!r})"


def build_memtable_key(key: bytes, value: bytes, value_type: ValueType, seq: int) -> bytes:
    """Build [keylen, key, tag, vallen, value], where keylen counts the tag too."""
    return b"".join(
        (
            encode_varint(len(key) + _TAG_LEN),
            bytes(key),
            _encode_tag(value_type, seq),
            encode_varint(len(value)),
            bytes(value),
        )
    )


def parse_memtable_key(mkey: bytes) -> tuple[int, int, int, int, int]:
    """Return (keylen, key offset, tag, vallen, value offset) of a memtable key.

    If the key holds no tag, the last three values are zero.
    """
    keylen, i = decode_varint(mkey)
    keyoff = i
    i += keylen - _TAG_LEN
    if len(mkey) > i:
        tag = _decode_tag(mkey[i:i + _TAG_LEN])
        i += _TAG_LEN
        vallen, j = decode_varint(mkey, i)
        return keylen - _TAG_LEN, keyoff, tag, vallen, i + j
    return keylen - _TAG_LEN, keyoff, 0, 0, 0


def cmp_memtable_key(ucmp: Comparator, a: bytes, b: bytes) -> int:
    """Compare memtable keys: by user key, then by descending sequence number."""
    alen, aoff = decode_varint(a)
    blen, boff = decode_varint(b)
    order = ucmp(a[aoff:aoff + alen - _TAG_LEN], b[boff:boff + blen - _TAG_LEN])
    if order:
        return -1 if order < 0 else 1
    aseq = parse_tag(_decode_tag(a[aoff + alen - _TAG_LEN:aoff + alen]))[1]
    bseq = parse_tag(_decode_tag(b[boff + blen - _TAG_LEN:boff + blen]))[1]
    return bytewise_compare_int(bseq, aseq)


def bytewise_compare_int(a: int, b: int) -> int:
    return (a > b) - (a < b)


def parse_internal_key(ikey: bytes) -> tuple[ValueType, int, bytes]:
    """Split an internal key into (value type, sequence number, user key)."""
    if not ikey:
        return ValueType.TYPE_DELETION, 0, b""
    if len(ikey) < _TAG_LEN:
        raise ValueError("internal key shorter than its tag")
    typ, seq = parse_tag(_decode_tag(ikey[-_TAG_LEN:]))
    return typ, seq, bytes(ikey[:-_TAG_LEN])


def cmp_internal_key(ucmp: Comparator, a: bytes, b: bytes) -> int:
    """Compare internal keys: by user key, then by descending sequence number."""
    order = ucmp(a[:-_TAG_LEN], b[:-_TAG_LEN])
    if order:
        return -1 if order < 0 else 1
    seqa = parse_tag(_decode_tag(a[-_TAG_LEN:]))[1]
    seqb = parse_tag(_decode_tag(b[-_TAG_LEN:]))[1]
    return bytewise_compare_int(seqb, seqa)


def truncate_to_userkey(ikey: bytes) -> bytes:
    """Drop the tag from an internal key."""
    if len(ikey) < _TAG_LEN:
        raise ValueError("internal key shorter than its tag")
    return bytes(ikey[:-_TAG_LEN])