"""Write-ahead log format.

A log is a sequence of blocks; a block holds records and an optional zero
trailer. A record is [checksum: u32, length: u16, type: u8, data], where the
checksum is the masked CRC-32C of the type byte and the data.
"""

from __future__ import annotations

import struct
from enum import IntEnum
from typing import BinaryIO, Iterator

from ldbcore.errors import Status, StatusCode, status_from_oserror

BLOCK_SIZE = 32 * 1024
HEADER_SIZE = 4 + 2 + 1

_MASK32 = 0xFFFFFFFF
_MASK_DELTA = 0xA282EAD8
_HEADER = struct.Struct("<IHB")


def _make_crc_table() -> list[int]:
    table = []
    for i in range(256):
        c = i
        for _ in range(8):
            c = (c >> 1) ^ 0x82F63B78 if c & 1 else c >> 1
        table.append(c)
    return table


_CRC_TABLE = _make_crc_table()


def crc32c(data: bytes) -> int:
    """CRC-32C (Castagnoli) checksum of ``data``."""
    crc = _MASK32
    for byte in data:
        crc = _CRC_TABLE[(crc ^ byte) & 0xFF] ^ (crc >> 8)
    return crc ^ _MASK32


def mask_crc(crc: int) -> int:
    """Rotate and offset a checksum so that checksums of checksums stay distinct."""
    rotated = ((crc >> 15) | (crc << 17)) & _MASK32
    return (rotated + _MASK_DELTA) & _MASK32


def unmask_crc(masked: int) -> int:
    """Invert :func:`mask_crc`."""
    rot = (masked - _MASK_DELTA) & _MASK32
    return ((rot >> 17) | (rot << 15)) & _MASK32


class RecordType(IntEnum):
    """Position of a fragment within a logical record."""

    FULL = 1
    FIRST = 2
    MIDDLE = 3
    LAST = 4


class LogWriter:
    """Appends records to a log stream.

    ``offset`` is the position in an existing log at which writing continues.
    """

    def __init__(self, dst: BinaryIO, offset: int = 0, block_size: int = BLOCK_SIZE):
        if block_size <= HEADER_SIZE:
            raise ValueError("block size must exceed the record header size")
        self.dst = dst
        self.block_size = block_size
        self.block_offset = offset % block_size

    def add_record(self, record: bytes) -> int:
        """Write a record, fragmenting it across blocks; return the size of the last fragment written."""
        view = memoryview(bytes(record))
        first = True
        written = 0
        while view:
            space_left = self.block_size - self.block_offset
            if space_left < HEADER_SIZE:
                self._write(bytes(space_left))
                self.block_offset = 0

            avail = self.block_size - self.block_offset - HEADER_SIZE
            frag_len = min(len(view), avail)
            last = frag_len == len(view)

            if first and last:
                kind = RecordType.FULL
            elif first:
                kind = RecordType.FIRST
            elif last:
                kind = RecordType.LAST
            else:
                kind = RecordType.MIDDLE

            written = self._emit(kind, bytes(view[:frag_len]))
            view = view[frag_len:]
            first = False
        return written

    def _emit(self, kind: RecordType, fragment: bytes) -> int:
        if len(fragment) >= 1 << 16:
            raise ValueError("record fragment too long")
        checksum = mask_crc(crc32c(bytes([kind]) + fragment))
        encoded = _HEADER.pack(checksum, len(fragment), kind) + fragment
        self._write(encoded)
        self.block_offset += len(encoded)
        return len(encoded)

    def _write(self, data: bytes) -> None:
        if not data:
            return
        try:
            self.dst.write(data)
        except OSError as e:
            raise status_from_oserror(e) from e

    def flush(self) -> None:
        """Flush the underlying stream."""
        try:
            self.dst.flush()
        except OSError as e:
            raise status_from_oserror(e) from e


class LogReader:
    """Reads records back from a log stream."""

    def __init__(self, src: BinaryIO, checksums: bool = True, block_size: int = BLOCK_SIZE):
        self.src = src
        self.checksums = checksums
        self.block_size = block_size
        self._block_offset = 0

    def _read(self, size: int) -> bytes:
        try:
            return self.src.read(size) or b""
        except OSError as e:
            raise status_from_oserror(e) from e

    def read(self) -> bytes | None:
        """Return the next record, or None at the end of the log."""
        parts: list[bytes] = []
        while True:
            remaining = self.block_size - self._block_offset
            if remaining < HEADER_SIZE:
                if len(self._read(remaining)) < remaining:
                    raise Status(StatusCode.IO_ERROR, "failed to fill whole buffer")
                self._block_offset = 0

            header = self._read(HEADER_SIZE)
            if not header:
                return None
            if len(header) < HEADER_SIZE:
                raise Status(StatusCode.CORRUPTION, "truncated record header")
            self._block_offset += len(header)

            checksum, length, kind = _HEADER.unpack(header)
            data = self._read(length)
            self._block_offset += len(data)

            if self.checksums and unmask_crc(checksum) != crc32c(bytes([kind]) + data):
                raise Status(StatusCode.CORRUPTION, "Invalid Checksum")

            parts.append(data + bytes(length - len(data)))

            if kind in (RecordType.FULL, RecordType.LAST):
                return b"".join(parts)

    def __iter__(self) -> Iterator[bytes]:
        while (record := self.read()) is not None:
            yield record