"""Abstraction over the storage a database lives on, plus clock and logging helpers."""

from __future__ import annotations

import io
import os
import sys
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import BinaryIO, IO, Union

from ldbcore.errors import status_from_oserror

PathLike = Union[str, "os.PathLike[str]"]


class RandomAccess(ABC):
    """A source that can be read at arbitrary offsets."""

    @abstractmethod
    def read_at(self, offset: int, size: int) -> bytes:
        """Read up to ``size`` bytes starting at ``offset``; fewer at the end of the data."""


class FileRandomAccess(RandomAccess):
    """Random access over an open binary file."""

    def __init__(self, file: BinaryIO):
        self._file = file
        self._lock = threading.Lock()

    def read_at(self, offset: int, size: int) -> bytes:
        try:
            if hasattr(os, "pread"):
                return os.pread(self._file.fileno(), size, offset)
            with self._lock:
                self._file.seek(offset)
                return self._file.read(size)
        except OSError as e:
            raise status_from_oserror(e) from e

    def close(self) -> None:
        self._file.close()

    def __enter__(self) -> FileRandomAccess:
        return self

    def __exit__(self, *exc) -> None:
        self.close()


@dataclass(frozen=True)
class FileLock:
    """Handle for a lock held on a file."""

    id: str


class Logger:
    """Writes newline-terminated messages to a stream, ignoring write failures."""

    def __init__(self, dst: IO):
        self.dst = dst

    def log(self, message: str) -> None:
        line = message + "\n"
        try:
            if isinstance(self.dst, io.TextIOBase):
                self.dst.write(line)
            else:
                self.dst.write(line.encode())
        except (OSError, ValueError):
            pass


def stderr_logger() -> Logger:
    """Return a logger writing to standard error."""
    return Logger(sys.stderr)


def micros() -> int:
    """Microseconds since the Unix epoch."""
    return time.time_ns() // 1000


def sleep_for(micros: int) -> None:
    """Sleep for the given number of microseconds."""
    time.sleep(micros / 1_000_000)


class Env(ABC):
    """Storage environment: files, directories, locks, logging and time."""

    @abstractmethod
    def open_sequential_file(self, path: PathLike) -> BinaryIO:
        """Open a file for sequential reading."""

    @abstractmethod
    def open_random_access_file(self, path: PathLike) -> RandomAccess:
        """Open a file for reading at arbitrary offsets."""

    @abstractmethod
    def open_writable_file(self, path: PathLike) -> BinaryIO:
        """Open a file for writing from its start, creating it if needed."""

    @abstractmethod
    def open_appendable_file(self, path: PathLike) -> BinaryIO:
        """Open a file for appending, creating it if needed."""

    @abstractmethod
    def exists(self, path: PathLike) -> bool:
        """Whether the path exists."""

    @abstractmethod
    def children(self, path: PathLike) -> list[str]:
        """Names of the entries inside a directory."""

    @abstractmethod
    def size_of(self, path: PathLike) -> int:
        """Size of a file in bytes."""

    @abstractmethod
    def delete(self, path: PathLike) -> None:
        """Remove a file."""

    @abstractmethod
    def mkdir(self, path: PathLike) -> None:
        """Create a directory."""

    @abstractmethod
    def rmdir(self, path: PathLike) -> None:
        """Remove a directory and its contents."""

    @abstractmethod
    def rename(self, old: PathLike, new: PathLike) -> None:
        """Rename a file."""

    @abstractmethod
    def lock(self, path: PathLike) -> FileLock:
        """Take an exclusive lock on a file."""

    @abstractmethod
    def unlock(self, lock: FileLock) -> None:
        """Release a lock taken with :meth:`lock`."""

    def new_logger(self, path: PathLike) -> Logger:
        """Return a logger appending to the given file."""
        return Logger(self.open_appendable_file(path))

    def micros(self) -> int:
        """Microseconds since the Unix epoch."""
        return micros()

    def sleep_for(self, micros: int) -> None:
        """Sleep for the given number of microseconds."""
        sleep_for(micros)