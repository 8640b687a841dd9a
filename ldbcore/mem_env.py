"""An in-memory storage environment for tests and ephemeral databases."""

from __future__ import annotations

import io
import os
import threading
from dataclasses import dataclass

from ldbcore.env import Env, FileLock, Logger, PathLike, RandomAccess
from ldbcore.errors import Status, StatusCode


def _path_str(path: PathLike) -> str:
    return os.fspath(path)


class MemFile(RandomAccess):
    """A shared, thread-safe byte buffer that several readers and writers can use at once."""

    def __init__(self, data: bytes = b""):
        self._data = bytearray(data)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def contents(self) -> bytes:
        """A copy of the whole buffer."""
        with self._lock:
            return bytes(self._data)

    def truncate(self) -> None:
        """Discard all content."""
        with self._lock:
            self._data.clear()

    def read_at(self, offset: int, size: int) -> bytes:
        with self._lock:
            return bytes(self._data[offset:offset + size])

    def write_at(self, offset: int, data: bytes) -> None:
        """Write ``data`` at ``offset``, overwriting and extending as needed."""
        with self._lock:
            if offset > len(self._data):
                self._data.extend(bytes(offset - len(self._data)))
            self._data[offset:offset + len(data)] = data


class MemFileReader(io.RawIOBase):
    """Reads a MemFile sequentially from a given offset."""

    def __init__(self, file: MemFile, offset: int = 0):
        super().__init__()
        self.file = file
        self.position = offset

    def readable(self) -> bool:
        return True

    def read(self, size: int = -1) -> bytes:
        if size is None or size < 0:
            chunk = self.file.read_at(self.position, max(len(self.file) - self.position, 0))
        else:
            chunk = self.file.read_at(self.position, size)
        self.position += len(chunk)
        return chunk

    def readinto(self, buffer) -> int:
        chunk = self.read(len(buffer))
        buffer[:len(chunk)] = chunk
        return len(chunk)


class MemFileWriter(io.RawIOBase):
    """Writes into a MemFile at its own offset, starting at the end when appending."""

    def __init__(self, file: MemFile, append: bool):
        super().__init__()
        self.file = file
        self.position = len(file) if append else 0

    def writable(self) -> bool:
        return True

    def write(self, data) -> int:
        data = bytes(data)
        self.file.write_at(self.position, data)
        self.position += len(data)
        return len(data)

    def flush(self) -> None:
        pass


@dataclass
class _Entry:
    file: MemFile
    locked: bool = False


class MemFS:
    """A flat, thread-safe in-memory file system keyed by path string."""

    def __init__(self) -> None:
        self._store: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def open(self, path: PathLike, create: bool) -> MemFile:
        """Return the file at ``path``, creating it if ``create`` is set."""
        name = _path_str(path)
        with self._lock:
            entry = self._store.get(name)
            if entry is not None:
                return entry.file
            if not create:
                raise Status(StatusCode.NOT_FOUND, f"open: file not found: {name}")
            entry = _Entry(MemFile())
            self._store[name] = entry
            return entry.file

    def open_w(self, path: PathLike, append: bool, truncate: bool) -> MemFileWriter:
        """Open a file for writing, optionally truncating it first."""
        file = self.open(path, True)
        if truncate:
            file.truncate()
        return MemFileWriter(file, append)

    def exists(self, path: PathLike) -> bool:
        with self._lock:
            return _path_str(path) in self._store

    def children(self, path: PathLike) -> list[str]:
        prefix = _path_str(path)
        if not prefix.endswith(os.sep):
            prefix += os.sep
        with self._lock:
            return [name[len(prefix):] for name in self._store if name.startswith(prefix)]

    def size_of(self, path: PathLike) -> int:
        name = _path_str(path)
        with self._lock:
            entry = self._store.get(name)
        if entry is None:
            raise Status(StatusCode.NOT_FOUND, f"size_of: file not found: {name}")
        return len(entry.file)

    def delete(self, path: PathLike) -> None:
        name = _path_str(path)
        with self._lock:
            if self._store.pop(name, None) is None:
                raise Status(StatusCode.NOT_FOUND, f"delete: file not found: {name}")

    def rename(self, old: PathLike, new: PathLike) -> None:
        old_name = _path_str(old)
        with self._lock:
            entry = self._store.pop(old_name, None)
            if entry is None:
                raise Status(StatusCode.NOT_FOUND, f"rename: file not found: {old_name}")
            self._store[_path_str(new)] = entry

    def lock(self, path: PathLike) -> FileLock:
        name = _path_str(path)
        with self._lock:
            entry = self._store.get(name)
            if entry is None:
                self._store[name] = _Entry(MemFile(), locked=True)
            elif entry.locked:
                raise Status(StatusCode.LOCK_ERROR, f"already locked: {name}")
            else:
                entry.locked = True
        return FileLock(name)

    def unlock(self, lock: FileLock) -> None:
        with self._lock:
            entry = self._store.get(lock.id)
            if entry is None:
                raise Status(StatusCode.NOT_FOUND, f"unlock: file not found: {lock.id}")
            if not entry.locked:
                raise Status(StatusCode.LOCK_ERROR, f"unlocking unlocked file: {lock.id}")
            entry.locked = False


class MemEnv(Env):
    """An environment keeping all files in memory."""

    def __init__(self) -> None:
        self.fs = MemFS()

    def open_sequential_file(self, path: PathLike) -> MemFileReader:
        return MemFileReader(self.fs.open(path, False), 0)

    def open_random_access_file(self, path: PathLike) -> MemFile:
        return self.fs.open(path, False)

    def open_writable_file(self, path: PathLike) -> MemFileWriter:
        return self.fs.open_w(path, True, True)

    def open_appendable_file(self, path: PathLike) -> MemFileWriter:
        return self.fs.open_w(path, True, False)

    def exists(self, path: PathLike) -> bool:
        return self.fs.exists(path)

    def children(self, path: PathLike) -> list[str]:
        return self.fs.children(path)

    def size_of(self, path: PathLike) -> int:
        return self.fs.size_of(path)

    def delete(self, path: PathLike) -> None:
        self.fs.delete(path)

    def mkdir(self, path: PathLike) -> None:
        if self.exists(path):
            raise Status(StatusCode.ALREADY_EXISTS)

    def rmdir(self, path: PathLike) -> None:
        if not self.exists(path):
            raise Status(StatusCode.NOT_FOUND)

    def rename(self, old: PathLike, new: PathLike) -> None:
        self.fs.rename(old, new)

    def lock(self, path: PathLike) -> FileLock:
        return self.fs.lock(path)

    def unlock(self, lock: FileLock) -> None:
        self.fs.unlock(lock)

    def new_logger(self, path: PathLike) -> Logger:
        return Logger(self.open_appendable_file(path))

    def micros(self) -> int:
        return super().micros()

    def sleep_for(self, micros: int) -> None:
        super().sleep_for(micros)