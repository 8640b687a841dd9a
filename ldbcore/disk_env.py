"""A storage environment backed by the local file system."""

from __future__ import annotations

import errno as _errno
import os
import shutil
import threading
from typing import BinaryIO

from ldbcore.env import (
    Env,
    FileLock,
    FileRandomAccess,
    Logger,
    PathLike,
    micros as _micros,
    sleep_for as _sleep_for,
)
from ldbcore.errors import Status, StatusCode, status_from_oserror

try:
    import fcntl as _fcntl
except ImportError:  # pragma: no cover - non-POSIX platforms
    _fcntl = None

try:
    import msvcrt as _msvcrt
except ImportError:  # pragma: no cover - POSIX platforms
    _msvcrt = None


def _named_error(method: str, path: PathLike, error: OSError) -> Status:
    """Annotate an OS error with the failing operation and the file involved."""
    status = status_from_oserror(error)
    status.err = f"{method}: {status.err}: {os.fspath(path)}"
    status.args = (status.err,)
    return status


def _try_lock_exclusive(file: BinaryIO) -> None:
    if _fcntl is not None:
        _fcntl.flock(file.fileno(), _fcntl.LOCK_EX | _fcntl.LOCK_NB)
    elif _msvcrt is not None:
        file.seek(0)
        _msvcrt.locking(file.fileno(), _msvcrt.LK_NBLCK, 1)


def _release_lock(file: BinaryIO) -> None:
    if _fcntl is not None:
        _fcntl.flock(file.fileno(), _fcntl.LOCK_UN)
    elif _msvcrt is not None:
        file.seek(0)
        _msvcrt.locking(file.fileno(), _msvcrt.LK_UNLCK, 1)


def _would_block(error: OSError) -> bool:
    return isinstance(error, BlockingIOError) or error.errno in (
        _errno.EAGAIN,
        _errno.EWOULDBLOCK,
        _errno.EACCES,
        getattr(_errno, "EDEADLOCK", _errno.EDEADLK),
    )


class DiskEnv(Env):
    """An environment storing files on disk, with process-wide exclusive file locks."""

    def __init__(self) -> None:
        self._locks: dict[str, BinaryIO] = {}
        self._mutex = threading.Lock()

    def open_sequential_file(self, path: PathLike) -> BinaryIO:
        try:
            return open(path, "rb")
        except OSError as e:
            raise _named_error("open (seq)", path, e) from e

    def open_random_access_file(self, path: PathLike) -> FileRandomAccess:
        try:
            return FileRandomAccess(open(path, "rb"))
        except OSError as e:
            raise _named_error("open (randomaccess)", path, e) from e

    def open_writable_file(self, path: PathLike) -> BinaryIO:
        # Writes start at the beginning of the file; existing content is not truncated.
        try:
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | getattr(os, "O_BINARY", 0), 0o644)
            return os.fdopen(fd, "wb", buffering=0)
        except OSError as e:
            raise _named_error("open (write)", path, e) from e

    def open_appendable_file(self, path: PathLike) -> BinaryIO:
        try:
            flags = os.O_WRONLY | os.O_CREAT | os.O_APPEND | getattr(os, "O_BINARY", 0)
            fd = os.open(path, flags, 0o644)
            return os.fdopen(fd, "ab", buffering=0)
        except OSError as e:
            raise _named_error("open (append)", path, e) from e

    def exists(self, path: PathLike) -> bool:
        return os.path.exists(path)

    def children(self, path: PathLike) -> list[str]:
        try:
            return [name for name in os.listdir(path) if name]
        except OSError as e:
            raise _named_error("children", path, e) from e

    def size_of(self, path: PathLike) -> int:
        try:
            return os.stat(path).st_size
        except OSError as e:
            raise _named_error("size_of", path, e) from e

    def delete(self, path: PathLike) -> None:
        try:
            os.remove(path)
        except OSError as e:
            raise _named_error("delete", path, e) from e

    def mkdir(self, path: PathLike) -> None:
        try:
            os.makedirs(path, exist_ok=True)
        except OSError as e:
            raise _named_error("mkdir", path, e) from e

    def rmdir(self, path: PathLike) -> None:
        try:
            shutil.rmtree(path)
        except OSError as e:
            raise _named_error("rmdir", path, e) from e

    def rename(self, old: PathLike, new: PathLike) -> None:
        try:
            os.replace(old, new)
        except OSError as e:
            raise _named_error("rename", old, e) from e

    def lock(self, path: PathLike) -> FileLock:
        name = os.fspath(path)
        with self._mutex:
            if name in self._locks:
                raise Status(StatusCode.ALREADY_EXISTS, "Lock is held")
            try:
                fd = os.open(name, os.O_WRONLY | os.O_CREAT | getattr(os, "O_BINARY", 0), 0o644)
                file = os.fdopen(fd, "wb", buffering=0)
            except OSError as e:
                raise _named_error("lock", path, e) from e

            try:
                _try_lock_exclusive(file)
            except OSError as e:
                file.close()
                if _would_block(e):
                    raise Status(
                        StatusCode.LOCK_ERROR,
                        "lock on database is already held by different process",
                    ) from e
                raise Status(
                    StatusCode.ERRNO,
                    f"unknown lock error on file {name}",
                    errno=e.errno,
                ) from e

            self._locks[name] = file
            return FileLock(name)

    def unlock(self, lock: FileLock) -> None:
        with self._mutex:
            file = self._locks.pop(lock.id, None)
            if file is None:
                raise Status(
                    StatusCode.LOCK_ERROR, f"unlocking a file that is not locked: {lock.id}"
                )
            try:
                _release_lock(file)
            except OSError as e:
                raise Status(StatusCode.LOCK_ERROR, f"unlock failed: {lock.id}") from e
            finally:
                file.close()

    def new_logger(self, path: PathLike) -> Logger:
        return Logger(self.open_appendable_file(path))

    def micros(self) -> int:
        return _micros()

    def sleep_for(self, micros: int) -> None:
        _sleep_for(micros)