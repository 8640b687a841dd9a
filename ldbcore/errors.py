"""Status codes and the exception raised by database operations."""

from __future__ import annotations

import errno as _errno
from enum import Enum


class StatusCode(Enum):
    """Failure modes of database operations."""

    OK = "OK"
    ALREADY_EXISTS = "AlreadyExists"
    CORRUPTION = "Corruption"
    COMPRESSION_ERROR = "CompressionError"
    IO_ERROR = "IOError"
    INVALID_ARGUMENT = "InvalidArgument"
    INVALID_DATA = "InvalidData"
    LOCK_ERROR = "LockError"
    NOT_FOUND = "NotFound"
    NOT_SUPPORTED = "NotSupported"
    PERMISSION_DENIED = "PermissionDenied"
    ASYNC_ERROR = "AsyncError"
    UNKNOWN = "Unknown"
    ERRNO = "Errno"


class Status(Exception):
    """A status code together with a descriptive message."""

    def __init__(self, code: StatusCode, msg: str = "", errno: int | None = None):
        self.code = code
        self.errno = errno
        label = f"Errno({errno})" if code is StatusCode.ERRNO and errno is not None else code.value
        self.err = f"{label}: {msg}" if msg else label
        super().__init__(self.err)

    def __str__(self) -> str:
        return self.err

    def __repr__(self) -> str:
        return f"Status(code={self.code!r}, err={self.err!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Status):
            return NotImplemented
        return self.code == other.code and self.err == other.err

    def __hash__(self) -> int:
        return hash((self.code, self.err))

    def annotate(self, msg: str) -> Status:
        """Return a new status whose message is prefixed with ``msg``."""
        result = Status(self.code, errno=self.errno)
        result.err = f"{msg}: {self.err}"
        result.args = (result.err,)
        return result


def status_from_oserror(error: OSError) -> Status:
    """Convert an operating-system error into a Status."""
    number = error.errno
    if isinstance(error, FileNotFoundError) or number == _errno.ENOENT:
        code = StatusCode.NOT_FOUND
    elif isinstance(error, PermissionError) or number in (_errno.EACCES, _errno.EPERM):
        code = StatusCode.PERMISSION_DENIED
    elif number == _errno.EINVAL:
        code = StatusCode.INVALID_ARGUMENT
    else:
        code = StatusCode.IO_ERROR

    if error.strerror and number is not None:
        message = f"{error.strerror} (os error {number})"
    else:
        message = str(error)
    return Status(code, message)