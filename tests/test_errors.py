import errno

import pytest

from ldbcore.errors import Status, StatusCode, status_from_oserror


def test_status_to_string():
    s = Status(StatusCode.INVALID_DATA, "Invalid data!")
    assert str(s) == "InvalidData: Invalid data!"


def test_status_without_message_uses_code_name():
    s = Status(StatusCode.ALREADY_EXISTS)
    assert str(s) == "AlreadyExists"
    assert s.code is StatusCode.ALREADY_EXISTS


def test_status_is_raisable():
    status = status_from_oserror(FileNotFoundError(errno.ENOENT, "missing"))
    assert status.code is StatusCode.NOT_FOUND
    with pytest.raises(Status) as info:
        raise status
    assert info.value.code is StatusCode.NOT_FOUND
    assert str(info.value) == f"NotFound: missing (os error {errno.ENOENT})"


def test_annotate_prefixes_message_and_keeps_code():
    s = Status(StatusCode.LOCK_ERROR, "Lock is held")
    annotated = s.annotate("open")
    assert annotated.err == "open: LockError: Lock is held"
    assert annotated.code is StatusCode.LOCK_ERROR
    assert s.err == "LockError: Lock is held"


def test_status_equality():
    assert Status(StatusCode.CORRUPTION, "Invalid Checksum") == Status(
        StatusCode.CORRUPTION, "Invalid Checksum"
    )
    assert not (Status(StatusCode.CORRUPTION, "a") == Status(StatusCode.IO_ERROR, "a"))


def test_errno_status_label():
    s = Status(StatusCode.ERRNO, "unknown lock error", errno=11)
    assert str(s).startswith("Errno(11): ")


def test_from_oserror_not_found():
    s = status_from_oserror(FileNotFoundError(errno.ENOENT, "No such file or directory"))
    assert s.code is StatusCode.NOT_FOUND
    assert s.err == f"NotFound: No such file or directory (os error {errno.ENOENT})"


def test_from_oserror_permission_denied():
    s = status_from_oserror(PermissionError(errno.EACCES, "Permission denied"))
    assert s.code is StatusCode.PERMISSION_DENIED


def test_from_oserror_invalid_argument_and_other():
    assert status_from_oserror(OSError(errno.EINVAL, "Invalid")).code is StatusCode.INVALID_ARGUMENT
    assert status_from_oserror(OSError(errno.EIO, "I/O")).code is StatusCode.IO_ERROR