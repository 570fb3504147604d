"""Translation of OS-level exceptions into classified errors."""

import errno
from contextlib import contextmanager
from typing import Iterator, Optional

from handlekit.core.errors import (
    ALREADY_EXISTS,
    DIRECTORY_NOT_EMPTY,
    ENCODING_ERROR,
    IO_ERROR,
    IS_A_DIRECTORY,
    NOT_A_DIRECTORY,
    NOT_FOUND,
    NOT_SEEKABLE,
    NOT_WRITABLE,
    PERMISSION_DENIED,
    ClassifiedError,
    ErrorKind,
)

ERRNO_KINDS = {
    errno.ENOENT: NOT_FOUND,
    errno.EEXIST: ALREADY_EXISTS,
    errno.ENOTEMPTY: DIRECTORY_NOT_EMPTY,
    errno.EISDIR: IS_A_DIRECTORY,
    errno.ENOTDIR: NOT_A_DIRECTORY,
    errno.EACCES: PERMISSION_DENIED,
    errno.EPERM: PERMISSION_DENIED,
    errno.ESPIPE: NOT_SEEKABLE,
}


def kind_for_os_error(exc: OSError, operation: Optional[str] = None) -> ErrorKind:
    if exc.errno == errno.EBADF and operation in ("write", "flush", "truncate"):
        return NOT_WRITABLE
    return ERRNO_KINDS.get(exc.errno, IO_ERROR)


def translate_os_error(
    exc: BaseException,
    path: Optional[str] = None,
    operation: Optional[str] = None,
) -> ClassifiedError:
    """Build the classified error for ``exc``, with ``exc`` as its cause."""
    if isinstance(exc, ClassifiedError):
        return exc

    if isinstance(exc, UnicodeError):
        error = ClassifiedError(
            ENCODING_ERROR,
            str(exc),
            path=path,
            details={"operation": operation, "encoding": getattr(exc, "encoding", None)},
        )
    elif isinstance(exc, OSError):
        path = path if path is not None else exc.filename
        error = ClassifiedError(
            kind_for_os_error(exc, operation),
            exc.strerror or str(exc),
            path=str(path) if path is not None else None,
            details={"operation": operation, "errno": exc.errno},
        )
    else:
        error = ClassifiedError(
            IO_ERROR,
            str(exc),
            path=path,
            details={"operation": operation, "error_type": type(exc).__name__},
        )

    error.__cause__ = exc
    return error


@contextmanager
def os_errors(path: Optional[str] = None, operation: Optional[str] = None) -> Iterator[None]:
    """Re-raise OS and codec failures inside the block as classified errors."""
    try:
        yield
    except (OSError, UnicodeError) as e:
        raise translate_os_error(e, path, operation) from e
