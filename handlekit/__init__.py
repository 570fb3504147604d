"""handlekit: file handles, directory operations and classified errors."""

from handlekit.application.propagation import (
    Guard,
    acquire,
    guarded,
    install_excepthook,
    report_unhandled,
    run_main,
    using,
)
from handlekit.core.errors import (
    ALREADY_EXISTS,
    CLOSED_HANDLE,
    DIRECTORY_NOT_EMPTY,
    ENCODING_ERROR,
    ERROR,
    INVALID_ARGUMENT,
    INVALID_MODE,
    IO_ERROR,
    IS_A_DIRECTORY,
    NOT_A_DIRECTORY,
    NOT_FOUND,
    NOT_READABLE,
    NOT_SEEKABLE,
    NOT_WRITABLE,
    PARTIAL_REMOVAL,
    PERMISSION_DENIED,
    TAXONOMY,
    ClassifiedError,
    ErrorKind,
    declare_kind,
)
from handlekit.core.types import BaseMode, Mode, Whence
from handlekit.infrastructure.filesystem import DirectoryManager, FileHandle, open_file

__version__ = "0.1.0"

__all__ = [
    # Errors
    "ClassifiedError",
    "ErrorKind",
    "TAXONOMY",
    "declare_kind",
    "ERROR",
    "IO_ERROR",
    "NOT_FOUND",
    "ALREADY_EXISTS",
    "NOT_WRITABLE",
    "NOT_READABLE",
    "NOT_SEEKABLE",
    "CLOSED_HANDLE",
    "DIRECTORY_NOT_EMPTY",
    "IS_A_DIRECTORY",
    "NOT_A_DIRECTORY",
    "PERMISSION_DENIED",
    "PARTIAL_REMOVAL",
    "ENCODING_ERROR",
    "INVALID_MODE",
    "INVALID_ARGUMENT",
    # Propagation
    "Guard",
    "guarded",
    "acquire",
    "using",
    "report_unhandled",
    "run_main",
    "install_excepthook",
    # Files and directories
    "BaseMode",
    "Mode",
    "Whence",
    "FileHandle",
    "open_file",
    "DirectoryManager",
]
