"""File handle with an explicit byte cursor, write buffer and codec layer."""

import codecs
import io
import os
from typing import Iterable, Iterator, List, Optional, Tuple, Union

from handlekit.core.config import get_settings
from handlekit.core.errors import (
    CLOSED_HANDLE,
    ENCODING_ERROR,
    INVALID_ARGUMENT,
    INVALID_MODE,
    IO_ERROR,
    NOT_READABLE,
    NOT_SEEKABLE,
    NOT_WRITABLE,
    ClassifiedError,
)
from handlekit.core.types import Mode, Whence
from handlekit.infrastructure.exceptions import os_errors
from handlekit.infrastructure.logging import get_logger

logger = get_logger(__name__)

Data = Union[str, bytes]


class FileHandle:
    """An open file and its cursor.

    Reads and writes are measured in characters for text handles and bytes
    for binary handles; the cursor reported by :meth:`tell` is always a byte
    offset. Lines end at ``\\n`` and are returned as stored.
    """

    def __init__(
        self,
        raw: io.FileIO,
        path: str,
        mode: Mode,
        encoding: Optional[str] = None,
        errors: Optional[str] = None,
    ):
        settings = get_settings()
        self._raw = raw
        self.path = path
        self.mode = mode
        self.encoding = encoding
        self.errors = errors or settings.encoding_errors
        self._buffer_size = settings.buffer_size
        self._chunk_size = settings.read_chunk_size
        self._fsync = settings.fsync_on_flush
        self._closed = True

        with os_errors(path, "open"):
            self._seekable = raw.seekable()
            self._pos = raw.tell() if self._seekable else 0

        # bytes fetched from the raw stream starting at the cursor
        self._readbuf = bytearray()
        # decoded characters whose bytes are already behind the cursor
        self._decoded = ""
        # buffered writes starting at _pending_pos
        self._pending = bytearray()
        self._pending_pos = self._pos

        if mode.text:
            self._decoder = codecs.getincrementaldecoder(encoding)(self.errors)
            self._encoder = codecs.getincrementalencoder(encoding)(self.errors)
            self._reset_codecs()

        self._closed = False

    @classmethod
    def open(
        cls,
        path: Union[str, os.PathLike],
        mode: Union[Mode, str] = "r",
        encoding: Optional[str] = None,
        errors: Optional[str] = None,
    ) -> "FileHandle":
        """Open ``path`` and return a handle positioned per ``mode``."""
        mode = Mode.parse(mode)
        path = os.fspath(path)
        encoding, errors = _resolve_codec(mode, encoding, errors, path)

        with os_errors(path, "open"):
            raw = io.FileIO(path, mode.raw_mode)

        try:
            handle = cls(raw, path, mode, encoding, errors)
        except BaseException:
            raw.close()
            raise

        logger.debug(
            "file_opened",
            path=path,
            mode=str(mode),
            encoding=encoding,
            position=handle._pos,
        )
        return handle

    @classmethod
    def from_fd(
        cls,
        fd: int,
        mode: Union[Mode, str] = "r",
        encoding: Optional[str] = None,
        errors: Optional[str] = None,
        closefd: bool = True,
    ) -> "FileHandle":
        """Wrap an already open descriptor such as one end of a pipe."""
        mode = Mode.parse(mode)
        path = f"<fd {fd}>"
        encoding, errors = _resolve_codec(mode, encoding, errors, path)

        with os_errors(path, "open"):
            raw = io.FileIO(fd, mode.raw_mode, closefd=closefd)

        try:
            handle = cls(raw, path, mode, encoding, errors)
        except BaseException:
            raw.close()
            raise

        logger.debug("fd_opened", fd=fd, mode=str(mode), seekable=handle._seekable)
        return handle

    # Properties

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def name(self) -> str:
        return self.path

    def readable(self) -> bool:
        self._check_open()
        return self.mode.readable

    def writable(self) -> bool:
        self._check_open()
        return self.mode.writable

    def seekable(self) -> bool:
        self._check_open()
        return self._seekable

    def fileno(self) -> int:
        self._check_open()
        return self._raw.fileno()

    # Reading

    def read(self, n: Optional[int] = -1) -> Data:
        """Read up to ``n`` units; a negative or missing ``n`` reads to the end."""
        self._check_readable()
        limit = -1 if n is None else _as_int(n, "n", self.path)
        self._prepare_read()

        if self.mode.binary:
            if limit < 0:
                while self._fill():
                    pass
                return self._consume(len(self._readbuf))
            while len(self._readbuf) < limit and self._fill():
                pass
            return self._consume(min(limit, len(self._readbuf)))

        return self._decode(limit, stop_at_newline=False)

    def readline(self, n: Optional[int] = -1) -> Data:
        """Read through the next ``\\n`` or end of stream, at most ``n`` units."""
        self._check_readable()
        limit = -1 if n is None else _as_int(n, "n", self.path)
        self._prepare_read()

        if self.mode.text:
            return self._decode(limit, stop_at_newline=True)

        start = 0
        while True:
            idx = self._readbuf.find(b"\n", start)
            if idx >= 0:
                end = idx + 1
                break
            if 0 <= limit <= len(self._readbuf):
                end = limit
                break
            start = len(self._readbuf)
            if not self._fill():
                end = len(self._readbuf)
                break

        if limit >= 0:
            end = min(end, limit)
        return self._consume(end)

    def readlines(self) -> List[Data]:
        """All remaining lines, each terminated as stored."""
        return list(self)

    def __iter__(self) -> Iterator[Data]:
        self._check_readable()
        return self

    def __next__(self) -> Data:
        line = self.readline()
        if not line:
            raise StopIteration
        return line

    # Writing

    def write(self, data: Data) -> int:
        """Write ``data`` at the cursor and return the number of units written."""
        self._check_writable()

        if self.mode.binary:
            if isinstance(data, str) or not isinstance(data, (bytes, bytearray, memoryview)):
                raise ClassifiedError(
                    INVALID_ARGUMENT,
                    f"binary handle requires bytes, not {type(data).__name__}",
                    path=self.path,
                )
            payload = bytes(data)
            count = len(payload)
        else:
            if not isinstance(data, str):
                raise ClassifiedError(
                    INVALID_ARGUMENT,
                    f"text handle requires str, not {type(data).__name__}",
                    path=self.path,
                )
            with os_errors(self.path, "encode"):
                payload = self._encoder.encode(data)
            count = len(data)

        self._buffer_write(payload)
        return count

    def writelines(self, lines: Iterable[Data]) -> int:
        return sum(self.write(line) for line in lines)

    def flush(self) -> None:
        """Push buffered writes to the operating system."""
        self._check_open()
        self._flush_pending()

    def truncate(self, size: Optional[int] = None) -> int:
        """Resize the file to ``size`` bytes (default: the cursor)."""
        self._check_writable()
        self._flush_pending()
        size = self._pos if size is None else _as_int(size, "size", self.path)
        if size < 0:
            raise ClassifiedError(
                INVALID_ARGUMENT, f"negative size: {size}", path=self.path
            )

        with os_errors(self.path, "truncate"):
            self._raw.truncate(size)

        self._drop_read_state()
        self._pos = min(self._pos, size)
        self._pending_pos = self._pos
        return size

    # Positioning

    def seek(self, offset: int, whence: Union[Whence, int, str] = Whence.START) -> int:
        """Move the cursor and return the new byte offset."""
        self._check_open()
        if not self._seekable:
            raise ClassifiedError(
                NOT_SEEKABLE, "stream does not support seeking", path=self.path
            )
        offset = _as_int(offset, "offset", self.path)
        whence = Whence.coerce(whence)

        self._flush_pending()
        length = self._size()

        if whence is Whence.START:
            target = offset
        elif whence is Whence.CURRENT:
            target = self._pos + offset
        else:
            target = length + offset

        if target < 0 or target > length:
            raise ClassifiedError(
                INVALID_ARGUMENT,
                f"seek target {target} outside [0, {length}]",
                path=self.path,
                details={"offset": offset, "whence": whence.name, "length": length},
            )

        self._drop_read_state()
        self._pos = target
        self._pending_pos = target
        if self.mode.text:
            self._reset_codecs()
        return target

    def tell(self) -> int:
        self._check_open()
        return self._pos

    # Lifecycle

    def close(self) -> None:
        """Flush and release the descriptor. Calling it again does nothing."""
        if self._closed:
            return

        error: Optional[ClassifiedError] = None
        try:
            self._flush_pending()
        except ClassifiedError as e:
            error = e

        self._closed = True
        try:
            with os_errors(self.path, "close"):
                self._raw.close()
        except ClassifiedError as e:
            if error is None:
                error = e

        self._readbuf.clear()
        self._decoded = ""
        self._pending.clear()

        if error is not None:
            logger.warning(
                "file_close_failed", path=self.path, kind=str(error.kind), error=str(error)
            )
            raise error

        logger.debug("file_closed", path=self.path)

    def __enter__(self) -> "FileHandle":
        self._check_open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False

    def __del__(self):
        if not getattr(self, "_closed", True):
            self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else f"pos={self._pos}"
        return f"<FileHandle path={self.path!r} mode={str(self.mode)!r} {state}>"

    # Internals

    def _check_open(self) -> None:
        if self._closed:
            raise ClassifiedError(
                CLOSED_HANDLE, "I/O operation on closed handle", path=self.path
            )

    def _check_readable(self) -> None:
        self._check_open()
        if not self.mode.readable:
            raise ClassifiedError(
                NOT_READABLE,
                f"handle opened in mode {str(self.mode)!r} is not readable",
                path=self.path,
            )

    def _check_writable(self) -> None:
        self._check_open()
        if not self.mode.writable:
            raise ClassifiedError(
                NOT_WRITABLE,
                f"handle opened in mode {str(self.mode)!r} is not writable",
                path=self.path,
            )

    def _reset_codecs(self) -> None:
        self._decoder.reset()
        self._encoder.reset()
        if self._pos != 0:
            # past the start: do not emit another byte order mark
            self._encoder.setstate(0)

    def _drop_read_state(self) -> None:
        self._readbuf.clear()
        self._decoded = ""
        if self.mode.text:
            self._decoder.reset()

    def _size(self) -> int:
        with os_errors(self.path, "stat"):
            return os.fstat(self._raw.fileno()).st_size

    def _prepare_read(self) -> None:
        if self._pending:
            self._flush_pending()

    def _fill(self) -> bool:
        """Fetch one more chunk into the read buffer; False at end of stream."""
        with os_errors(self.path, "read"):
            if self._seekable:
                self._raw.seek(self._pos + len(self._readbuf))
            chunk = self._raw.read(self._chunk_size)
        if not chunk:
            return False
        self._readbuf += chunk
        return True

    def _consume(self, n: int) -> bytes:
        data = bytes(self._readbuf[:n])
        del self._readbuf[:n]
        self._pos += n
        return data

    def _decode(self, limit: int, stop_at_newline: bool) -> str:
        """Decode characters from the cursor, keeping it on a decode unit boundary.

        A unit that decodes to more characters than the read asked for (lenient
        error handlers expand one bad byte into several) is consumed whole and
        the surplus is held in ``_decoded`` for the next read.
        """
        if limit == 0:
            return ""

        parts = []
        count = 0
        if self._decoded:
            cut, done = _take(self._decoded, count, limit, stop_at_newline)
            parts.append(self._decoded[:cut])
            count += cut
            self._decoded = self._decoded[cut:]
            if done:
                return "".join(parts)

        with os_errors(self.path, "decode"):
            while True:
                if not self._readbuf and not self._fill():
                    tail = self._decoder.decode(b"", final=True)
                    cut, _ = _take(tail, count, limit, stop_at_newline)
                    parts.append(tail[:cut])
                    self._decoded = tail[cut:]
                    break

                chunk = bytes(self._readbuf)
                state = self._decoder.getstate()
                text = self._decoder.decode(chunk)

                cut, done = _take(text, count, limit, stop_at_newline)
                if not done:
                    parts.append(text)
                    count += len(text)
                    self._consume(len(chunk))
                    continue

                # replay the chunk byte by byte to find the unit holding character `cut`
                self._decoder.setstate(state)
                produced = ""
                used = 0
                for i in range(len(chunk)):
                    produced += self._decoder.decode(chunk[i:i + 1])
                    used = i + 1
                    if len(produced) >= cut:
                        break

                parts.append(produced[:cut])
                self._decoded = produced[cut:]
                self._consume(used)
                break

        return "".join(parts)

    def _buffer_write(self, payload: bytes) -> None:
        self._drop_read_state()

        if self._pending and not self.mode.appending:
            if self._pending_pos + len(self._pending) != self._pos:
                self._flush_pending()

        if not self._pending:
            if self.mode.appending and self._seekable:
                self._pos = self._size()
            self._pending_pos = self._pos

        self._pending += payload
        self._pos += len(payload)

        if len(self._pending) >= self._buffer_size:
            self._flush_pending()

    def _flush_pending(self) -> None:
        if not self._pending:
            return

        with os_errors(self.path, "flush"):
            if self._seekable and not self.mode.appending:
                self._raw.seek(self._pending_pos)
            while self._pending:
                written = self._raw.write(self._pending)
                if not written:
                    raise ClassifiedError(
                        IO_ERROR,
                        "short write",
                        path=self.path,
                        details={"unwritten": len(self._pending)},
                    )
                del self._pending[:written]
                self._pending_pos += written
            if self._fsync:
                os.fsync(self._raw.fileno())


def _resolve_codec(mode: Mode, encoding: Optional[str], errors: Optional[str], path: str):
    if mode.binary:
        if encoding is not None or errors is not None:
            raise ClassifiedError(
                INVALID_MODE,
                "binary mode does not take an encoding or error handler",
                path=path,
            )
        return None, None

    encoding = encoding or get_settings().default_encoding
    if encoding is None:
        raise ClassifiedError(
            ENCODING_ERROR,
            "text mode requires an explicit encoding",
            path=path,
        )
    try:
        codecs.lookup(encoding)
    except LookupError:
        raise ClassifiedError(
            ENCODING_ERROR, f"unknown encoding: {encoding}", path=path
        ) from None

    if errors is not None:
        try:
            codecs.lookup_error(errors)
        except LookupError:
            raise ClassifiedError(
                ENCODING_ERROR, f"unknown error handler: {errors}", path=path
            ) from None

    return encoding, errors


def _take(text: str, count: int, limit: int, stop_at_newline: bool) -> Tuple[int, bool]:
    """How many characters of ``text`` a read wants, and whether that ends it."""
    cut = len(text)
    done = False
    if stop_at_newline:
        idx = text.find("\n")
        if idx >= 0:
            cut = idx + 1
            done = True
    if limit >= 0 and count + cut >= limit:
        cut = limit - count
        done = True
    return cut, done


def _as_int(value, name: str, path: Optional[str] = None) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ClassifiedError(
            INVALID_ARGUMENT,
            f"{name} must be an integer, not {type(value).__name__}",
            path=path,
        )
    return value


def open_file(
    path: Union[str, os.PathLike],
    mode: Union[Mode, str] = "r",
    encoding: Optional[str] = None,
    errors: Optional[str] = None,
) -> FileHandle:
    """Open ``path``; see :meth:`FileHandle.open`."""
    return FileHandle.open(path, mode, encoding, errors)
