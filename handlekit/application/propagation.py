"""Handler dispatch, cleanup and scoped acquisition for classified errors.

An error is raised, then propagates through zero or more guarded frames,
and ends either handled by one of them or unhandled at the top level, where
:func:`run_main` reports it and terminates the process.
"""

import functools
import sys
import traceback
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, TextIO, Tuple, TypeVar, Union

from handlekit.core.errors import INVALID_ARGUMENT, ClassifiedError, ErrorKind
from handlekit.infrastructure.exceptions import translate_os_error
from handlekit.infrastructure.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")

Kinds = Union[ErrorKind, Tuple[ErrorKind, ...], List[ErrorKind]]

EXIT_FAILURE = 1


class Handler:
    """A handler body guarding one or more kinds."""

    def __init__(self, kinds: Kinds, body: Callable[[ClassifiedError], Any]):
        if isinstance(kinds, ErrorKind):
            kinds = (kinds,)
        self.kinds: Tuple[ErrorKind, ...] = tuple(kinds)
        if not self.kinds or not all(isinstance(k, ErrorKind) for k in self.kinds):
            raise ClassifiedError(
                INVALID_ARGUMENT, "a handler must guard at least one error kind"
            )
        self.body = body

    def distance(self, kind: ErrorKind) -> Optional[int]:
        """Steps from ``kind`` up to the closest guarded kind, None if unrelated."""
        best = None
        for guarded in self.kinds:
            if kind == guarded:
                return 0
            for steps, ancestor in enumerate(kind.ancestors(), start=1):
                if ancestor == guarded:
                    if best is None or steps < best:
                        best = steps
                    break
        return best

    def __repr__(self) -> str:
        names = ", ".join(k.name for k in self.kinds)
        return f"Handler({names})"


class Guard:
    """One frame with handlers, an optional catch-all and cleanup actions.

    Example:
        >>> Guard("load").on(NOT_FOUND, lambda e: "").cleanup(handle.close).run(handle.read)
    """

    def __init__(self, name: str):
        self.name = name
        self.handlers: List[Handler] = []
        self._catch_all: Optional[Callable[[BaseException], Any]] = None
        self._cleanups: List[Callable[[], Any]] = []

    def on(self, kinds: Kinds, body: Callable[[ClassifiedError], Any]) -> "Guard":
        self.handlers.append(Handler(kinds, body))
        return self

    def otherwise(self, body: Callable[[BaseException], Any]) -> "Guard":
        self._catch_all = body
        return self

    def cleanup(self, action: Callable[[], Any]) -> "Guard":
        self._cleanups.append(action)
        return self

    def select(self, error: ClassifiedError) -> Optional[Handler]:
        """Pick the handler for ``error``.

        An exact kind match wins in declaration order; otherwise the handler
        guarding the nearest ancestor, ties going to the earlier handler.
        """
        best: Optional[Handler] = None
        best_distance: Optional[int] = None
        for handler in self.handlers:
            distance = handler.distance(error.kind)
            if distance == 0:
                return handler
            if distance is not None and (best_distance is None or distance < best_distance):
                best, best_distance = handler, distance
        return best

    def run(self, fn: Callable[..., R], *args: Any, **kwargs: Any) -> R:
        try:
            return fn(*args, **kwargs)
        except ClassifiedError as e:
            return self._dispatch(e)
        except (OSError, UnicodeError) as e:
            return self._dispatch(translate_os_error(e))
        except Exception as e:
            if self._catch_all is None:
                raise
            logger.debug("error_caught", frame=self.name, error_type=type(e).__name__)
            return self._catch_all(e)
        finally:
            self._run_cleanups()

    def _dispatch(self, error: ClassifiedError) -> Any:
        handler = self.select(error)
        if handler is not None:
            logger.debug(
                "error_handled", frame=self.name, kind=error.kind.name, handler=repr(handler)
            )
            return handler.body(error)

        if self._catch_all is not None:
            logger.debug("error_caught", frame=self.name, kind=error.kind.name)
            return self._catch_all(error)

        error.frames.append(self.name)
        logger.debug("error_propagated", frame=self.name, kind=error.kind.name)
        raise error

    def _run_cleanups(self) -> None:
        first: Optional[Exception] = None
        for action in reversed(self._cleanups):
            try:
                action()
            except Exception as e:
                logger.error("cleanup_failed", frame=self.name, error=str(e))
                if first is None:
                    first = e
        if first is not None:
            raise first


def guarded(
    handlers: Optional[Dict[Kinds, Callable[[ClassifiedError], Any]]] = None,
    otherwise: Optional[Callable[[BaseException], Any]] = None,
    cleanup: Optional[Callable[[], Any]] = None,
    name: Optional[str] = None,
):
    """Decorator running the wrapped function inside a :class:`Guard`."""

    def decorator(fn: Callable[..., R]) -> Callable[..., R]:
        guard = Guard(name or fn.__qualname__)
        for kinds, body in (handlers or {}).items():
            guard.on(kinds, body)
        if otherwise is not None:
            guard.otherwise(otherwise)
        if cleanup is not None:
            guard.cleanup(cleanup)

        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> R:
            return guard.run(fn, *args, **kwargs)

        wrapper.guard = guard
        return wrapper

    return decorator


@contextmanager
def acquire(factory: Callable[[], T], release: Callable[[T], Any]) -> Iterator[T]:
    """Acquire a resource and release it exactly once when the block exits."""
    resource = factory()
    try:
        yield resource
    finally:
        release(resource)


def using(
    resource: Union[T, Callable[[], T]],
    fn: Callable[[T], R],
    release: Optional[Callable[[T], Any]] = None,
) -> R:
    """Run ``fn(resource)`` and then release the resource (``close()`` by default).

    ``resource`` may also be a factory: a callable without ``close()`` is called
    first and its result is used. A failing factory releases nothing.
    """
    if callable(resource) and not hasattr(resource, "close"):
        resource = resource()
    if release is None:
        if not callable(getattr(resource, "close", None)):
            raise ClassifiedError(
                INVALID_ARGUMENT,
                f"{type(resource).__name__} has no close(); pass release explicitly",
            )
        release = _close
    try:
        return fn(resource)
    finally:
        release(resource)


def _close(resource: Any) -> None:
    resource.close()


def format_unhandled(exc: BaseException) -> str:
    """Render kind, message and causal chain of an error that reached the top."""
    if isinstance(exc, ClassifiedError):
        lines = [f"Unhandled {exc.kind.name}: {exc.message or ''}".rstrip()]
        if exc.path:
            lines.append(f"  path: {exc.path}")
        for key, value in exc.details.items():
            if value is not None:
                lines.append(f"  {key}: {value}")
        if exc.frames:
            lines.append(f"  propagated through: {' -> '.join(exc.frames)}")
        chain = exc.causal_chain()[1:]
        if chain:
            lines.append("  caused by:")
            lines.extend(f"    {kind}: {message}" for kind, message in chain)
    else:
        lines = [f"Unhandled {type(exc).__name__}: {exc}"]

    frames = traceback.extract_tb(exc.__traceback__)
    if frames:
        lines.append("  call frames (outermost first):")
        lines.extend(
            f"    {frame.name} ({frame.filename}:{frame.lineno})" for frame in frames
        )
    return "\n".join(lines)


def report_unhandled(exc: BaseException, stream: Optional[TextIO] = None) -> None:
    stream = stream or sys.stderr
    stream.write(format_unhandled(exc) + "\n")
    stream.flush()

    logger.error(
        "unhandled_error",
        kind=exc.kind.name if isinstance(exc, ClassifiedError) else type(exc).__name__,
        message=str(exc),
        frames=getattr(exc, "frames", []),
    )


def run_main(
    fn: Callable[..., R], *args: Any, stream: Optional[TextIO] = None, **kwargs: Any
) -> R:
    """Run a top-level callable; an unhandled error is reported and exits with 1."""
    try:
        return fn(*args, **kwargs)
    except ClassifiedError as e:
        report_unhandled(e, stream)
        sys.exit(EXIT_FAILURE)
    except (OSError, UnicodeError) as e:
        report_unhandled(translate_os_error(e), stream)
        sys.exit(EXIT_FAILURE)


def install_excepthook() -> Callable:
    """Report uncaught classified errors through :func:`report_unhandled`."""
    previous = sys.excepthook

    def hook(exc_type, exc, tb):
        if isinstance(exc, ClassifiedError):
            report_unhandled(exc)
        else:
            previous(exc_type, exc, tb)

    sys.excepthook = hook
    return previous
