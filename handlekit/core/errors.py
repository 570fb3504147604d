"""Error kinds and the classified exception raised by handlekit.

Kinds form a taxonomy rooted at ``Error``. The "extends" relation is stored
on each kind as its ``parent`` field, so handler dispatch walks data instead
of relying on Python class inheritance.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union


@dataclass(frozen=True)
class ErrorKind:
    """A node in the error taxonomy."""

    name: str
    parent: Optional["ErrorKind"] = field(default=None, compare=False)

    def ancestors(self) -> Iterator["ErrorKind"]:
        """Yield the parent chain, nearest first."""
        kind = self.parent
        while kind is not None:
            yield kind
            kind = kind.parent

    def is_a(self, other: "ErrorKind") -> bool:
        return self == other or any(a == other for a in self.ancestors())

    def depth(self) -> int:
        return sum(1 for _ in self.ancestors())

    def __str__(self) -> str:
        return self.name


class Taxonomy:
    """Closed registry of declared error kinds."""

    def __init__(self, root_name: str = "Error"):
        self.root = ErrorKind(root_name)
        self._kinds: Dict[str, ErrorKind] = {root_name: self.root}

    def declare(self, name: str, parent: Optional[ErrorKind] = None) -> ErrorKind:
        """Declare a new kind under ``parent`` (the root when omitted)."""
        parent = parent or self.root
        if name in self._kinds:
            raise ClassifiedError(
                INVALID_ARGUMENT,
                f"error kind already declared: {name}",
                details={"kind": name},
            )
        if self._kinds.get(parent.name) is not parent:
            raise ClassifiedError(
                INVALID_ARGUMENT,
                f"parent kind is not declared in this taxonomy: {parent.name}",
                details={"kind": name, "parent": parent.name},
            )
        kind = ErrorKind(name, parent)
        self._kinds[name] = kind
        return kind

    def get(self, name: str) -> ErrorKind:
        try:
            return self._kinds[name]
        except KeyError:
            raise ClassifiedError(
                INVALID_ARGUMENT,
                f"unknown error kind: {name}",
                details={"kind": name},
            ) from None

    def is_a(self, kind: ErrorKind, ancestor: ErrorKind) -> bool:
        return kind.is_a(ancestor)

    def ancestors(self, kind: ErrorKind) -> List[ErrorKind]:
        return list(kind.ancestors())

    def depth(self, kind: ErrorKind) -> int:
        return kind.depth()

    def __contains__(self, kind: Union[str, ErrorKind]) -> bool:
        name = kind if isinstance(kind, str) else kind.name
        return name in self._kinds

    def __iter__(self) -> Iterator[ErrorKind]:
        return iter(self._kinds.values())

    def __len__(self) -> int:
        return len(self._kinds)


class ClassifiedError(Exception):
    """Exception carrying an :class:`ErrorKind`.

    Attributes:
        kind: Classification of the failure
        message: Human-readable description (optional)
        path: Filesystem path involved, if any
        details: Extra structured context
        frames: Names of guarded frames the error passed through unhandled,
            innermost first
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: Optional[str] = None,
        path: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.kind = kind
        self.message = message
        self.path = path
        self.details = details or {}
        self.frames: List[str] = []
        super().__init__(message or kind.name)

    @property
    def cause(self) -> Optional[BaseException]:
        return self.__cause__

    def matches(self, kind: ErrorKind) -> bool:
        return self.kind.is_a(kind)

    def wrap(self, message: str, **details: Any) -> "ClassifiedError":
        """Return a new error of the same kind with ``self`` as its cause."""
        wrapped = ClassifiedError(
            self.kind,
            message,
            path=self.path,
            details={**self.details, **details},
        )
        wrapped.__cause__ = self
        return wrapped

    def causal_chain(self) -> List[Tuple[str, str]]:
        """(kind, message) pairs following ``__cause__``, outermost first."""
        chain = []
        exc: Optional[BaseException] = self
        seen = set()
        while exc is not None and id(exc) not in seen:
            seen.add(id(exc))
            if isinstance(exc, ClassifiedError):
                chain.append((exc.kind.name, exc.message or ""))
            else:
                chain.append((type(exc).__name__, str(exc)))
            exc = exc.__cause__
        return chain

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.name,
            "message": self.message,
            "path": self.path,
            "details": self.details,
            "frames": list(self.frames),
            "chain": [list(link) for link in self.causal_chain()],
        }

    def __str__(self) -> str:
        base = f"{self.kind.name}: {self.message}" if self.message else self.kind.name
        if self.path:
            base = f"{base} (path={self.path})"
        return base

    def __repr__(self) -> str:
        return f"ClassifiedError({self.kind.name!r}, {self.message!r})"


TAXONOMY = Taxonomy()

ERROR = TAXONOMY.root
INVALID_ARGUMENT = TAXONOMY.declare("InvalidArgumentError")
IO_ERROR = TAXONOMY.declare("IOError")
NOT_FOUND = TAXONOMY.declare("NotFoundError", IO_ERROR)
ALREADY_EXISTS = TAXONOMY.declare("AlreadyExistsError", IO_ERROR)
NOT_WRITABLE = TAXONOMY.declare("NotWritableError", IO_ERROR)
NOT_READABLE = TAXONOMY.declare("NotReadableError", IO_ERROR)
NOT_SEEKABLE = TAXONOMY.declare("NotSeekableError", IO_ERROR)
CLOSED_HANDLE = TAXONOMY.declare("ClosedHandleError", IO_ERROR)
DIRECTORY_NOT_EMPTY = TAXONOMY.declare("DirectoryNotEmptyError", IO_ERROR)
IS_A_DIRECTORY = TAXONOMY.declare("IsADirectoryError", IO_ERROR)
NOT_A_DIRECTORY = TAXONOMY.declare("NotADirectoryError", IO_ERROR)
PERMISSION_DENIED = TAXONOMY.declare("PermissionDeniedError", IO_ERROR)
PARTIAL_REMOVAL = TAXONOMY.declare("PartialRemovalError", IO_ERROR)
ENCODING_ERROR = TAXONOMY.declare("EncodingError")
INVALID_MODE = TAXONOMY.declare("InvalidModeError")


def declare_kind(name: str, parent: Optional[ErrorKind] = None) -> ErrorKind:
    """Declare a user-defined kind in the shared taxonomy."""
    return TAXONOMY.declare(name, parent)
