"""Open modes and seek origins."""

import os
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Union

from handlekit.core.errors import INVALID_ARGUMENT, INVALID_MODE, ClassifiedError


class BaseMode(Enum):
    """Declared intent of an open handle."""

    READ = "r"
    WRITE = "w"
    APPEND = "a"
    EXCLUSIVE_CREATE = "x"


class Whence(IntEnum):
    START = os.SEEK_SET
    CURRENT = os.SEEK_CUR
    END = os.SEEK_END

    @classmethod
    def coerce(cls, value: Union["Whence", int, str]) -> "Whence":
        if isinstance(value, str):
            try:
                return cls[value.upper()]
            except KeyError:
                pass
        else:
            try:
                return cls(value)
            except ValueError:
                pass
        raise ClassifiedError(
            INVALID_ARGUMENT,
            f"invalid whence: {value!r}",
            details={"whence": value},
        )


@dataclass(frozen=True)
class Mode:
    """Base mode composed with the binary and update flags."""

    base: BaseMode
    binary: bool = False
    update: bool = False

    @classmethod
    def parse(cls, value: Union["Mode", BaseMode, str]) -> "Mode":
        """Parse a Python-style mode string such as ``"r"``, ``"wb"`` or ``"a+"``."""
        if isinstance(value, Mode):
            return value
        if isinstance(value, BaseMode):
            return cls(value)
        if not isinstance(value, str) or not value:
            raise ClassifiedError(INVALID_MODE, f"invalid mode: {value!r}")

        if len(set(value)) != len(value) or set(value) - set("rwaxbt+"):
            raise ClassifiedError(INVALID_MODE, f"invalid mode: {value!r}")

        bases = [c for c in value if c in "rwax"]
        if len(bases) != 1:
            raise ClassifiedError(
                INVALID_MODE,
                f"mode must have exactly one of read/write/append/create: {value!r}",
            )
        if "b" in value and "t" in value:
            raise ClassifiedError(
                INVALID_MODE, f"mode cannot be both binary and text: {value!r}"
            )

        return cls(BaseMode(bases[0]), binary="b" in value, update="+" in value)

    @property
    def readable(self) -> bool:
        return self.base is BaseMode.READ or self.update

    @property
    def writable(self) -> bool:
        return self.base is not BaseMode.READ or self.update

    @property
    def text(self) -> bool:
        return not self.binary

    @property
    def appending(self) -> bool:
        return self.base is BaseMode.APPEND

    @property
    def raw_mode(self) -> str:
        """Mode string understood by :class:`io.FileIO`."""
        return self.base.value + ("+" if self.update else "")

    def __str__(self) -> str:
        return self.base.value + ("b" if self.binary else "") + ("+" if self.update else "")
