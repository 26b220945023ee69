"""Reply types -- one dataclass per variant of the Sentinel reply grammar."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class SimpleString:
    value: str

    def to_python(self) -> str:
        return self.value


@dataclass(frozen=True)
class Error:
    value: str

    def to_python(self) -> str:
        return self.value


@dataclass(frozen=True)
class Integer:
    value: int

    def to_python(self) -> int:
        return self.value


@dataclass(frozen=True)
class BulkString:
    """Length-prefixed payload. ``value`` is None for the null bulk (``$-1``)."""

    value: bytes | None

    def to_python(self) -> bytes | None:
        return self.value

    def text(self, encoding: str = "utf-8") -> str | None:
        """Decode the payload, or None for the null bulk."""
        if self.value is None:
            return None
        return self.value.decode(encoding)


@dataclass(frozen=True)
class Array:
    """Sequence of replies. ``value`` is None for the null array (``*-1``)."""

    value: list[Reply] | None

    def to_python(self) -> list | None:
        if self.value is None:
            return None
        return [item.to_python() for item in self.value]

    def __len__(self) -> int:
        return len(self.value) if self.value is not None else 0


Reply = Union[SimpleString, Error, Integer, BulkString, Array]
