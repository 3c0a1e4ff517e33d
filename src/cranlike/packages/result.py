"""Tagged union for operations that report failures as values.

Parsing a control file record never raises on malformed input. Instead it
returns either an ``Ok`` carrying the parsed value or an ``Err`` carrying a
description of what went wrong, so that malformed records can be filtered
out of a record stream like any other value.
"""

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful result."""

    value: T

    @property
    def success(self) -> bool:
        return True


@dataclass(frozen=True)
class Err(Generic[E]):
    """Failed result."""

    value: E

    @property
    def success(self) -> bool:
        return False


Result = Union[Ok[T], Err[E]]


def is_ok(result: "Result[T, E]") -> bool:
    """Return True if the result is an ``Ok``."""
    return isinstance(result, Ok)


def is_err(result: "Result[T, E]") -> bool:
    """Return True if the result is an ``Err``."""
    return isinstance(result, Err)
