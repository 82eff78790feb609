"""Errors tagged with the operation that was being attempted."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class ErrorCategory:
    """A family of error codes and the way to describe them."""

    name: str
    describe: Callable[[int], str]

    def message(self, code: int) -> str:
        return self.describe(code)


SYSTEM_CATEGORY = ErrorCategory("system", os.strerror)


class TaggedError(OSError):
    """An error code from some category, prefixed by the attempted operation."""

    def __init__(self, category: ErrorCategory, attempt: str, error_code: int) -> None:
        description = category.message(error_code)
        super().__init__(error_code, description)
        self.category = category
        self.attempt = attempt
        self.error_code = error_code
        self.description = description

    def __str__(self) -> str:
        return f"{self.attempt}: {self.description}"


class UnixError(TaggedError):
    """A failed system call, described by its errno value."""

    def __init__(self, attempt: str, errno_value: int) -> None:
        super().__init__(SYSTEM_CATEGORY, attempt, errno_value)


def check_system_call(attempt: str, return_value: int) -> int:
    """Return a non-negative result; a negative one is taken as ``-errno`` and raised."""
    if return_value >= 0:
        return return_value
    raise UnixError(attempt, -return_value)


def notnull(context: str, value: Optional[T]) -> T:
    """Return ``value``, raising if it is None."""
    if value is None:
        raise RuntimeError(f"{context}: returned null pointer")
    return value