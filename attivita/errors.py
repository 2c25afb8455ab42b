"""
Error kinds and the result type returned by the service layer.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(Enum):
    UNAUTHENTICATED = "UNAUTHENTICATED"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_OWNER = "INVALID_OWNER"
    ID_MISMATCH = "ID_MISMATCH"
    NOT_FOUND = "NOT_FOUND"
    CONCURRENCY_CONFLICT = "CONCURRENCY_CONFLICT"
    STORAGE_FAILURE = "STORAGE_FAILURE"
    EMAIL_TAKEN = "EMAIL_TAKEN"


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of a service call: either a value or an error kind."""

    value: Optional[T] = None
    error: Optional[ErrorKind] = None
    message: str = ""

    @classmethod
    def ok(cls, value: T = None) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def fail(cls, error: ErrorKind, message: str = "") -> "Result[T]":
        return cls(error=error, message=message or error.value)

    @property
    def is_ok(self) -> bool:
        return self.error is None


class StorageError(Exception):
    """Raised by storage clients when a persistence operation fails."""


class ConcurrencyError(StorageError):
    """Raised when an update finds the stored row at a different version."""
