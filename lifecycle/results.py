"""
Uniform result envelope for lifecycle operations.

Business-rule violations are returned, not raised, so HTTP handlers and bot
command handlers can map them straight to a response.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Failure categories and the HTTP-style status each maps to."""
    INVALID_INPUT = "INVALID_INPUT"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    UNEXPECTED = "UNEXPECTED"

    @property
    def status(self) -> int:
        return _STATUS_CODES[self]


_STATUS_CODES = {
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.UNEXPECTED: 500,
}


@dataclass
class ServiceResponse(Generic[T]):
    """
    Outcome of a service operation.

    Attributes:
        success: Whether the operation took effect
        status: HTTP-style status code (200/201 success, 400/404/409/500 failure)
        data: The resulting record on success
        error: Human-readable reason on failure
        kind: Failure category, None on success
    """
    success: bool
    status: int
    data: Optional[T] = None
    error: Optional[str] = None
    kind: Optional[ErrorKind] = None

    @classmethod
    def ok(cls, data: T, status: int = 200) -> "ServiceResponse[T]":
        return cls(success=True, status=status, data=data)

    @classmethod
    def created(cls, data: T) -> "ServiceResponse[T]":
        return cls(success=True, status=201, data=data)

    @classmethod
    def fail(cls, kind: ErrorKind, error: str) -> "ServiceResponse[T]":
        return cls(success=False, status=kind.status, error=error, kind=kind)

    def __str__(self) -> str:
        if self.success:
            return f"ServiceResponse({self.status})"
        return f"ServiceResponse({self.status}, {self.error})"
