"""Outcome of a best-effort send: a delivery receipt or the reason it failed."""

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from relay.errors import TransportError

T = TypeVar("T")


@dataclass
class Result(Generic[T]):
    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    status_code: Optional[int] = None

    @staticmethod
    def success(value: T) -> "Result[T]":
        return Result(ok=True, value=value)

    @staticmethod
    def failure(error: str, code: str = "unknown") -> "Result[T]":
        return Result(ok=False, error=error, error_code=code)

    @staticmethod
    def from_exception(exc: Exception, code: Optional[str] = None) -> "Result[T]":
        """Failure from a caught exception; keeps the HTTP status of a TransportError."""
        status_code = exc.status_code if isinstance(exc, TransportError) else None
        return Result(ok=False, error=str(exc), error_code=code or type(exc).__name__, status_code=status_code)
