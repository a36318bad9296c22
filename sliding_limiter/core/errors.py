"""Application-level exception types.

This module defines domain errors used across the limiter, the store layer
and the HTTP surface, enabling consistent error handling, logging, and API
responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    limit: int
    window_seconds: float
    error_type: str


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


@dataclass
class RateLimitExceededError(AppError):
    """Raised when a client has exhausted its quota for the current window.

    This is a deliberate policy outcome and is retryable; it is never used for
    infrastructure failures.
    """

    retry_after_seconds: int = 0


class StoreError(AppError):
    """Raised when the window store replies with something the limiter cannot use."""


class StoreUnavailableError(StoreError):
    """Raised when the window store cannot be reached (startup/readiness probes)."""
