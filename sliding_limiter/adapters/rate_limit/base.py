"""Rate limiter interfaces.

The HTTP layer depends on this abstraction (not the concrete implementation)
so the decision primitive stays a plain ``allow(key) -> bool`` regardless of
which store backs it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a single admission check.

    Attributes:
        allowed: Whether the operation may proceed.
        limit: Max admissions per trailing window.
        window_seconds: Trailing window duration in seconds.
        store_failed: True when the store failed and the decision came from the
            failure policy rather than from the window history.
        error: Short description of the store failure, if any.
    """

    allowed: bool
    limit: int
    window_seconds: float
    store_failed: bool = False
    error: str | None = None


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    async def check(self, key: str, *, timeout: float | None = None) -> RateLimitResult:
        """Attempt one admission for ``key``.

        Args:
            key: Unique identifier (e.g., ``"limit:" + client address``).
            timeout: Optional deadline in seconds for the store round trip.

        Returns:
            RateLimitResult describing the decision.
        """
        raise NotImplementedError

    async def allow(self, key: str, *, timeout: float | None = None) -> bool:
        """Report whether one more operation for ``key`` is admitted right now."""
        result = await self.check(key, timeout=timeout)
        return result.allowed
