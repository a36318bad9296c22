"""Redis-backed sliding-window-log rate limiter.

Notes:
- Shared across workers and processes: all state lives in Redis.
- No in-process locking: atomicity comes from the Lua script
  (see ``scripts.py``), so one instance can be used from any number of
  concurrent tasks.
- Fails open by default: if Redis is unreachable or the script errors, the
  request is admitted and the failure is logged.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import time
import uuid
from typing import Callable

from redis.asyncio import Redis
from redis.exceptions import RedisError

from sliding_limiter.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from sliding_limiter.adapters.rate_limit.scripts import ADMITTED, SlidingWindowScript
from sliding_limiter.core.errors import StoreError

logger = logging.getLogger(__name__)

# Failures that resolve through the failure policy instead of propagating.
_STORE_FAILURES = (RedisError, StoreError, TimeoutError, OSError)


def _hash_key(key: str) -> str:
    """Hash the rate limit key for logging without exposing client addresses."""
    return hashlib.sha256(key.encode()).hexdigest()[:16]


class SlidingWindowRateLimiter(AbstractRateLimiter):
    """Admit at most ``limit`` operations per key in any trailing ``window``.

    Every admitted operation is recorded as one entry in a per-key Redis
    sorted set scored by its admission time. Eviction, counting and the
    conditional insert run as a single Lua script, so the count never exceeds
    ``limit`` no matter how many callers race on the same key.
    """

    def __init__(
        self,
        *,
        client: Redis,
        limit: int,
        window_seconds: float,
        fail_open: bool = True,
        timeout: float | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the limiter.

        Args:
            client: Connected (or lazily connecting) async Redis client.
            limit: Maximum admissions per window; 0 denies everything.
            window_seconds: Trailing window duration in seconds.
            fail_open: Admit on store failure (default). False denies instead.
            timeout: Default deadline in seconds for a single check.
            clock: Time source returning UNIX time in seconds.

        Raises:
            ValueError: If limit or window_seconds are invalid.
        """
        if limit < 0:
            raise ValueError("limit must be >= 0")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")

        self._limit = limit
        self._window_seconds = window_seconds
        self._window_ms = max(1, int(window_seconds * 1000))
        self._fail_open = fail_open
        self._timeout = timeout
        self._clock = clock
        self._script = SlidingWindowScript(client)

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_seconds(self) -> float:
        return self._window_seconds

    def _new_entry_id(self, now_ms: int) -> str:
        # Members of the sorted set must be unique even within one millisecond.
        return f"{now_ms}-{uuid.uuid4().hex}"

    async def check(self, key: str, *, timeout: float | None = None) -> RateLimitResult:
        """Attempt one admission for ``key``.

        Performs exactly one Redis round trip. On success the new entry is
        already visible to every other caller when this returns.

        Args:
            key: Non-empty rate limit key.
            timeout: Deadline in seconds; overrides the instance default.
                Expiry of the deadline counts as a store failure.

        Returns:
            RateLimitResult with the decision and failure signal.

        Raises:
            ValueError: If key is empty.
        """
        if not key:
            raise ValueError("key must be a non-empty string")

        now_ms = int(self._clock() * 1000)
        entry_id = self._new_entry_id(now_ms)
        deadline = timeout if timeout is not None else self._timeout

        try:
            async with asyncio.timeout(deadline):
                outcome = await self._script.evaluate(
                    key,
                    now_ms=now_ms,
                    window_ms=self._window_ms,
                    limit=self._limit,
                    entry_id=entry_id,
                )
        except _STORE_FAILURES as exc:
            logger.error(
                "rate_limit.store_error",
                extra={
                    "key_hash": _hash_key(key),
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                    "fail_open": self._fail_open,
                },
            )
            return RateLimitResult(
                allowed=self._fail_open,
                limit=self._limit,
                window_seconds=self._window_seconds,
                store_failed=True,
                error=f"{type(exc).__name__}: {exc}",
            )

        return RateLimitResult(
            allowed=outcome == ADMITTED,
            limit=self._limit,
            window_seconds=self._window_seconds,
        )
