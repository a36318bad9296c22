"""Redis client lifecycle: construction, connectivity probe and shutdown.

The client is owned by the application (created once, shared by every
request, closed on shutdown); the limiter only borrows it.
"""

from __future__ import annotations

import logging

from redis.asyncio import Redis
from redis.asyncio.retry import Retry
from redis.backoff import NoBackoff
from redis.exceptions import RedisError

from sliding_limiter.core.config import RedisSettings
from sliding_limiter.core.errors import StoreUnavailableError
from sliding_limiter.core.logging import mask_url_credentials

logger = logging.getLogger(__name__)


def create_store_client(redis_settings: RedisSettings) -> Redis:
    """Build an async Redis client. No connection is opened until first use."""
    return Redis.from_url(
        redis_settings.url,
        socket_timeout=redis_settings.socket_timeout_seconds,
        socket_connect_timeout=redis_settings.socket_connect_timeout_seconds,
        # One round trip per admission check; a failed call resolves through
        # the limiter failure policy instead of being retried.
        retry=Retry(NoBackoff(), 0),
    )


async def ping_store(client: Redis) -> None:
    """Verify the store answers PING.

    Raises:
        StoreUnavailableError: If Redis cannot be reached.
    """
    try:
        await client.ping()
    except (RedisError, OSError) as exc:
        raise StoreUnavailableError(
            code="store_unavailable",
            message="Could not connect to Redis",
            details={"error_type": type(exc).__name__},
        ) from exc


async def close_store(client: Redis) -> None:
    """Close the client and its connection pool, logging (not raising) failures."""
    try:
        await client.aclose()
    except (RedisError, OSError) as exc:
        logger.error(
            "store.close_failed",
            extra={"error_type": type(exc).__name__, "error_msg": str(exc)},
        )
        return
    logger.info("store.closed")


def describe_store(redis_settings: RedisSettings) -> str:
    """Printable store location with credentials masked."""
    return mask_url_credentials(redis_settings.url)
