"""Tests for the Redis client lifecycle helpers."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionError

from sliding_limiter.core.config import RedisSettings
from sliding_limiter.core.errors import StoreUnavailableError
from sliding_limiter.core.store import close_store, create_store_client, describe_store, ping_store


def test_create_store_client_applies_timeouts():
    client = create_store_client(
        RedisSettings(url="redis://cache:6380/1", socket_timeout_seconds=0.25, socket_connect_timeout_seconds=0.5)
    )

    kwargs = client.connection_pool.connection_kwargs
    assert isinstance(client, Redis)
    assert kwargs["host"] == "cache"
    assert kwargs["port"] == 6380
    assert kwargs["db"] == 1
    assert kwargs["socket_timeout"] == 0.25
    assert kwargs["socket_connect_timeout"] == 0.5


@pytest.mark.asyncio
async def test_ping_store_succeeds(fake_redis):
    await ping_store(fake_redis)


@pytest.mark.asyncio
async def test_ping_store_wraps_connection_errors():
    client = MagicMock()
    client.ping = AsyncMock(side_effect=RedisConnectionError("refused"))

    with pytest.raises(StoreUnavailableError) as exc_info:
        await ping_store(client)

    assert exc_info.value.code == "store_unavailable"
    assert exc_info.value.details == {"error_type": "ConnectionError"}


@pytest.mark.asyncio
async def test_close_store_logs_instead_of_raising(caplog):
    client = MagicMock()
    client.aclose = AsyncMock(side_effect=RedisConnectionError("already gone"))

    await close_store(client)

    client.aclose.assert_awaited_once()
    assert any(r.getMessage() == "store.close_failed" for r in caplog.records)


def test_describe_store_masks_password():
    assert describe_store(RedisSettings(url="redis://:hunter2@cache:6379/0")) == "redis://[REDACTED]@cache:6379/0"
