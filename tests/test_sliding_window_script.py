"""Tests for the atomic sliding-window Lua script."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from sliding_limiter.adapters.rate_limit.scripts import ADMITTED, DENIED, SlidingWindowScript
from sliding_limiter.core.errors import StoreError

KEY = "limit:127.0.0.1"


@pytest.mark.asyncio
async def test_admits_and_records_entry(fake_redis) -> None:
    script = SlidingWindowScript(fake_redis)

    result = await script.evaluate(KEY, now_ms=10_000, window_ms=1_000, limit=2, entry_id="a")

    assert result == ADMITTED
    assert await fake_redis.zrange(KEY, 0, -1, withscores=True) == [(b"a", 10_000.0)]


@pytest.mark.asyncio
async def test_denial_does_not_mutate_history(fake_redis) -> None:
    script = SlidingWindowScript(fake_redis)

    assert await script.evaluate(KEY, now_ms=10_000, window_ms=1_000, limit=1, entry_id="a") == ADMITTED
    assert await script.evaluate(KEY, now_ms=10_001, window_ms=1_000, limit=1, entry_id="b") == DENIED

    assert await fake_redis.zrange(KEY, 0, -1) == [b"a"]


@pytest.mark.asyncio
async def test_entry_exactly_one_window_old_is_evicted(fake_redis) -> None:
    script = SlidingWindowScript(fake_redis)
    await script.evaluate(KEY, now_ms=10_000, window_ms=1_000, limit=1, entry_id="a")

    # One millisecond short of the window: still counted.
    assert await script.evaluate(KEY, now_ms=10_999, window_ms=1_000, limit=1, entry_id="b") == DENIED
    # Exactly window old: evicted, capacity frees up.
    assert await script.evaluate(KEY, now_ms=11_000, window_ms=1_000, limit=1, entry_id="c") == ADMITTED

    assert await fake_redis.zrange(KEY, 0, -1) == [b"c"]


@pytest.mark.asyncio
async def test_same_millisecond_entries_are_kept_apart_by_id(fake_redis) -> None:
    script = SlidingWindowScript(fake_redis)

    for entry_id in ("a", "b", "c"):
        assert await script.evaluate(KEY, now_ms=10_000, window_ms=1_000, limit=5, entry_id=entry_id) == ADMITTED

    assert await fake_redis.zcard(KEY) == 3


@pytest.mark.asyncio
async def test_admission_sets_key_expiry_to_window(fake_redis) -> None:
    script = SlidingWindowScript(fake_redis)

    await script.evaluate(KEY, now_ms=10_000, window_ms=5_000, limit=1, entry_id="a")

    ttl = await fake_redis.pttl(KEY)
    assert 0 < ttl <= 5_000


@pytest.mark.asyncio
async def test_later_admission_refreshes_expiry(fake_redis) -> None:
    script = SlidingWindowScript(fake_redis)
    await script.evaluate(KEY, now_ms=10_000, window_ms=5_000, limit=3, entry_id="a")
    await fake_redis.pexpire(KEY, 100)

    assert await script.evaluate(KEY, now_ms=10_001, window_ms=5_000, limit=3, entry_id="b") == ADMITTED

    ttl = await fake_redis.pttl(KEY)
    assert 4_000 < ttl <= 5_000


@pytest.mark.asyncio
async def test_denial_leaves_expiry_unchanged(fake_redis) -> None:
    script = SlidingWindowScript(fake_redis)
    await script.evaluate(KEY, now_ms=10_000, window_ms=5_000, limit=1, entry_id="a")
    await fake_redis.pexpire(KEY, 100)

    assert await script.evaluate(KEY, now_ms=10_001, window_ms=5_000, limit=1, entry_id="b") == DENIED

    ttl = await fake_redis.pttl(KEY)
    assert 0 < ttl <= 100


@pytest.mark.asyncio
async def test_zero_limit_never_writes(fake_redis) -> None:
    script = SlidingWindowScript(fake_redis)

    assert await script.evaluate(KEY, now_ms=10_000, window_ms=1_000, limit=0, entry_id="a") == DENIED
    assert await fake_redis.exists(KEY) == 0


@pytest.mark.asyncio
async def test_unexpected_reply_raises_store_error(fake_redis) -> None:
    script = SlidingWindowScript(fake_redis)
    script._script = AsyncMock(return_value=b"OK")

    with pytest.raises(StoreError) as exc_info:
        await script.evaluate(KEY, now_ms=10_000, window_ms=1_000, limit=1, entry_id="a")

    assert exc_info.value.code == "unexpected_script_reply"
