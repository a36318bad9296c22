"""Atomic sliding-window evaluation executed inside Redis.

The whole read-modify-write (evict stale entries, count, conditionally insert)
runs as one Lua script. Redis never interleaves two script bodies, so two
callers can not both observe ``count < limit`` and both insert, whether they
live in the same process or in different ones.

History layout, per key:
    sorted set, member = unique entry id, score = admission time (epoch ms)

Script contract:
    KEYS[1]  rate limit key
    ARGV[1]  now, epoch milliseconds
    ARGV[2]  window, milliseconds
    ARGV[3]  limit (>= 0)
    ARGV[4]  unique entry id
    returns  0 when admitted (entry recorded), 1 when denied (nothing written)
"""

from __future__ import annotations

from redis.asyncio import Redis

from sliding_limiter.core.errors import StoreError

ADMITTED = 0
DENIED = 1

SLIDING_WINDOW_LUA = """
local key = KEYS[1]
local now = tonumber(ARGV[1])
local window = tonumber(ARGV[2])
local limit = tonumber(ARGV[3])
local clear_before = now - window

redis.call("ZREMRANGEBYSCORE", key, 0, clear_before)

local count = redis.call("ZCARD", key)

if count < limit then
    redis.call("ZADD", key, now, ARGV[4])
    redis.call("PEXPIRE", key, window)
    return 0
end

return 1
"""


class SlidingWindowScript:
    """Invocation handle for the sliding-window Lua script.

    Registration is local (it only computes the SHA1); the script body is
    sent to Redis lazily when EVALSHA reports it missing.
    """

    def __init__(self, client: Redis) -> None:
        self._script = client.register_script(SLIDING_WINDOW_LUA)

    async def evaluate(
        self,
        key: str,
        *,
        now_ms: int,
        window_ms: int,
        limit: int,
        entry_id: str,
    ) -> int:
        """Run one atomic evict/count/insert step for ``key``.

        Returns:
            ADMITTED or DENIED.

        Raises:
            redis.exceptions.RedisError: On transport or script failures.
            StoreError: If Redis replies with anything other than 0 or 1.
        """
        reply = await self._script(keys=[key], args=[now_ms, window_ms, limit, entry_id])

        try:
            result = int(reply)
        except (TypeError, ValueError):
            result = None

        if result not in (ADMITTED, DENIED):
            raise StoreError(
                code="unexpected_script_reply",
                message=f"Sliding window script returned {reply!r}",
            )
        return result
