"""Rate limiting adapters.

The limiter keeps its window history in Redis so every worker and every
process instance shares one quota per key.
"""

from sliding_limiter.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from sliding_limiter.adapters.rate_limit.redis_window import SlidingWindowRateLimiter

__all__ = ["AbstractRateLimiter", "RateLimitResult", "SlidingWindowRateLimiter"]
