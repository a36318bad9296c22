"""HTTP middleware for request correlation and rate limiting.

``build_request_id_middleware(header_name)``:
- Accepts the incoming request id header or generates a UUID
- Stores request_id in contextvars for access throughout the request lifecycle
- Injects request_id and total duration into response headers

``RateLimitMiddleware``:
- Wraps the downstream ASGI app and consults the limiter once per request
- Answers 429 on denial, records every outcome through the injected recorder

Usage:
    app.add_middleware(RateLimitMiddleware, limiter=limiter, recorder=recorder)
    app.middleware("http")(build_request_id_middleware("X-Request-ID"))
"""

from __future__ import annotations

import hashlib
import logging
import math
import time
import uuid
from typing import Awaitable, Callable, Iterable

from fastapi import Request, Response
from starlette.types import ASGIApp, Receive, Scope, Send

from sliding_limiter.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from sliding_limiter.core.errors import RateLimitExceededError, StoreUnavailableError
from sliding_limiter.core.exception_handlers import build_error_response
from sliding_limiter.core.identity import build_rate_limit_key, client_identity
from sliding_limiter.core.logging import clear_request_id, set_request_id
from sliding_limiter.core.metrics import ALLOWED, BLOCKED, OutcomeRecorder

logger = logging.getLogger(__name__)


def build_request_id_middleware(
    header_name: str,
) -> Callable[[Request, Callable[[Request], Awaitable[Response]]], Awaitable[Response]]:
    """Build the HTTP middleware for request ID generation and propagation.

    If the client provides ``header_name``, that value is used. Otherwise, a
    new UUID is generated. The id is stored in contextvars for log
    correlation and echoed back under the same header.

    Args:
        header_name: Header carrying the request correlation id.

    Returns:
        A middleware function for ``app.middleware("http")``.
    """

    async def request_id_middleware(request: Request, call_next) -> Response:
        request_id = request.headers.get(header_name) or str(uuid.uuid4())
        set_request_id(request_id)
        start = time.perf_counter()
        try:
            response: Response = await call_next(request)
        finally:
            clear_request_id()

        duration_ms = (time.perf_counter() - start) * 1000
        response.headers[header_name] = request_id
        response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
        return response

    return request_id_middleware


class RateLimitMiddleware:
    """ASGI adapter that puts a rate limiter in front of another ASGI app.

    Holds the limiter, the wrapped app and the outcome recorder. Each HTTP
    request not on an exempt path costs one admission against the key
    ``key_prefix + client identity``.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        limiter: AbstractRateLimiter,
        recorder: OutcomeRecorder,
        key_prefix: str = "limit:",
        trust_forwarded_for: bool = False,
        exempt_paths: Iterable[str] = (),
        include_headers: bool = True,
    ) -> None:
        self.app = app
        self.limiter = limiter
        self.recorder = recorder
        self.key_prefix = key_prefix
        self.trust_forwarded_for = trust_forwarded_for
        self.exempt_paths = frozenset(exempt_paths)
        self.include_headers = include_headers

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["path"] in self.exempt_paths:
            await self.app(scope, receive, send)
            return

        identity = client_identity(scope, trust_forwarded_for=self.trust_forwarded_for)
        key = build_rate_limit_key(identity, self.key_prefix)
        result = await self.limiter.check(key)

        if result.allowed:
            self.recorder.record(ALLOWED)
            await self.app(scope, receive, send)
            return

        self.recorder.record(BLOCKED)
        response = self._reject(result, key)
        await response(scope, receive, send)

    def _reject(self, result: RateLimitResult, key: str) -> Response:
        key_hash = hashlib.sha256(key.encode()).hexdigest()[:16]

        if result.store_failed:
            # Fail-closed policy: an outage, not a quota decision.
            logger.warning(
                "rate_limit.rejected_store_unavailable",
                extra={"key_hash": key_hash, "error_msg": result.error},
            )
            return build_error_response(
                StoreUnavailableError(
                    code="rate_limit_store_unavailable",
                    message="Rate limiting is temporarily unavailable. Try again later.",
                )
            )

        retry_after = max(1, math.ceil(result.window_seconds))
        logger.warning(
            "rate_limit.exceeded",
            extra={
                "key_hash": key_hash,
                "limit": result.limit,
                "window_s": result.window_seconds,
                "retry_after_s": retry_after,
            },
        )

        headers: dict[str, str] = {}
        if self.include_headers:
            headers["Retry-After"] = str(retry_after)
            headers["X-RateLimit-Limit"] = str(result.limit)
            headers["X-RateLimit-Remaining"] = "0"

        exc = RateLimitExceededError(
            code="rate_limit_exceeded",
            message="Too Many Requests. Rate limit exceeded, try again later.",
            details={"limit": result.limit, "window_seconds": result.window_seconds},
            retry_after_seconds=retry_after,
        )
        return build_error_response(exc, headers=headers or None)
