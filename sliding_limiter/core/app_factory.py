"""Application factory for the FastAPI app.

Centralizes app construction (store client, limiter, middleware, handlers,
routers and lifespan) so tests can build isolated instances with their own
store and settings.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from fastapi import FastAPI
from redis.asyncio import Redis

from sliding_limiter.adapters.rate_limit.redis_window import SlidingWindowRateLimiter
from sliding_limiter.api.routes import health_router, hello_router, metrics_router
from sliding_limiter.core.config import Settings, settings as default_settings
from sliding_limiter.core.exception_handlers import setup_exception_handlers
from sliding_limiter.core.logging import configure_logging
from sliding_limiter.core.metrics import InMemoryOutcomeRecorder, OutcomeRecorder
from sliding_limiter.core.middleware import RateLimitMiddleware, build_request_id_middleware
from sliding_limiter.core.store import close_store, create_store_client, describe_store, ping_store

logger = logging.getLogger(__name__)


def _parse_paths(paths: str) -> list[str]:
    return [p.strip() for p in paths.split(",") if p.strip()]


def create_app(
    app_settings: Settings | None = None,
    *,
    store: Redis | None = None,
    recorder: OutcomeRecorder | None = None,
    clock: Callable[[], float] = time.time,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        app_settings: Settings to build from; defaults to the global settings.
        store: Redis client to use; built from settings when omitted.
        recorder: Outcome recorder; a fresh in-memory one when omitted.
        clock: Time source for the limiter (UNIX seconds).

    Returns:
        Configured FastAPI app. Its lifespan probes the store on startup and
        closes it on shutdown, after uvicorn has drained in-flight requests.
    """
    cfg = app_settings or default_settings

    # Logging first so subsequent init logs are formatted as desired
    configure_logging(cfg.log)

    store = store if store is not None else create_store_client(cfg.redis)
    recorder = recorder if recorder is not None else InMemoryOutcomeRecorder()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        try:
            await ping_store(store)
            logger.info("store.connected", extra={"store": describe_store(cfg.redis)})
            yield
        finally:
            await close_store(store)

    app = FastAPI(
        title="Sliding Limiter",
        description=(
            "Sliding-window-log rate limiting backed by Redis. Every request is "
            "counted against its client's trailing window; over-quota requests "
            "receive 429 with Retry-After."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.store = store
    app.state.recorder = recorder

    # Middleware: the last one added is the outermost, so request ids wrap
    # everything including rate limit rejections.
    if cfg.app.rate_limit_enabled:
        limiter = SlidingWindowRateLimiter(
            client=store,
            limit=cfg.app.rate_limit_requests,
            window_seconds=cfg.app.rate_limit_window_seconds,
            fail_open=cfg.app.rate_limit_fail_open,
            timeout=cfg.app.rate_limit_timeout_seconds,
            clock=clock,
        )
        app.state.limiter = limiter
        app.add_middleware(
            RateLimitMiddleware,
            limiter=limiter,
            recorder=recorder,
            key_prefix=cfg.app.rate_limit_key_prefix,
            trust_forwarded_for=cfg.app.trust_forwarded_for,
            exempt_paths=_parse_paths(cfg.app.rate_limit_exempt_paths),
            include_headers=cfg.app.rate_limit_include_headers,
        )
    app.middleware("http")(build_request_id_middleware(cfg.log.request_id_header))

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(hello_router)
    app.include_router(health_router)
    app.include_router(metrics_router)

    return app
