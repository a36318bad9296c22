"""Service entry point.

``app`` is importable for ``uvicorn sliding_limiter.main:app``; ``run()`` is
the console script, which owns the server task and its shutdown sequence:

1. serve until SIGINT/SIGTERM
2. stop accepting connections and drain in-flight requests for at most
   ``APP_SHUTDOWN_GRACE_SECONDS``
3. close the Redis client (lifespan shutdown)
"""

from __future__ import annotations

import asyncio
import logging

import uvicorn

from sliding_limiter.core.app_factory import create_app
from sliding_limiter.core.config import Settings, settings

logger = logging.getLogger(__name__)

# Exit status uvicorn uses when application startup fails
STARTUP_FAILURE = 3

app = create_app()


def build_server(app_settings: Settings | None = None) -> uvicorn.Server:
    """Build a uvicorn server around the module app, or a new one for ``app_settings``."""
    cfg = app_settings or settings
    config = uvicorn.Config(
        app if app_settings is None else create_app(cfg),
        host=cfg.app.host,
        port=cfg.app.port,
        lifespan="on",
        log_config=None,
        timeout_graceful_shutdown=cfg.app.shutdown_grace_seconds,
    )
    return uvicorn.Server(config)


async def serve(server: uvicorn.Server) -> None:
    """Run ``server`` as an owned task and wait for its shutdown to finish.

    Raises:
        SystemExit: If the application failed to start (e.g. Redis unreachable).
    """
    logger.info(
        "server.starting",
        extra={"host": server.config.host, "port": server.config.port},
    )
    server_task = asyncio.create_task(server.serve(), name="http-server")
    await server_task

    if not server.started:
        logger.critical("server.startup_failed")
        raise SystemExit(STARTUP_FAILURE)
    logger.info("server.stopped")


def run() -> None:
    """Console script entry point."""
    server = build_server()
    try:
        asyncio.run(serve(server))
    except KeyboardInterrupt:
        # uvicorn re-raises the captured SIGINT after its graceful shutdown
        pass


if __name__ == "__main__":
    run()
