"""Tests for the server entry point and shutdown sequencing."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from sliding_limiter import main
from sliding_limiter.core.config import AppSettings, LogSettings, Settings


def _fake_server(*, started: bool) -> MagicMock:
    server = MagicMock()
    server.config.host = "127.0.0.1"
    server.config.port = 8080
    server.started = started
    server.serve = AsyncMock()
    return server


def test_build_server_uses_grace_period_and_bind_address():
    cfg = Settings(
        app=AppSettings(host="127.0.0.1", port=9090, shutdown_grace_seconds=2.5),
        log=LogSettings(level="WARNING"),
    )

    server = main.build_server(cfg)

    assert server.config.host == "127.0.0.1"
    assert server.config.port == 9090
    assert server.config.timeout_graceful_shutdown == 2.5
    assert server.config.lifespan == "on"


@pytest.mark.asyncio
async def test_serve_awaits_server_task():
    server = _fake_server(started=True)

    await main.serve(server)

    server.serve.assert_awaited_once()


@pytest.mark.asyncio
async def test_serve_exits_when_startup_failed():
    server = _fake_server(started=False)

    with pytest.raises(SystemExit) as exc_info:
        await main.serve(server)

    assert exc_info.value.code == main.STARTUP_FAILURE


def test_run_swallows_reraised_interrupt(monkeypatch):
    server = _fake_server(started=True)
    seen = []

    async def interrupted(srv) -> None:
        seen.append(srv)
        raise KeyboardInterrupt

    monkeypatch.setattr(main, "build_server", lambda: server)
    monkeypatch.setattr(main, "serve", interrupted)

    main.run()

    assert seen == [server]
