"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It sets the TESTING environment variable so no .env file is loaded, and
provides an isolated in-process Redis (fakeredis with Lua support) per test.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["TESTING"] = "true"
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from unittest.mock import Mock

import fakeredis
import pytest

from sliding_limiter.core.config import AppSettings, LogSettings, Settings


@pytest.fixture
def fake_redis() -> fakeredis.FakeAsyncRedis:
    """Async Redis backed by a private in-process server."""
    return fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer())


@pytest.fixture
def clock() -> Mock:
    """Controllable time source (UNIX seconds) for the limiter."""
    return Mock(return_value=1_700_000_000.0)


@pytest.fixture
def make_settings():
    """Build Settings with AppSettings overrides."""

    def _make(**app_overrides) -> Settings:
        return Settings(
            app=AppSettings(**app_overrides),
            log=LogSettings(level="WARNING"),
        )

    return _make
