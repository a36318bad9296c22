"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file and not os.getenv("TESTING"):
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_redis_settings() -> "RedisSettings":
    """Build Redis settings from environment."""

    return RedisSettings()


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment."""

    return AppSettings()


def _build_log_settings() -> "LogSettings":
    """Build logging settings from environment."""

    return LogSettings()


class RedisSettings(BaseSettings):
    """Connection settings for the Redis instance holding window histories."""

    url: str = Field(
        "redis://localhost:6379/0",
        description="Redis connection URL (redis://[:password@]host:port/db)",
    )
    socket_timeout_seconds: float = Field(
        1.0,
        description="Per-command socket timeout in seconds",
        gt=0,
    )
    socket_connect_timeout_seconds: float = Field(
        1.0,
        description="Connection establishment timeout in seconds",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    host: str = Field(
        "0.0.0.0",
        description="Interface the HTTP server binds to",
    )
    port: int = Field(
        8080,
        description="Port the HTTP server listens on",
        ge=1,
        le=65535,
    )

    rate_limit_enabled: bool = Field(
        True,
        description="Enable per-client rate limiting on every non-exempt route",
    )
    rate_limit_requests: int = Field(
        5,
        description="Maximum number of requests admitted per trailing window (0 denies all)",
        ge=0,
    )
    rate_limit_window_seconds: float = Field(
        60.0,
        description="Trailing window size in seconds",
        gt=0,
    )
    rate_limit_key_prefix: str = Field(
        "limit:",
        description="Prefix prepended to the client identity to form the Redis key",
    )
    rate_limit_fail_open: bool = Field(
        True,
        description="Admit requests when Redis cannot be reached (False denies instead)",
    )
    rate_limit_timeout_seconds: float | None = Field(
        None,
        description="Deadline for a single admission check; None relies on the socket timeout",
        gt=0,
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers when throttling",
    )
    rate_limit_exempt_paths: str = Field(
        "/health,/health/ready,/metrics",
        description="Comma-separated request paths that bypass the limiter",
    )
    trust_forwarded_for: bool = Field(
        False,
        description="Use the first X-Forwarded-For entry as the client identity",
    )

    shutdown_grace_seconds: float = Field(
        5.0,
        description="Upper bound on draining in-flight requests after a shutdown signal",
        ge=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field(
        "INFO",
        description="Root log level",
    )
    format: str = Field(
        "json",
        description="Log format: json or plain",
    )
    output: str = Field(
        "stdout",
        description="Log destination: stdout or file",
    )
    file_path: str | None = Field(
        None,
        description="Log file path when output=file",
    )
    max_bytes: int = Field(
        0,
        description="Rotate the log file at this size (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(
        3,
        description="Number of rotated log files to keep",
        ge=0,
    )
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to propagate the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are invalid.
    """

    app_env: str = APP_ENV
    redis: RedisSettings = Field(default_factory=_build_redis_settings)
    app: AppSettings = Field(default_factory=_build_app_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
