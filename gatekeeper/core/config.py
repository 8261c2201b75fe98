"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file

Settings are read once at import. The middleware itself is configured through
options; ``gatekeeper.core.rate_limit.options_from_settings`` bridges the two.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename
_env_file = str(_env_path) if _env_path.is_file() else None


# Nested BaseSettings don't inherit env_file, so populate os.environ first.
if _env_file and not os.getenv("TESTING"):
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def parse_excluded_keys(value: str | None) -> list[str]:
    """Split a comma-separated key list, preserving order.

    Examples:
        >>> parse_excluded_keys("127.0.0.1, 10.0.0.2")
        ['127.0.0.1', '10.0.0.2']
        >>> parse_excluded_keys(None)
        []
    """
    if not value:
        return []
    return [key.strip() for key in value.split(",") if key.strip()]


def _build_app_settings() -> "AppSettings":
    return AppSettings()


def _build_log_settings() -> "LogSettings":
    return LogSettings()


class AppSettings(BaseSettings):
    """Rate limiting configuration."""

    rate_limit_enabled: bool = Field(
        True,
        description="Install the rate limiting middleware",
    )
    rate_limit_excluded_keys: str | None = Field(
        None,
        description="Comma-separated keys that bypass the limiter entirely",
    )
    rate_limit_include_headers: bool = Field(
        False,
        description="Include X-RateLimit-* headers built from limiter metadata",
    )
    rate_limit_trust_forwarded_for: bool = Field(
        False,
        description="Derive the key from a proxy header instead of the peer address",
    )
    rate_limit_forwarded_header: str = Field(
        "X-Forwarded-For",
        description="Header read when rate_limit_trust_forwarded_for is enabled",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Either 'json' or 'plain'")
    output: str = Field("stdout", description="Either 'stdout' or 'file'")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        10_000_000,
        description="Rotate the log file at this size; 0 disables rotation",
        ge=0,
    )
    backup_count: int = Field(5, description="Rotated files to keep", ge=0)
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

    Environments:
    - development: Local development
    - testing: Automated tests (uses .env.testing)
    - staging: Pre-production (uses .env.staging)
    - production: Production deployment (uses .env.production)
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=_build_app_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


settings = Settings()
