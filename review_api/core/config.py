"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file

Settings are frozen once loaded. Missing required values (session secret,
database URL) raise a validation error, which stops the process at startup.
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

# Package directory holding the bundled templates and public assets
PACKAGE_ROOT = Path(__file__).resolve().parents[1]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

# Select the .env file for the current environment
_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment.

    Pydantic Settings (v2) can populate values from environment variables.
    However, static type checkers often treat required fields as required
    constructor arguments, which is not how BaseSettings is intended to be used.
    """

    return AppSettings()  # type: ignore[call-arg]


def _build_database_settings() -> "DatabaseSettings":
    """Build database settings from environment.

    See _build_app_settings() for rationale about the type ignore.
    """

    return DatabaseSettings()  # type: ignore[call-arg]


class AppSettings(BaseSettings):
    """HTTP pipeline configuration: sessions, rate limiting, assets."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )

    session_secret: str = Field(
        ...,
        min_length=1,
        description="Secret used to sign the session cookie",
    )
    session_timeout_seconds: int = Field(
        15 * 60,
        description="Max-Age of the session cookie in seconds",
        ge=1,
    )
    session_store_ttl_seconds: int = Field(
        15 * 60,
        description="Time-to-live of session records in the store",
        ge=1,
    )
    session_cookie_name: str = Field(
        "sid",
        description="Name of the cookie carrying the signed session id",
    )

    rate_limit_enabled: bool = Field(
        True,
        description="Enable global rate limiting per client address",
    )
    rate_limit_requests: int = Field(
        20,
        description="Maximum number of requests allowed per window (per client)",
        ge=1,
    )
    rate_limit_window_seconds: int = Field(
        1,
        description="Rate limit window size in seconds",
        ge=1,
    )
    rate_limit_message: str = Field(
        "Too many requests from this IP, please try again later.",
        description="Message returned with 429 responses",
    )

    trusted_proxy_hops: int = Field(
        1,
        description="Number of reverse proxies whose X-Forwarded-For entries are trusted",
        ge=0,
    )

    static_dir: Path = Field(
        PACKAGE_ROOT / "public",
        description="Directory served verbatim under the root path",
    )
    templates_dir: Path = Field(
        PACKAGE_ROOT / "templates",
        description="Directory holding Jinja2 templates",
    )
    compression_min_size: int = Field(
        1000,
        description="Minimum response size in bytes before gzip is applied",
        ge=0,
    )

    last_visit_cookie_name: str = Field(
        "lastVisit",
        description="Cookie recording the time of the previous request",
    )
    last_visit_max_age_seconds: int = Field(
        2 * 24 * 60 * 60,
        description="Max-Age of the last-visit cookie in seconds",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
        frozen=True,
    )


class DatabaseSettings(BaseSettings):
    """MongoDB connection configuration."""

    url: str = Field(
        ...,
        min_length=1,
        description="MongoDB connection string (mongodb:// or mongodb+srv://)",
    )
    name: str | None = Field(
        None,
        description="Database name; defaults to the one in the URL, then 'review_api'",
    )
    sessions_collection: str = Field(
        "sessions",
        description="Collection holding session documents",
    )
    connect_timeout_ms: int = Field(
        5000,
        description="Server selection timeout used for the startup ping",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        case_sensitive=False,
        frozen=True,
    )


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="json or plain")
    output: str = Field("stdout", description="stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(10 * 1024 * 1024, description="Rotate file after this many bytes (0 disables)")
    backup_count: int = Field(5, description="Rotated files to keep")
    request_id_header: str = Field("X-Request-ID", description="Header carrying the request id")

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
        frozen=True,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if required settings are missing.

    Environments:
    - development: Local development (DEBUG=true)
    - testing: Automated tests (uses .env.testing)
    - staging: Pre-production (uses .env.staging)
    - production: Production deployment (uses .env.production)
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=_build_app_settings)
    db: DatabaseSettings = Field(default_factory=_build_database_settings)
    log: LogSettings = Field(default_factory=LogSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
        frozen=True,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
