"""Throttler configuration using Pydantic Settings.

Configuration is environment-aware:
- THROTTLER_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
THROTTLER_ENV = os.getenv("THROTTLER_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(THROTTLER_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_throttler_settings() -> "ThrottlerSettings":
    """Build throttler settings from environment."""

    return ThrottlerSettings()


def _build_log_settings() -> "LogSettings":
    """Build logging settings from environment."""

    return LogSettings()


class ThrottlerSettings(BaseSettings):
    """Engine and persistence configuration."""

    clock: Literal["monotonic", "wall"] = Field(
        "monotonic",
        description=(
            "Timestamp source: 'monotonic' is immune to wall-clock jumps but "
            "restarts with the process; 'wall' keeps snapshots meaningful "
            "across restarts"
        ),
    )
    snapshot_path: str | None = Field(
        None,
        description="File used to persist limiter snapshots (disabled when unset)",
    )
    snapshot_on_shutdown: bool = Field(
        True,
        description="Persist a snapshot to the configured store on shutdown",
    )

    model_config = SettingsConfigDict(
        env_prefix="THROTTLER_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: Literal["json", "plain"] = Field("json", description="Log line format")
    output: Literal["stdout", "file"] = Field("stdout", description="Log destination")
    file_path: str | None = Field(
        None,
        description="Log file path when output=file (defaults to logs/throttler.log)",
    )
    max_bytes: int = Field(
        0,
        description="Rotate the log file at this size (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(5, description="Rotated files to keep", ge=0)

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main settings container.

    Automatically loads from the appropriate .env.{THROTTLER_ENV} file.
    """

    throttler_env: str = THROTTLER_ENV
    throttler: ThrottlerSettings = Field(default_factory=_build_throttler_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


settings = Settings()
