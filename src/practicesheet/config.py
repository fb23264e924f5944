"""Application configuration.

Configuration is loaded from environment variables. For local development, you can provide a
`.env` file and set `PRACTICESHEET_ENV_FILE` to point to it.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Practice sheet settings.

    All fields are environment-configurable. Prefix is `PRACTICESHEET_`.
    """

    model_config = SettingsConfigDict(
        env_prefix="PRACTICESHEET_",
        env_file=None,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Core
    app_env: Literal["dev", "prod"] = Field(default="dev")
    log_level: str = Field(default="INFO")

    # Storage
    storage_backend: Literal["memory", "filesystem", "redis"] = Field(default="filesystem")
    storage_dir: Path = Field(default=Path(".practicesheet"))
    storage_key: str = Field(default="codolio-sheet-data", min_length=1)

    # Redis (optional)
    redis_url: str = Field(default="redis://localhost:6379/0")
    redis_key_prefix: str = Field(default="practicesheet")

    # Ingestion
    sheet_url: str | None = Field(default=None)

    # Networking
    http_timeout_s: float = Field(default=30.0, ge=1.0, le=300.0)
    http_user_agent: str = Field(default="practicesheet/0.1")
    http_max_retries: int = Field(default=3, ge=0, le=10)
    http_retry_backoff_s: float = Field(default=0.5, ge=0.0, le=30.0)
    http_retry_max_backoff_s: float = Field(default=8.0, ge=0.0, le=120.0)


def load_settings() -> Settings:
    """Load settings from env.

    Returns:
        Settings: Parsed settings.
    """

    env_file_override = os.getenv("PRACTICESHEET_ENV_FILE")
    if env_file_override:
        env_path = Path(env_file_override)
        return Settings(_env_file=env_path)

    default_env = Path.cwd() / ".env"
    if default_env.exists():
        return Settings(_env_file=default_env)

    return Settings()
