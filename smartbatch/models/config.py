"""Runtime settings for the engine and CLI, read with pydantic-settings."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from smartbatch.models.batch_options import DEFAULT_MAX_CONCURRENCY, BatchOptions

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """Settings from ``SMARTBATCH_*`` environment variables or a ``.env`` file."""

    model_config = SettingsConfigDict(
        env_prefix="SMARTBATCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    database_path: str = "data/smartbatch.db"
    log_level: str = "INFO"
    # Extra attempts for transient store errors, on top of the first call
    max_retry_attempts: int = Field(default=2, ge=0, le=5)
    default_max_concurrency: int = Field(default=DEFAULT_MAX_CONCURRENCY, ge=1)

    @field_validator("database_path")
    @classmethod
    def create_database_directory(cls, value: str) -> str:
        if value != ":memory:":
            Path(value).parent.mkdir(parents=True, exist_ok=True)
        return value

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in _LOG_LEVELS:
            msg = f"log_level must be one of {', '.join(_LOG_LEVELS)}"
            raise ValueError(msg)
        return level

    def default_options(self) -> BatchOptions:
        """Batch options seeded from configuration."""
        return BatchOptions(max_concurrency=self.default_max_concurrency)
