"""
docsource process settings

Settings are loaded from:
1. Environment variables (prefixed with DOCSOURCE_)
2. A .env file in the working directory

Key settings:
- DOCSOURCE_ENVIRONMENT: "development" enables file watching after the build
- DOCSOURCE_MAX_WORKERS: cap on concurrent file reads during bulk ingestion
- DOCSOURCE_LOG_LEVEL: root log level used by the CLI
- DOCSOURCE_CONFIG_FILE: name of the source options file to look for
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """docsource runtime settings."""

    environment: Literal["development", "production"] = "production"
    max_workers: int = Field(default=32, ge=1, description="Concurrent file reads during ingestion")
    log_level: str = "INFO"
    config_file: str = "docsource.toml"

    model_config = SettingsConfigDict(
        env_prefix="DOCSOURCE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        return str(value).strip().upper()

    @property
    def is_dev(self) -> bool:
        return self.environment == "development"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load and cache process settings."""
    return Settings()


def reload_settings() -> Settings:
    """Clear cached settings (useful for tests) and reload."""
    get_settings.cache_clear()
    return get_settings()


__all__ = ["Settings", "get_settings", "reload_settings"]
