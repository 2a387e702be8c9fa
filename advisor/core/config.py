"""
config.py — Centralized Application Configuration Loader

Purpose:
- Define a single source of truth for the settings the EDGAR core reads.
- Load and validate environment variables from `.env` or OS environment.

The ingestion core reads exactly two values from the environment:
- USER_AGENT: SEC-compliant User-Agent sent with every archive request.
- ADVISOR_DATA_DIR: root of the on-disk cache (index pages, documents,
  ticker map, rendered markdown).

HTTP tunables (timeouts, retry counts, concurrency) are not environment
driven; see `EdgarClientSettings` in the EDGAR client module.

This module does NOT:
- Create directories (see `advisor.core.cache.CacheLayout.ensure_directories`).
- Make external API calls.
"""

from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_USER_AGENT = "advisor/0.1 (software@example.com)"


class Settings(BaseSettings):
    """
    Settings container for the EDGAR ingestion core.
    """
    USER_AGENT: str = Field(
        DEFAULT_USER_AGENT,
        description="SEC-compliant User-Agent string for EDGAR requests",
    )
    ADVISOR_DATA_DIR: Path = Field(
        Path("data"),
        description="Root directory of the EDGAR cache and parsed output",
    )

    @field_validator("USER_AGENT", mode="before")
    @classmethod
    def fallback_user_agent(cls, v: Any) -> str:
        """Blank values fall back to the built-in user agent."""
        if isinstance(v, str) and v.strip():
            return v.strip()
        return DEFAULT_USER_AGENT

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


# Singleton: settings imported anywhere will reference same object.
settings = Settings()
