from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DATA_DIR = Path(__file__).resolve().parent / "data"


class Settings(BaseSettings):
    """Application configuration sourced from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    env: str = Field(default="dev", alias="APP_ENV")
    debug: bool = Field(default=False, alias="APP_DEBUG")

    data_dir: Path = Field(default=DEFAULT_DATA_DIR, alias="RXCHECK_DATA_DIR")
    rules_file: str = Field(default="interaction_rules.json", alias="RXCHECK_RULES_FILE")

    # Defaults to one worker per registered strategy
    max_workers: Optional[int] = Field(default=None, alias="RXCHECK_MAX_WORKERS")

    enable_request_tracing: bool = Field(default=True, alias="ENABLE_REQUEST_TRACING")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
