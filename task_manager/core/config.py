"""
Application configuration loaded from environment variables.
"""

from functools import lru_cache
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Task manager configuration."""

    model_config = SettingsConfigDict(env_prefix="TASKS_", env_file=".env", extra="ignore")

    # Database
    database_url: str = "sqlite+aiosqlite:///./tasks.db"
    migrate_on_startup: bool = True

    # Logging
    log_level: Literal["debug", "info", "warning", "error", "critical"] = "info"
    log_format: Literal["json", "text"] = "text"

    debug: bool = False

    @field_validator("log_level", mode="before")
    @classmethod
    def _lower_level(cls, v):
        return v.lower() if isinstance(v, str) else v


@lru_cache
def get_settings() -> Settings:
    return Settings()
