"""
Configuration Module

Settings are read from environment variables prefixed with STOCKPAIL_
or from a local .env file.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="STOCKPAIL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_url: str = Field(
        default="sqlite:///./stockpail.db",
        description="SQLAlchemy URL of the database holding stocks and documents",
    )
    storage_path: Path = Field(
        default=Path("./storage"),
        description="Directory used as the document file store",
    )
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="console", description="'console' or 'json'")
    app_title: str = Field(default="Stock Pail")


@lru_cache
def get_settings() -> Settings:
    return Settings()
