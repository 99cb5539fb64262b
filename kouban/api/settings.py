"""
API Settings

Pydantic settings for the FastAPI service.
"""

from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service settings, read from KOUBAN_* environment variables or .env."""

    model_config = SettingsConfigDict(
        env_prefix="KOUBAN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)

    # CORS
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://127.0.0.1:3000"]
    )

    # Breakdowns call the LLM many times per request
    rate_limit: str = Field(default="5/minute")

    # Optional JSON config file for the pipeline and provider
    config_path: str = Field(default="")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
