"""Application settings for the gas ticker service."""
from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Central configuration loaded from environment variables."""

    database_path: str | None = Field(
        default=None,
        description="Path to the sqlite file used to persist gas entries. Unset runs without a store.",
    )
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8080, ge=1, le=65535)
    default_frequency_seconds: int = Field(default=60, ge=1)
    gas_price_url: str = Field(
        default="https://api.owlracle.info/v4/{network}/gas",
        description="Gas price endpoint; {network} is replaced with the lower-cased network.",
    )
    discord_api_url: str = Field(default="https://discord.com/api/v10")
    http_timeout_seconds: float = Field(default=10.0)

    class Config:
        env_prefix = ""
        env_file = ".env"
        extra = "ignore"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached ``Settings`` instance."""

    return Settings()
