"""Application configuration utilities."""
from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BASE_URL = "https://phinvads.cdc.gov/baseStu3/ValueSet/"


class Settings(BaseSettings):
    """Centralized configuration loaded from environment or .env file."""

    model_config = SettingsConfigDict(
        env_prefix="CATALOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    base_url: str = DEFAULT_BASE_URL
    # query parameter the server accepts to resume a listing after a given id
    resume_param: str = "_getpages"
    max_retries: int = Field(default=10, ge=0)
    backoff_seconds: float = Field(default=3.0, ge=0)
    request_timeout: float = Field(default=30.0, gt=0)
    user_agent: str = "CatalogHarvest/1.0"
    output_dir: str = "results"
    archive_dirname: str = "valuesets"
    log_level: str = "INFO"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
