"""Configuration management using pydantic-settings."""
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Shared secret for the cache-clear webhook (unset = no auth check)
    sheets_webhook_secret: Optional[str] = None

    # Google Sheets (source of record)
    google_sheets_api_key: Optional[str] = None
    google_sheets_base_url: str = "https://sheets.googleapis.com/v4"
    bars_spreadsheet_id: Optional[str] = None
    bars_range: str = "bars-template!A:R"
    drinks_spreadsheet_id: Optional[str] = None
    drinks_range: str = "drinks!A:Z"

    # Cache settings
    cache_enabled: bool = True
    bars_cache_ttl_seconds: int = 300
    drinks_cache_ttl_seconds: int = 300

    # Concurrent miss coalescing
    coalesce_enabled: bool = True
    coalesce_timeout_seconds: float = 30.0

    # Upstream I/O
    upstream_timeout_seconds: float = 10.0
    upstream_max_attempts: int = 3

    # Likes storage
    likes_database_url: str = "sqlite:///./likes.db"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
