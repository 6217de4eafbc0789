"""
Centralized configuration for the MapChat backend.

All settings are loaded from environment variables with sensible defaults.
Variables are prefixed with ``MAPCHAT_`` (e.g. ``MAPCHAT_SUPABASE_URL``).
"""

from functools import lru_cache
from typing import Literal
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="MAPCHAT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "MapChat Sync"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"

    # Remote document database
    document_backend: Literal["memory", "supabase"] = "memory"

    # Supabase
    supabase_url: str = ""
    supabase_service_role_key: str = ""
    supabase_db_url: str = ""
    supabase_documents_table: str = "documents"
    supabase_media_bucket: str = "chat-media"

    # Document store
    document_cache_ttl_seconds: float = 300.0
    default_query_limit: int = 20
    max_query_limit: int = 500
    conflict_retries: int = 3

    # Remote calls
    remote_timeout_seconds: float = 10.0
    remote_max_retries: int = 3
    remote_initial_backoff_seconds: float = 0.5
    remote_max_backoff_seconds: float = 8.0
    listener_poll_interval_seconds: float = 2.0

    # Location
    location_fix_timeout_seconds: float = 2.0


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


def reset_settings_cache() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    get_settings.cache_clear()
