"""
Configuration management using Pydantic Settings.
Single source of truth for database and paging defaults.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment or .env. Validated on first access."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    debug: bool = False

    # Any SQLAlchemy sync URL (sqlite, postgresql+psycopg2, mysql+pymysql, ...)
    database_url: str = "sqlite:///./fluentrepo.db"

    # Pagination
    default_page_size: int = 20
    max_page_size: int = 100


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance. Call get_settings.cache_clear() after changing env."""
    return Settings()
