"""
Configuration for the expense tracker.

Values come from environment variables and an optional .env file.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    database_url: str = Field(
        default="sqlite:///./local.db",
        description="SQLAlchemy database URL (postgres:// is accepted)"
    )

    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    log_level: str = Field(
        default="INFO",
        description="Minimum log level"
    )
    log_json: bool = Field(
        default=True,
        description="Render logs as JSON lines (console renderer otherwise)"
    )

    token_ttl_days: int = Field(
        default=7,
        ge=1,
        le=365,
        description="Lifetime of an issued bearer token"
    )
    cors_origin: str = Field(
        default="http://localhost:3000",
        description="Origin allowed to call the API from a browser"
    )
    default_page_size: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Records per page when the client gives no limit"
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()
