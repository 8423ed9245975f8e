"""
Configuration Utility - Environment Variables Management

Centralized configuration loading from .env files using pydantic-settings.
Type-safe access to all environment variables with validation.

Usage:
    from utils.config import settings

    host = settings.SHIFTBOARD_HOST
    redis_url = settings.REDIS_URL
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Shiftboard API Configuration
    SHIFTBOARD_ACCESS_KEY_ID: str = Field(default="")
    SHIFTBOARD_SECRET_KEY: str = Field(default="")
    SHIFTBOARD_HOST: str = Field(default="api.shiftdata.com")
    SHIFTBOARD_PATH: str = Field(default="/servola/api/api.cgi")
    SHIFTBOARD_TIMEOUT: int = Field(default=30)
    SHIFTBOARD_MAX_RETRIES: int = Field(default=3)

    # Pagination Configuration
    PAGE_BATCH_SIZE: int = Field(default=100)
    PAGE_START: int = Field(default=0)

    # Refresh Worker Configuration
    REFRESH_SCHEDULE_CRON: str = Field(default="*/5 * * * *")
    REFRESH_WORKGROUP: str | None = Field(default=None)

    # Redis Configuration
    REDIS_URL: str = Field(default="redis://redis:6379/0")
    REDIS_MAX_CONNECTIONS: int = Field(default=10)
    REDIS_CHANNEL_REFRESH: str = Field(default="whoson.refreshed")
    REDIS_SNAPSHOT_KEY: str = Field(default="whoson:snapshot")
    SNAPSHOT_TTL_SECONDS: int = Field(default=300)

    # Logging Configuration
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(default="text")

    # Application Metadata
    ENVIRONMENT: str = Field(default="production")
    APP_NAME: str = Field(default="staffing-status-backend")
    APP_VERSION: str = Field(default="0.1.0")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True

    @property
    def shiftboard_url(self) -> str:
        """Full JSON-RPC endpoint URL (host + path)."""
        return f"https://{self.SHIFTBOARD_HOST}{self.SHIFTBOARD_PATH}"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Singleton Settings instance
    """
    return Settings()


# Global settings instance
settings = get_settings()
