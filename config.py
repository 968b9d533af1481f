"""
Configuration management using pydantic-settings.
Loads from environment variables with sensible defaults.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # External tools
    FFMPEG_BINARY: str = "ffmpeg"
    FFPROBE_BINARY: str = "ffprobe"

    # Subprocess timeouts (seconds)
    FFMPEG_TIMEOUT: int = 120
    MIX_TIMEOUT: int = 300
    PROBE_TIMEOUT: int = 30

    # Temp directory for marshalled payloads (empty = system temp dir)
    TEMP_DIR: str = ""

    # URL downloads
    DOWNLOAD_TIMEOUT: float = 120.0
    DOWNLOAD_MAX_RETRIES: int = 3
    DOWNLOAD_MAX_BYTES: int = 0  # 0 = no limit

    # Celery
    CELERY_BROKER_URL: str = "redis://redis:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://redis:6379/0"

    # HTTP
    CORS_ORIGINS: str = "http://localhost:5678"

    LOG_LEVEL: str = "INFO"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
