"""
Environment configuration — single source of truth for all settings.

Uses pydantic-settings for type-safe config with .env file support.
All values have sensible defaults for local development.

Usage:
    from quakerisk.core.config import settings
    print(settings.USGS_EVENT_URL)
"""

from __future__ import annotations

from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application-wide settings loaded from environment variables or .env file.

    Precedence: env var > .env file > default value
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ── Application ──
    APP_NAME: str = "Earthquake Risk Analyzer"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"  # development | staging | production
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"  # DEBUG | INFO | WARNING | ERROR | CRITICAL

    # ── Server ──
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # ── CORS ──
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]
    CORS_ALLOW_ALL: bool = True  # False in production

    # ── USGS catalog ──
    USGS_EVENT_URL: str = "https://earthquake.usgs.gov/fdsnws/event/1/query"
    USGS_RESULT_LIMIT: int = 1000

    # ── Geocoding ──
    NOMINATIM_URL: str = "https://nominatim.openstreetmap.org/search"
    GEOCODER_USER_AGENT: str = "quakerisk/1.0 (earthquake risk analyzer)"

    # ── Outbound HTTP ──
    HTTP_TIMEOUT: float = 30.0  # seconds
    FETCH_MAX_RETRIES: int = 3
    RETRY_BACKOFF: float = 1.5  # seconds × attempt

    # ── Search defaults ──
    DEFAULT_RADIUS_KM: float = 100.0
    DEFAULT_MIN_MAGNITUDE: float = 2.5

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"


@lru_cache()
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()


settings = get_settings()
