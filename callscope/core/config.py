"""
Settings and environment management module for the CallScope service.

This module provides centralized configuration management using pydantic-settings,
which automatically loads settings from environment variables and .env files.

Key Features:
- Environment variable validation and type coercion
- Sensible defaults for development
- Singleton pattern via @lru_cache for efficient access

Environment Variables:
- SCHEMA_REGISTRY_PATH: JSON file holding the schema definitions to load at startup
  (optional; the built-in collections schema is used when unset)
- DETECTION_THRESHOLD: Score a schema must exceed to count as detected (default: 30)
- HIGH_CONFIDENCE_THRESHOLD: Score at or above which a match needs no review (default: 70)
- DEFAULT_HISTOGRAM_BUCKETS: Bucket count when a histogram request omits one (default: 10)
- DEFAULT_TOP_VALUES_LIMIT: Result size when a top-values request omits one (default: 10)
- CORS_ORIGINS: Origins allowed to call the API

The analytics and detection services never read these values themselves. The API
layer passes them explicitly, so every threshold used by the core is visible at the
call site.

Usage:
    from callscope.core.config import get_settings

    settings = get_settings()
    threshold = settings.detection_threshold
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        schema_registry_path: Path to a JSON list of schema definitions.
        detection_threshold: Minimum score (exclusive) for a detected schema.
        high_confidence_threshold: Score at which a detected schema is trusted as is.
        default_histogram_buckets: Histogram bucket count used when none is requested.
        default_top_values_limit: Number of values returned by top-values by default.
        cors_origins: Origins allowed by the CORS middleware.
        log_level: Root logging level for the API process.
    """

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore',
        case_sensitive=False,
    )

    # =========================================================================
    # Schema Registry
    # =========================================================================

    # Registry file loaded once at startup and re-read by POST /schemas/reload.
    # When unset the built-in collections schema is served.
    schema_registry_path: Optional[str] = None

    # =========================================================================
    # Detection Thresholds
    # =========================================================================

    # The import flow detects permissively and lets the user confirm the pick,
    # so the default only rejects clearly unrelated files.
    detection_threshold: float = Field(default=30.0, ge=0.0, le=100.0)

    # Matches at or above this score are reported with confidence level "high".
    high_confidence_threshold: float = Field(default=70.0, ge=0.0, le=100.0)

    # =========================================================================
    # Analytics Defaults
    # =========================================================================

    default_histogram_buckets: int = Field(default=10, ge=1)
    default_top_values_limit: int = Field(default=10, ge=1)

    # =========================================================================
    # API
    # =========================================================================

    cors_origins: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
    log_level: str = "INFO"


@lru_cache()
def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Returns:
        Settings: The application settings instance with all configuration values.

    Note:
        To refresh settings in tests, clear the cache:
        >>> get_settings.cache_clear()
    """
    return Settings()
