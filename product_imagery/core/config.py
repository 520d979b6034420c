"""
Application Configuration

Centralized settings management using Pydantic Settings.
Supports environment variables and .env files.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ==========================================================================
    # App Settings
    # ==========================================================================
    APP_NAME: str = "Product Imagery Derivative Service"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"  # development, staging, PROD
    DEBUG: bool = True

    # ==========================================================================
    # Upload Validation
    # ==========================================================================
    MAX_UPLOAD_SIZE_MB: float = 50
    MIN_DIMENSION: int = 300
    MAX_DIMENSION: int = 10000
    ALLOWED_FORMATS: List[str] = ["jpeg", "jpg", "png", "webp", "gif"]

    # ==========================================================================
    # Derivative Sizes (pixels, square bounding boxes)
    # ==========================================================================
    THUMBNAIL_SIZE: int = 200
    MEDIUM_SIZE: int = 400
    LARGE_SIZE: int = 800

    # ==========================================================================
    # Pipeline Settings
    # ==========================================================================
    PROCESSING_TIMEOUT_SECONDS: float = 15.0
    MAX_WORKERS: int = 4

    # Content analysis
    ANALYSIS_SAMPLE_PIXELS: int = 10000
    HIGH_CONTRAST_THRESHOLD: float = 0.6

    # AVIF output stays empty unless this is switched on
    AVIF_ENCODING_ENABLED: bool = False

    # ==========================================================================
    # Logging Settings
    # ==========================================================================
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT_JSON: bool = True  # JSON for production, console for development

    # ==========================================================================
    # CORS Settings
    # ==========================================================================
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173,http://localhost:8000"


# Global settings instance
settings = Settings()
