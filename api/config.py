"""
API configuration settings.
"""

from typing import List, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings


class APIConfig(BaseSettings):
    """API configuration settings."""

    # API Settings
    api_title: str = "Books API"
    api_version: str = "1.0.0"
    api_description: str = "A small REST API for creating, reading, updating and deleting books"

    # Server Settings
    host: str = "0.0.0.0"
    port: int = 4000
    debug: bool = False

    # Database Settings
    mongodb_url: str = Field(
        default="mongodb://localhost:27017",
        validation_alias=AliasChoices("mongodb_url", "mongo_uri"),
    )
    mongodb_database: str = "books_api"
    mongodb_collection: str = "books"
    store_timeout_ms: int = 5000  # server selection and socket timeout

    # CORS Settings
    cors_origins: List[str] = ["*"]

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"
    log_file: Optional[str] = None
    log_requests: bool = True

    model_config = {
        "env_file": ".env",
        "extra": "ignore"  # Ignore extra fields from .env
    }

    @field_validator("mongodb_url")
    @classmethod
    def validate_mongodb_url(cls, v):
        """A connection string is required to reach the store."""
        if not v or not v.strip():
            raise ValueError("MongoDB URI is required")
        return v.strip()

    @field_validator("store_timeout_ms")
    @classmethod
    def validate_store_timeout(cls, v):
        """Ensure the driver timeout is reasonable."""
        if v < 100 or v > 60000:
            raise ValueError("store_timeout_ms must be between 100 and 60000")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Ensure log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v):
        """Ensure log format is valid."""
        valid_formats = ["json", "console"]
        if v.lower() not in valid_formats:
            raise ValueError(f"log_format must be one of: {valid_formats}")
        return v.lower()


# Global config instance
config = APIConfig()
