"""Configuration and settings for Pagewise application.

Uses Pydantic Settings for fail-fast validation on startup.
All required environment variables are validated at import time.
"""

import logging
import sys
from functools import lru_cache
from typing import Any, Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def setup_logging(level: str = "INFO") -> None:
    """Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
    """
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("anthropic").setLevel(logging.WARNING)
    logging.getLogger("pymupdf").setLevel(logging.WARNING)
    logging.getLogger("google").setLevel(logging.WARNING)


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Raises ValidationError on startup if required variables are missing.
    """

    model_config = SettingsConfigDict(
        env_file=("../.env", ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # API Keys (required)
    anthropic_api_key: str = Field(..., description="Anthropic API key for Claude")

    # Application Settings
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # Document Processing
    max_file_size_mb: int = Field(default=50, description="Max upload size in MB")
    epub_reading_order: Literal["spine", "lexicographic"] = Field(
        default="spine",
        description="EPUB page order: OPF spine (falls back to path sort) or path sort",
    )

    # Generation Settings
    llm_model: str = Field(
        default="claude-sonnet-4-20250514", description="Claude model for answers"
    )
    llm_temperature: float = Field(
        default=0.3, description="LLM temperature for answers grounded in read pages"
    )
    llm_max_tokens: int = Field(default=2048, description="Max tokens for generation")
    llm_timeout_seconds: float = Field(
        default=60.0, description="Total timeout for a generation call"
    )

    # Conversation Settings
    history_window_turns: int = Field(
        default=6, ge=0, description="Prior turns included in each request"
    )

    # Reading Progress Persistence
    progress_backend: Literal["file", "firestore"] = Field(
        default="file", description="Where reading progress is stored"
    )
    progress_dir: str = Field(
        default=".pagewise/progress", description="Directory for file-backed progress"
    )
    firebase_credentials: str | None = Field(
        default=None,
        description="Firebase service account JSON string or path to JSON file",
    )
    progress_collection: str = Field(
        default="progress", description="Firestore collection for reading progress"
    )

    @field_validator("anthropic_api_key")
    @classmethod
    def validate_api_key_not_empty(cls, v: str, info) -> str:
        """Ensure API keys are not empty strings."""
        if not v or not v.strip():
            raise ValueError(f"{info.field_name} cannot be empty")
        return v.strip()

    @model_validator(mode="after")
    def validate_progress_backend(self) -> "Settings":
        """Firestore progress needs credentials."""
        if self.progress_backend == "firestore" and not self.firebase_credentials:
            raise ValueError(
                "firebase_credentials is required when progress_backend is 'firestore'"
            )
        return self

    @property
    def max_file_size_bytes(self) -> int:
        """Get max file size in bytes."""
        return self.max_file_size_mb * 1024 * 1024


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


# CORS Configuration
CORS_CONFIG: dict[str, Any] = {
    "allow_origins": [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:5173",
    ],
    "allow_credentials": True,
    "allow_methods": ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    "allow_headers": ["*"],
    "expose_headers": ["*"],
    "max_age": 600,
}

# FastAPI App Configuration
APP_CONFIG: dict[str, Any] = {
    "title": "Pagewise",
    "description": (
        "PDF/EPUB reader backend with a spoiler-free reading assistant. "
        "The assistant only sees pages the reader has already reached."
    ),
    "version": "0.1.0",
    "docs_url": "/api/docs",
    "redoc_url": "/api/redoc",
    "openapi_url": "/api/openapi.json",
    "openapi_tags": [
        {
            "name": "Health",
            "description": "Health check and service status",
        },
        {
            "name": "Documents",
            "description": "Document upload, pages and reading progress",
        },
        {
            "name": "Chat",
            "description": "Reading assistant limited to pages read so far",
        },
    ],
}


def get_app_config() -> dict[str, Any]:
    """Get FastAPI application configuration."""
    return APP_CONFIG.copy()


def get_cors_config() -> dict[str, Any]:
    """Get CORS middleware configuration."""
    return CORS_CONFIG.copy()
