"""
Configuration settings for tutor-sync.

Uses Pydantic Settings for environment variable management with .env file support.
Every field can be overridden with a TUTORSYNC_-prefixed variable, e.g.
TUTORSYNC_API_BASE_URL or TUTORSYNC_MAX_RETRIES.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from tutorsync.api.client import ApiConfig
from tutorsync.core.errors import ApiError, is_retryable
from tutorsync.core.retry import RetryOptions


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="TUTORSYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Tutorial API
    # ========================================
    api_base_url: str = Field(
        default="http://localhost:8080/api",
        description="Base URL of the tutorial backend",
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        description="Per-request timeout applied by the HTTP client",
    )

    # ========================================
    # Retry Behavior
    # ========================================
    max_retries: int = Field(
        default=3,
        ge=0,
        description="Retries after the first attempt for every remote call",
    )
    retry_delay_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Linear backoff unit (retry N waits N x this)",
    )

    # ========================================
    # Content Cache
    # ========================================
    cache_ttl_seconds: float = Field(
        default=300.0,
        gt=0,
        description="Lifetime of a cached tutorial body",
    )

    # ========================================
    # Local Progress Storage
    # ========================================
    storage_path: Path = Field(
        default=Path.home() / ".tutorsync" / "state.db",
        description="SQLite file holding the local progress mirror",
    )
    storage_key: str = Field(
        default="tutorial-progress",
        description="Key of the progress mirror inside local storage",
    )
    default_user_id: str = Field(
        default="default",
        description="User id used when none is given",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )

    # ========================================
    # Helper Methods
    # ========================================
    def get_api_config(self) -> ApiConfig:
        return ApiConfig(base_url=self.api_base_url, timeout_seconds=self.request_timeout_seconds)

    def get_retry_options(self) -> RetryOptions:
        """Retry options for remote calls; only retryable ApiErrors (transport, 5xx) are retried."""
        return RetryOptions(
            max_retries=self.max_retries,
            retry_delay=self.retry_delay_seconds,
            retry_on=(ApiError,),
            retry_if=is_retryable,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
