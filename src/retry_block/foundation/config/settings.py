"""Environment-based configuration using pydantic-settings.

Provides process-wide defaults for retry loops and logging, read from
environment variables (and an optional .env file).

Example:
    >>> from retry_block.foundation.config import get_settings
    >>> settings = get_settings()
    >>> settings.retry.max_retries
    3
    >>> settings.retry.to_config().strategy
    'exponential'

    # Or with environment variables:
    # RETRY_BLOCK_RETRY_STRATEGY=jittered
    # RETRY_BLOCK_RETRY_MAX_RETRIES=5
    # RETRY_BLOCK_LOG_LEVEL=DEBUG
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Annotated, Literal

from pydantic import Field, NonNegativeFloat, PositiveFloat, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from retry_block.runtime.retry.config import JitterShape, RetryConfig, Strategy


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="RETRY_BLOCK_LOG_",
        extra="ignore",
    )

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"

    @field_validator("level", mode="before")
    @classmethod
    def _upper(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v


class RetrySettings(BaseSettings):
    """Default retry configuration; field meanings match RetryConfig."""

    model_config = SettingsConfigDict(
        env_prefix="RETRY_BLOCK_RETRY_",
        extra="ignore",
    )

    strategy: Strategy = "exponential"
    base_ms: NonNegativeFloat = Field(default=100.0, description="First delay in milliseconds")
    factor: Annotated[float, Field(ge=1.0)] = 2.0
    max_delay_ms: PositiveFloat | None = Field(default=None, description="Per-delay ceiling in milliseconds")
    max_retries: Annotated[int, Field(ge=0)] | None = 3
    jitter: JitterShape = "full"
    min_backoff_ms: NonNegativeFloat = 0.0
    max_backoff_ms: NonNegativeFloat = 1000.0

    def to_config(self) -> RetryConfig:
        """Validated RetryConfig built from these defaults."""
        return RetryConfig.model_validate(self.model_dump())


class RetryBlockSettings(BaseSettings):
    """Root settings for retry_block.

    Loads configuration from environment variables with RETRY_BLOCK_ prefix.

    Example environment variables:
        RETRY_BLOCK_LOG_LEVEL=INFO
        RETRY_BLOCK_RETRY_BASE_MS=250
        RETRY_BLOCK_RETRY_MAX_DELAY_MS=10000
    """

    model_config = SettingsConfigDict(
        env_prefix="RETRY_BLOCK_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        validate_default=True,
    )

    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)


@lru_cache(maxsize=1)
def get_settings() -> RetryBlockSettings:
    """Get the global settings instance (cached)."""
    return RetryBlockSettings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing).

    After calling this, the next get_settings() call will
    reload configuration from environment.
    """
    get_settings.cache_clear()


def configure_logging(settings: RetryBlockSettings | None = None) -> logging.Logger:
    """Apply the configured level to the "retry_block" logger tree.

    Handlers are left to the application.
    """
    settings = settings or get_settings()
    logger = logging.getLogger("retry_block")
    logger.setLevel(settings.logging.level)
    return logger
