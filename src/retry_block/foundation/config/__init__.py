"""Configuration management using pydantic-settings."""

from .settings import (
    LoggingSettings,
    RetryBlockSettings,
    RetrySettings,
    clear_settings_cache,
    configure_logging,
    get_settings,
)

__all__ = [
    "LoggingSettings",
    "RetryBlockSettings",
    "RetrySettings",
    "clear_settings_cache",
    "configure_logging",
    "get_settings",
]
