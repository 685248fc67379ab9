"""Foundation - Core building blocks for retry_block.

Contains: Result, attempt outcomes, errors, config.
"""

from __future__ import annotations

__all__ = [
    # Result
    "Result", "Ok", "Err",
    # Outcome
    "Outcome", "OutcomeKind", "Success", "Retry", "Fatal", "classify", "classify_exception",
    # Errors
    "RetryError",
    # Config
    "RetryBlockSettings", "LoggingSettings", "RetrySettings",
    "get_settings", "clear_settings_cache", "configure_logging",
]


def __getattr__(name: str):
    """Lazy imports to avoid circular dependencies."""
    if name in ("Result", "Ok", "Err"):
        from . import result
        return getattr(result, name)

    if name in ("Outcome", "OutcomeKind", "Success", "Retry", "Fatal", "classify", "classify_exception"):
        from . import outcome
        return getattr(outcome, name)

    if name == "RetryError":
        from .errors import RetryError
        return RetryError

    if name in ("RetryBlockSettings", "LoggingSettings", "RetrySettings",
                "get_settings", "clear_settings_cache", "configure_logging"):
        from . import config
        return getattr(config, name)

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
