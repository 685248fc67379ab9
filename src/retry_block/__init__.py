"""retry_block - Retry any operation under a lazy sequence of delays.

The delay sequence is the whole retry policy: each retryable failure pulls
one duration and waits it, and when the sequence runs out the loop gives up
with the last error. Attempts report Success, Retry or Fatal (plain return
values and raised exceptions are classified for you), and the loop hands
back a Result.

Quick Start:
    >>> from retry_block import Exponential, retry_fn
    >>>
    >>> result = retry_fn(Exponential(0.1).cap(5.0).take(4), lambda: fetch("/health"))
    >>> result.is_ok()
    True

Async:
    >>> from retry_block import Fixed, async_retry_fn
    >>>
    >>> await async_retry_fn(Fixed(0.5).take(3), lambda: client.get("/health"))
    Ok(<Response [200]>)

Decorators:
    >>> from retry_block import RetryConfig, retrying
    >>>
    >>> @retrying(RetryConfig(strategy="jittered", base_ms=50, max_retries=5), retry_on=TimeoutError)
    ... def publish(event: dict) -> None:
    ...     broker.send(event)

Persistent retries (resume after a restart):
    >>> from retry_block import JsonFileInjector, RetryHandle
    >>>
    >>> handle = RetryHandle(JsonFileInjector("retries.json"), RetryConfig(count=10, min_backoff=500, max_backoff=1000))
    >>> await handle.retry_pending(4, deliver)
"""

from __future__ import annotations

__version__ = "0.1.0"

# Result & outcomes
from .foundation.result import Err, Ok, Result
from .foundation.outcome import Fatal, Outcome, OutcomeKind, Retry, Success, classify, classify_exception
from .foundation.errors import RetryError

# Delay sequences & strategies
from .runtime.retry import (
    JITTER_SHAPES,
    MAX_DELAY,
    Bounded,
    Capped,
    DelaySequence,
    Exponential,
    Fibonacci,
    Fixed,
    Jittered,
    JitterSource,
    NoDelay,
    Range,
    delays,
    equal_jitter,
    full_jitter,
    jitter,
    resume,
)

# Loops
from .runtime.retry import Checkpoint, LoopState, ResumeToken, async_retry_fn, retry_fn

# Config & decorators
from .runtime.retry import (
    RetryConfig,
    async_retry_perpetual,
    async_retrying,
    delay_source,
    retry_perpetual,
    retrying,
)

# Persistence
from .runtime.retry import (
    CheckpointStore,
    JsonFileInjector,
    MemoryInjector,
    Record,
    RetryHandle,
    RetryInjector,
    Status,
)

# Settings
from .foundation.config import (
    RetryBlockSettings,
    clear_settings_cache,
    configure_logging,
    get_settings,
)

__all__ = [
    "__version__",
    # Result & outcomes
    "Result", "Ok", "Err",
    "Outcome", "OutcomeKind", "Success", "Retry", "Fatal", "classify", "classify_exception",
    "RetryError",
    # Delay sequences & strategies
    "MAX_DELAY", "DelaySequence", "JitterSource", "delays", "resume",
    "Fixed", "NoDelay", "Exponential", "Fibonacci", "Range",
    "Capped", "Bounded", "Jittered",
    "JITTER_SHAPES", "full_jitter", "equal_jitter", "jitter",
    # Loops
    "LoopState", "ResumeToken", "Checkpoint", "retry_fn", "async_retry_fn",
    # Config & decorators
    "RetryConfig", "delay_source",
    "retrying", "async_retrying", "retry_perpetual", "async_retry_perpetual",
    # Persistence
    "Status", "Record", "RetryInjector", "CheckpointStore",
    "RetryHandle", "MemoryInjector", "JsonFileInjector",
    # Settings
    "RetryBlockSettings", "get_settings", "clear_settings_cache", "configure_logging",
]
