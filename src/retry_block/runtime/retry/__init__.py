"""Retry loops driven by delay sequences.

A delay sequence decides both how long to wait and how many times to retry;
the loop runs attempts until one succeeds, one fails fatally, or the
sequence runs out.

Example:
    >>> from retry_block.runtime.retry import Exponential, retry_fn
    >>>
    >>> result = retry_fn(Exponential(0.05).cap(1.0).take(5), fetch_status)
    >>> result.unwrap_or("unknown")
"""

from .backoff import (
    JITTER_SHAPES,
    Bounded,
    Capped,
    Exponential,
    Fibonacci,
    Fixed,
    JitterFn,
    Jittered,
    NoDelay,
    Range,
    equal_jitter,
    full_jitter,
    jitter,
)
from .config import DelaySource, RetryConfig, delay_source
from .decorators import async_retry_perpetual, async_retrying, retry_perpetual, retrying
from .delay import MAX_DELAY, DelaySequence, JitterSource, clamp, delays, resume
from .loop import Checkpoint, CheckpointSink, LoopState, ResumeToken, async_retry_fn, retry_fn
from .persist import (
    CheckpointStore,
    JsonFileInjector,
    MemoryInjector,
    Record,
    RetryHandle,
    RetryInjector,
    Status,
)

__all__ = [
    # Delay sequences
    "MAX_DELAY",
    "DelaySequence",
    "JitterSource",
    "clamp",
    "delays",
    "resume",
    # Strategies
    "Fixed",
    "NoDelay",
    "Exponential",
    "Fibonacci",
    "Range",
    "Capped",
    "Bounded",
    "Jittered",
    "JitterFn",
    "JITTER_SHAPES",
    "full_jitter",
    "equal_jitter",
    "jitter",
    # Loop
    "LoopState",
    "ResumeToken",
    "Checkpoint",
    "CheckpointSink",
    "retry_fn",
    "async_retry_fn",
    # Config
    "RetryConfig",
    "DelaySource",
    "delay_source",
    # Decorators
    "retrying",
    "async_retrying",
    "retry_perpetual",
    "async_retry_perpetual",
    # Persistence
    "Status",
    "Record",
    "RetryInjector",
    "CheckpointStore",
    "RetryHandle",
    "MemoryInjector",
    "JsonFileInjector",
]
