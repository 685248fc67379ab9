"""Structured retry configuration.

Builds a delay sequence from plain data, e.g. loaded from YAML/JSON or an
environment-backed settings object:

    >>> config = RetryConfig.model_validate(
    ...     {"strategy": "exponential", "base_ms": 100, "factor": 2.0, "max_retries": 5}
    ... )
    >>> [round(d, 3) for d in config.build()]
    [0.1, 0.2, 0.4, 0.8, 1.6]

The older {count, min_backoff, max_backoff} shape (milliseconds, random
delay in a range) is still accepted and maps to the "range" strategy.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Annotated, Any, Callable, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    NonNegativeFloat,
    PositiveFloat,
    model_validator,
)

from .backoff import JITTER_SHAPES, Exponential, Fixed, Range
from .delay import DelaySequence, JitterSource

Strategy = Literal["fixed", "exponential", "jittered", "range"]
JitterShape = Literal["full", "equal"]

# Legacy key -> current key
_ALIASES: dict[str, str] = {
    "count": "max_retries",
    "min_backoff": "min_backoff_ms",
    "max_backoff": "max_backoff_ms",
}


class RetryConfig(BaseModel):
    """Serializable description of a backoff strategy.

    Attributes:
        strategy: fixed | exponential | jittered | range
        base_ms: First (or only) delay in milliseconds
        factor: Growth factor for exponential/jittered
        max_delay_ms: Per-delay ceiling in milliseconds (None = uncapped). For
            "jittered" the cap applies before jitter, so "equal" jitter can
            emit up to 1.5 * max_delay_ms
        max_retries: Retries after the first attempt (None = unbounded)
        jitter: Jitter shape for "jittered": full [0, d] or equal [d/2, 1.5d]
        min_backoff_ms: Lower bound for "range"
        max_backoff_ms: Upper bound for "range"
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_default=True,
        json_schema_extra={
            "title": "Retry Config",
            "description": "Backoff strategy and retry limit",
            "examples": [
                {"strategy": "exponential", "base_ms": 100, "factor": 2.0, "max_retries": 5},
                {"strategy": "jittered", "base_ms": 50, "max_delay_ms": 5000, "jitter": "equal"},
                {"count": 3, "min_backoff": 100, "max_backoff": 300},
            ],
        },
    )

    strategy: Strategy = "exponential"
    base_ms: NonNegativeFloat = 100.0
    factor: Annotated[float, Field(ge=1.0)] = 2.0
    max_delay_ms: PositiveFloat | None = None
    max_retries: Annotated[int, Field(ge=0)] | None = 3
    jitter: JitterShape = "full"
    min_backoff_ms: NonNegativeFloat = 0.0
    max_backoff_ms: NonNegativeFloat = 1000.0

    @model_validator(mode="before")
    @classmethod
    def _accept_legacy_keys(cls, data: Any) -> Any:
        """Rename {count, min_backoff, max_backoff}; such configs default to "range"."""
        if not isinstance(data, dict) or not _ALIASES.keys() & data.keys():
            return data
        renamed = {_ALIASES.get(k, k): v for k, v in data.items()}
        renamed.setdefault("strategy", "range")
        return renamed

    @model_validator(mode="after")
    def _check_range(self) -> RetryConfig:
        if self.min_backoff_ms > self.max_backoff_ms:
            raise ValueError("min_backoff_ms must not exceed max_backoff_ms")
        return self

    @property
    def is_unbounded(self) -> bool:
        """Whether the built sequence never runs out."""
        return self.max_retries is None

    def build(self, rng: JitterSource | None = None) -> DelaySequence:
        """Build a fresh delay sequence (seconds) for one loop run."""
        seq: DelaySequence
        match self.strategy:
            case "fixed":
                seq = Fixed(self.base_ms / 1000)
            case "range":
                seq = Range(self.min_backoff_ms / 1000, self.max_backoff_ms / 1000, rng)
            case _:
                seq = Exponential(self.base_ms / 1000, self.factor)
        if self.max_delay_ms is not None:
            seq = seq.cap(self.max_delay_ms / 1000)
        if self.strategy == "jittered":
            seq = seq.jitter(JITTER_SHAPES[self.jitter], rng)
        if self.max_retries is not None:
            seq = seq.take(self.max_retries)
        return seq


DelaySource = Callable[[], Iterable[float]]


def delay_source(delays: RetryConfig | DelaySource | Iterable[float]) -> DelaySource:
    """Normalize something that can produce delays many times into a factory.

    Accepts a RetryConfig, a zero-argument factory, or a re-iterable value such
    as a list. Iterators (DelaySequence, generators, itertools objects) are
    consumed by their first run, so they are rejected.
    """
    if isinstance(delays, RetryConfig):
        return delays.build
    if isinstance(delays, Iterator):
        raise ValueError(
            f"{delays!r} is single-use; pass a factory such as `lambda: {type(delays).__name__}(...)` instead"
        )
    if callable(delays):
        return delays
    return lambda: delays
