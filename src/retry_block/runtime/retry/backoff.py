"""Backoff strategies producing delay sequences.

Generators:
- Fixed: the same delay forever (0 means retry immediately)
- NoDelay: retry immediately, forever
- Exponential: base * factor^i, saturating at MAX_DELAY
- Fibonacci: each delay is the sum of the previous two
- Range: uniformly random delay within [minimum, maximum]

Wrappers (also reachable as DelaySequence methods):
- Capped: per-delay ceiling
- Bounded: total delay budget
- Jittered: randomize each delay with a caller-supplied shape

All generators are infinite; limit them with take() or bounded().

Example:
    >>> import random
    >>> seq = Exponential(0.5, factor=3.0).cap(10.0).jitter(equal_jitter, random.Random(7)).take(4)
    >>> len(list(seq))
    4
"""

from __future__ import annotations

import math
import random
from collections.abc import Iterable
from typing import Callable

from .delay import MAX_DELAY, DelaySequence, JitterSource, clamp

JitterFn = Callable[[float, JitterSource], float]


def _check_duration(name: str, value: float) -> float:
    if math.isnan(value) or value < 0:
        raise ValueError(f"{name} must be a non-negative duration, got {value!r}")
    return clamp(value)


# ─────────────────────────────────────────────────────────────────────────────
# Jitter shapes
# ─────────────────────────────────────────────────────────────────────────────


def full_jitter(delay: float, rng: JitterSource) -> float:
    """Uniform in [0, delay]."""
    return rng.uniform(0.0, delay)


def equal_jitter(delay: float, rng: JitterSource) -> float:
    """Uniform in [delay/2, delay*1.5]."""
    return rng.uniform(delay * 0.5, delay * 1.5)


JITTER_SHAPES: dict[str, JitterFn] = {"full": full_jitter, "equal": equal_jitter}


def jitter(delay: float, rng: JitterSource | None = None) -> float:
    """Apply full jitter to a single duration."""
    return clamp(full_jitter(delay, rng or random))  # type: ignore[arg-type]


# ─────────────────────────────────────────────────────────────────────────────
# Generators
# ─────────────────────────────────────────────────────────────────────────────


class Fixed(DelaySequence):
    """Each retry waits the same duration.

    Args:
        delay: Seconds between attempts. 0 is legal and means no pause.
    """

    __slots__ = ("_delay",)

    def __init__(self, delay: float) -> None:
        super().__init__()
        self._delay = _check_duration("delay", delay)

    def _advance(self) -> float:
        return self._delay

    def __repr__(self) -> str:
        return f"Fixed({self._delay!r})"


class NoDelay(Fixed):
    """Each retry happens immediately."""

    __slots__ = ()

    def __init__(self) -> None:
        super().__init__(0.0)

    def __repr__(self) -> str:
        return "NoDelay()"


class Exponential(DelaySequence):
    """Each retry multiplies the previous delay by `factor`.

    Pull i (0-indexed) is base * factor**i. Growth saturates at MAX_DELAY
    instead of overflowing, so the sequence never fails no matter how long
    it runs.

    Args:
        base: First delay in seconds
        factor: Growth factor per retry (default: 2.0)
    """

    __slots__ = ("_current", "_factor")

    def __init__(self, base: float, factor: float = 2.0) -> None:
        super().__init__()
        self._current = _check_duration("base", base)
        if math.isnan(factor) or factor < 0:
            raise ValueError(f"factor must be non-negative, got {factor!r}")
        self._factor = factor

    def _advance(self) -> float:
        delay = self._current
        self._current = clamp(delay * self._factor)
        return delay

    def __repr__(self) -> str:
        return f"Exponential(current={self._current!r}, factor={self._factor!r})"


class Fibonacci(DelaySequence):
    """Each retry waits the sum of the two previous delays: b, b, 2b, 3b, 5b, ..."""

    __slots__ = ("_curr", "_next")

    def __init__(self, base: float) -> None:
        super().__init__()
        self._curr = self._next = _check_duration("base", base)

    def _advance(self) -> float:
        delay = self._curr
        self._curr, self._next = self._next, clamp(self._curr + self._next)
        return delay


class Range(DelaySequence):
    """Each retry waits a duration drawn uniformly from [minimum, maximum]."""

    __slots__ = ("_min", "_max", "_rng")

    def __init__(self, minimum: float, maximum: float, rng: JitterSource | None = None) -> None:
        super().__init__()
        self._min = _check_duration("minimum", minimum)
        self._max = _check_duration("maximum", maximum)
        if self._min > self._max:
            raise ValueError(f"minimum ({minimum}) must not exceed maximum ({maximum})")
        self._rng: JitterSource = rng or random  # type: ignore[assignment]

    def _advance(self) -> float:
        return clamp(self._rng.uniform(self._min, self._max))


# ─────────────────────────────────────────────────────────────────────────────
# Wrappers
# ─────────────────────────────────────────────────────────────────────────────


class Capped(DelaySequence):
    """Caps every delay of `inner` at `ceiling`; the length is unchanged."""

    __slots__ = ("_inner", "_ceiling")

    def __init__(self, inner: Iterable[float], ceiling: float) -> None:
        super().__init__()
        self._inner = iter(inner)
        self._ceiling = _check_duration("ceiling", ceiling)

    def _advance(self) -> float | None:
        if (delay := next(self._inner, None)) is None:
            return None
        return min(delay, self._ceiling)


class Bounded(DelaySequence):
    """Ends as soon as the cumulative delay would exceed `total`.

    Lets callers express "give up after roughly N seconds of waiting" as part
    of the sequence itself.
    """

    __slots__ = ("_inner", "_total", "_acc")

    def __init__(self, inner: Iterable[float], total: float) -> None:
        super().__init__()
        self._inner = iter(inner)
        self._total = _check_duration("total", total)
        self._acc = 0.0

    def _advance(self) -> float | None:
        if (delay := next(self._inner, None)) is None:
            return None
        acc = self._acc + delay
        if math.isinf(acc) or acc > self._total:
            return None
        self._acc = acc
        return delay


class Jittered(DelaySequence):
    """Perturbs each delay of `inner` with a jitter shape.

    The shape decides the distribution; this wrapper only threads the random
    source through and clamps the result to [0, MAX_DELAY].

    Args:
        inner: Delays to perturb
        jitter_fn: Shape, called as jitter_fn(delay, rng) (default: full_jitter)
        rng: Random source (default: the random module)
    """

    __slots__ = ("_inner", "_fn", "_rng")

    def __init__(self, inner: Iterable[float], jitter_fn: JitterFn = full_jitter, rng: JitterSource | None = None) -> None:
        super().__init__()
        self._inner = iter(inner)
        self._fn = jitter_fn
        self._rng: JitterSource = rng or random  # type: ignore[assignment]

    def _advance(self) -> float | None:
        if (delay := next(self._inner, None)) is None:
            return None
        return clamp(self._fn(delay, self._rng))


__all__ = [
    "MAX_DELAY",
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
]
