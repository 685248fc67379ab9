"""Delay sequences: lazy, possibly infinite producers of wait durations.

A delay sequence is the single source of truth for both pacing and retry
count. The loop pulls one duration after every retryable failure; when the
sequence is exhausted the loop gives up. Any iterable of non-negative floats
(seconds) works, but DelaySequence adds fluent combinators and tracks how many
values it has produced, which is what a resumed loop needs.

Example:
    >>> from retry_block import Exponential
    >>> seq = Exponential(0.1).cap(2.0).take(5)
    >>> [round(d, 2) for d in seq]
    [0.1, 0.2, 0.4, 0.8, 1.6]
    >>> next(seq, None) is None  # stays exhausted
    True
"""

from __future__ import annotations

import threading
from abc import abstractmethod
from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING, Callable, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .backoff import Bounded, Capped, Jittered, JitterFn


# Longest wait time.sleep and asyncio.sleep accept; saturation point for delays
MAX_DELAY: float = float(threading.TIMEOUT_MAX)


def clamp(delay: float) -> float:
    """Clamp a duration to [0, MAX_DELAY]. NaN maps to 0."""
    if not delay >= 0.0:
        return 0.0
    return delay if delay <= MAX_DELAY else MAX_DELAY


@runtime_checkable
class JitterSource(Protocol):
    """Random-number collaborator used only by jittered strategies.

    random.Random instances and the random module itself satisfy it.
    """

    def uniform(self, a: float, b: float) -> float: ...


class DelaySequence(Iterator[float]):
    """Base class for delay sequences.

    Subclasses implement _advance(), returning the next duration or None at
    the end. The base class guarantees that an exhausted sequence never
    yields again and counts values in `pulled`.

    Pulling is destructive: a sequence is used once. Build a fresh instance
    to start over.
    """

    __slots__ = ("pulled", "_done")

    def __init__(self) -> None:
        self.pulled = 0
        self._done = False

    @abstractmethod
    def _advance(self) -> float | None: ...

    def __iter__(self) -> DelaySequence:
        return self

    def __next__(self) -> float:
        if self._done:
            raise StopIteration
        delay = self._advance()
        if delay is None:
            self._done = True
            raise StopIteration
        self.pulled += 1
        return delay

    @property
    def exhausted(self) -> bool:
        return self._done

    # ─────────────────────────────────────────────────────────────────
    # Combinators
    # ─────────────────────────────────────────────────────────────────

    def take(self, n: int) -> DelaySequence:
        """Limit to at most n delays, i.e. at most n retries."""
        return Take(self, n)

    def chain(self, other: Iterable[float]) -> DelaySequence:
        """Continue with `other` once this sequence ends."""
        return Chain(self, other)

    def map(self, fn: Callable[[float], float]) -> DelaySequence:
        """Transform each delay. Output is clamped to [0, MAX_DELAY]."""
        return Mapped(self, fn)

    def cap(self, ceiling: float) -> Capped:
        """Cap every individual delay at `ceiling`."""
        from .backoff import Capped
        return Capped(self, ceiling)

    def bounded(self, total: float) -> Bounded:
        """End once the sum of all delays would exceed `total`."""
        from .backoff import Bounded
        return Bounded(self, total)

    def jitter(self, fn: JitterFn | None = None, rng: JitterSource | None = None) -> Jittered:
        """Randomize each delay with `fn` (default: full jitter)."""
        from .backoff import Jittered, full_jitter
        return Jittered(self, fn or full_jitter, rng)


class Delays(DelaySequence):
    """Adapter turning any iterable of durations into a DelaySequence."""

    __slots__ = ("_it",)

    def __init__(self, durations: Iterable[float]) -> None:
        super().__init__()
        self._it = iter(durations)

    def _advance(self) -> float | None:
        return next(self._it, None)


def delays(durations: Iterable[float]) -> DelaySequence:
    """Wrap an iterable of durations, passing DelaySequences through."""
    return durations if isinstance(durations, DelaySequence) else Delays(durations)


class Take(DelaySequence):
    __slots__ = ("_inner", "_left")

    def __init__(self, inner: Iterable[float], n: int) -> None:
        if n < 0:
            raise ValueError(f"take() needs n >= 0, got {n}")
        super().__init__()
        self._inner = iter(inner)
        self._left = n

    def _advance(self) -> float | None:
        if self._left <= 0:
            return None
        self._left -= 1
        return next(self._inner, None)


class Chain(DelaySequence):
    __slots__ = ("_first", "_second", "_on_second")

    def __init__(self, first: Iterable[float], second: Iterable[float]) -> None:
        super().__init__()
        self._first, self._second = iter(first), second
        self._on_second = False

    def _advance(self) -> float | None:
        if not self._on_second:
            if (delay := next(self._first, None)) is not None:
                return delay
            self._on_second = True
            self._second = iter(self._second)
        return next(self._second, None)  # type: ignore[call-overload]


class Mapped(DelaySequence):
    __slots__ = ("_inner", "_fn")

    def __init__(self, inner: Iterable[float], fn: Callable[[float], float]) -> None:
        super().__init__()
        self._inner, self._fn = iter(inner), fn

    def _advance(self) -> float | None:
        if (delay := next(self._inner, None)) is None:
            return None
        return clamp(self._fn(delay))


def resume(durations: Iterable[float], pulled: int) -> DelaySequence:
    """Rebuild a sequence positioned after `pulled` values.

    `durations` must be fresh. The returned sequence reports `pulled` as its
    starting position, so checkpoints taken from it stay comparable with the
    ones taken before the restart.
    """
    seq = delays(durations)
    while seq.pulled < pulled and next(seq, None) is not None:
        pass
    return seq
