"""Retry loops: drive one delay sequence and one attempt function to completion.

Both drivers run the same state machine:

    ATTEMPTING --Success(v)--> SUCCEEDED                  returns Ok(v)
    ATTEMPTING --Fatal(e)----> FAILED                     returns Err(e)
    ATTEMPTING --Retry(e)----> FAILED   (no more delays)  returns Err(e)
    ATTEMPTING --Retry(e)----> WAITING(d) --> ATTEMPTING  (attempt + 1)

The first attempt runs before any delay is pulled, and a Fatal outcome never
pulls one. retry_fn() blocks the calling thread while WAITING;
async_retry_fn() suspends the current task instead, so other tasks keep
running.

After every attempt the loop can emit a Checkpoint describing where it is.
Feeding the checkpoint's token back through `resume_from` continues a loop
that was interrupted, e.g. by a process restart.

Example:
    >>> from retry_block import Fixed, retry_fn
    >>> calls = iter([ConnectionError("reset"), ConnectionError("reset"), 42])
    >>> def attempt():
    ...     item = next(calls)
    ...     if isinstance(item, Exception):
    ...         raise item
    ...     return item
    >>> retry_fn(Fixed(0.001), attempt)
    Ok(42)
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Awaitable, Callable, TypeVar

from pydantic import BaseModel, ConfigDict, NonNegativeFloat, NonNegativeInt, PositiveInt

from retry_block.foundation.outcome import ExcTypes, Outcome, classify, classify_exception
from retry_block.foundation.result import Result

from .delay import DelaySequence, clamp, resume

logger = logging.getLogger("retry_block.retry")

T = TypeVar("T")


class LoopState(StrEnum):
    ATTEMPTING = "attempting"
    WAITING = "waiting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class ResumeToken(BaseModel):
    """Everything needed to continue an interrupted loop.

    Attributes:
        attempt: Index of the next attempt to run (1-based)
        pulled: Delays already consumed from the sequence
        elapsed: Seconds of delay already scheduled
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        json_schema_extra={"title": "Resume Token", "examples": [{"attempt": 3, "pulled": 2, "elapsed": 0.3}]},
    )

    attempt: PositiveInt = 1
    pulled: NonNegativeInt = 0
    elapsed: NonNegativeFloat = 0.0


@dataclass(frozen=True, slots=True)
class Checkpoint:
    """Loop progress after one attempt.

    Attributes:
        attempt: Index of the attempt that just finished
        state: State the loop moves to (WAITING, SUCCEEDED or FAILED)
        error: Error that attempt produced, None on success
        delay: Wait about to happen when state is WAITING, else None
        elapsed: Seconds of delay scheduled so far, including `delay`
        token: Position to resume from
    """

    attempt: int
    state: LoopState
    error: object | None
    delay: float | None
    elapsed: float
    token: ResumeToken = field(repr=False)

    @property
    def terminal(self) -> bool:
        return self.state in (LoopState.SUCCEEDED, LoopState.FAILED)


CheckpointSink = Callable[[Checkpoint], Any]


@dataclass(slots=True)
class _Loop:
    """Transient state owned by one loop invocation."""

    delays: Iterator[float]
    attempt: int
    pulled: int
    elapsed: float
    started: int

    @classmethod
    def start(cls, durations: Iterable[float], resume_from: ResumeToken | None) -> _Loop:
        if resume_from is None:
            it = iter(durations)
            pulled = it.pulled if isinstance(it, DelaySequence) else 0
            return cls(it, 1, pulled, 0.0, 1)
        it = resume(durations, resume_from.pulled)
        return cls(it, resume_from.attempt, it.pulled, resume_from.elapsed, resume_from.attempt)

    def transition(self, outcome: Outcome[Any, Any]) -> tuple[LoopState, float | None]:
        """Classified attempt -> next state. The only place a delay is pulled."""
        if outcome.is_success:
            return LoopState.SUCCEEDED, None
        if outcome.is_fatal:
            return LoopState.FAILED, None
        try:
            delay = clamp(float(next(self.delays)))
        except StopIteration:
            return LoopState.FAILED, None
        self.pulled += 1
        self.elapsed += delay
        return LoopState.WAITING, delay

    def checkpoint(self, state: LoopState, outcome: Outcome[Any, Any], delay: float | None) -> Checkpoint:
        token = ResumeToken(attempt=self.attempt + 1, pulled=self.pulled, elapsed=self.elapsed)
        return Checkpoint(self.attempt, state, outcome.error, delay, self.elapsed, token)

    def finish(self, state: LoopState, outcome: Outcome[Any, Any], label: str) -> Result[Any, Any]:
        if state is LoopState.SUCCEEDED:
            if self.attempt > self.started:
                logger.info(f"[{label}] Succeeded on attempt {self.attempt}")
        elif outcome.is_fatal:
            logger.warning(f"[{label}] Attempt {self.attempt} failed with non-retryable error: {outcome.error!r}")
        else:
            logger.warning(f"[{label}] Giving up after attempt {self.attempt}: {outcome.error!r}")
        return outcome.to_result()

    def log_retry(self, delay: float, outcome: Outcome[Any, Any], label: str) -> None:
        logger.info(f"[{label}] Attempt {self.attempt} failed ({outcome.error!r}), retrying in {delay:.3f}s")


def _label(operation: Callable[..., Any], name: str | None) -> str:
    return name or getattr(operation, "__qualname__", None) or type(operation).__name__


def retry_fn(
    delays: Iterable[float],
    operation: Callable[[], T | Result[T, Any] | Outcome[T, Any]],
    *,
    retry_on: ExcTypes | None = None,
    fatal_on: ExcTypes = (),
    on_checkpoint: CheckpointSink | None = None,
    resume_from: ResumeToken | None = None,
    name: str | None = None,
) -> Result[T, Any]:
    """Retry `operation` until it succeeds, fails fatally, or `delays` runs out.

    The operation may return a plain value (success), a Result (Err is
    retried), or an Outcome (Fatal stops immediately). An exception it raises
    is retried unless it matches `fatal_on` or, when given, fails to match
    `retry_on`. Only Exception subclasses are caught.

    Args:
        delays: Any iterable of non-negative seconds; one value is pulled per retry
        operation: Zero-argument attempt function
        retry_on: Exception types worth retrying (default: all)
        fatal_on: Exception types that stop the loop immediately
        on_checkpoint: Called with a Checkpoint after every attempt
        resume_from: Token from a previous checkpoint; `delays` must be fresh
        name: Label for log messages (default: operation's qualname)

    Returns:
        Ok(value) on success, otherwise Err(last error).
    """
    loop, label = _Loop.start(delays, resume_from), _label(operation, name)
    while True:
        try:
            outcome = classify(operation())
        except Exception as exc:
            outcome = classify_exception(exc, retry_on=retry_on, fatal_on=fatal_on)

        state, delay = loop.transition(outcome)
        if on_checkpoint is not None:
            on_checkpoint(loop.checkpoint(state, outcome, delay))
        if state is not LoopState.WAITING:
            return loop.finish(state, outcome, label)

        loop.log_retry(delay, outcome, label)  # type: ignore[arg-type]
        time.sleep(delay)  # type: ignore[arg-type]
        loop.attempt += 1


async def async_retry_fn(
    delays: Iterable[float],
    operation: Callable[[], Awaitable[T | Result[T, Any] | Outcome[T, Any]]],
    *,
    retry_on: ExcTypes | None = None,
    fatal_on: ExcTypes = (),
    on_checkpoint: CheckpointSink | None = None,
    resume_from: ResumeToken | None = None,
    name: str | None = None,
) -> Result[T, Any]:
    """Async twin of retry_fn(); waits with asyncio.sleep instead of blocking.

    `operation` is called once per attempt and its awaitable awaited before
    the outcome is classified. `on_checkpoint` may be a coroutine function.

    Cancelling the enclosing task while it waits or while an attempt runs
    raises CancelledError out of this call; no further attempts are made.
    """
    loop, label = _Loop.start(delays, resume_from), _label(operation, name)
    while True:
        try:
            outcome = classify(await operation())
        except Exception as exc:
            outcome = classify_exception(exc, retry_on=retry_on, fatal_on=fatal_on)

        state, delay = loop.transition(outcome)
        if on_checkpoint is not None and inspect.isawaitable(ack := on_checkpoint(loop.checkpoint(state, outcome, delay))):
            await ack
        if state is not LoopState.WAITING:
            return loop.finish(state, outcome, label)

        loop.log_retry(delay, outcome, label)  # type: ignore[arg-type]
        await asyncio.sleep(delay)  # type: ignore[arg-type]
        loop.attempt += 1


__all__ = [
    "LoopState",
    "ResumeToken",
    "Checkpoint",
    "CheckpointSink",
    "retry_fn",
    "async_retry_fn",
]
