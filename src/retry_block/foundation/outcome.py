"""Three-way classification of a single attempt.

An attempt either succeeds, fails in a way worth retrying, or fails in a way
that must stop the loop immediately:

    Success(value)  -> loop ends with Ok(value)
    Retry(error)    -> loop pulls the next delay, or ends with Err(error)
    Fatal(error)    -> loop ends with Err(error), remaining delays untouched

Attempt bodies rarely build an Outcome themselves. Plain returns and raised
exceptions are converted by classify() and classify_exception():

    >>> classify(42)
    Success(42)
    >>> classify(Err("timeout"))
    Retry('timeout')
    >>> classify(Fatal("permission denied"))
    Fatal('permission denied')
"""

from __future__ import annotations

from enum import StrEnum
from typing import Generic, TypeVar, cast

from .result import Err, Ok, Result

T = TypeVar("T")
E = TypeVar("E")

ExcTypes = type[BaseException] | tuple[type[BaseException], ...]


class OutcomeKind(StrEnum):
    SUCCESS = "success"
    RETRY = "retry"
    FATAL = "fatal"


class Outcome(Generic[T, E]):
    """Result of one attempt. Build with Success(), Retry() or Fatal()."""

    __slots__ = ("_value", "_kind")
    __match_args__ = ("kind", "value")

    def __init__(self, value: T | E, kind: OutcomeKind) -> None:
        self._value: T | E = value
        self._kind = kind

    @property
    def kind(self) -> OutcomeKind:
        return self._kind

    @property
    def value(self) -> T | E:
        """Success value, or the error for Retry/Fatal."""
        return self._value

    @property
    def is_success(self) -> bool:
        return self._kind is OutcomeKind.SUCCESS

    @property
    def is_retry(self) -> bool:
        return self._kind is OutcomeKind.RETRY

    @property
    def is_fatal(self) -> bool:
        return self._kind is OutcomeKind.FATAL

    @property
    def error(self) -> E | None:
        return None if self.is_success else cast(E, self._value)

    def to_result(self) -> Result[T, E]:
        """Collapse to the two-way Result the loop hands back."""
        if self.is_success:
            return Ok(cast(T, self._value))
        return Err(cast(E, self._value))

    def __repr__(self) -> str:
        return f"{self._kind.value.capitalize()}({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Outcome):
            return NotImplemented
        return self._kind is other._kind and self._value == other._value

    def __hash__(self) -> int:
        return hash((self._kind, self._value))


def Success(value: T) -> Outcome[T, E]:  # noqa: N802
    return Outcome(value, OutcomeKind.SUCCESS)


def Retry(error: E) -> Outcome[T, E]:  # noqa: N802
    return Outcome(error, OutcomeKind.RETRY)


def Fatal(error: E) -> Outcome[T, E]:  # noqa: N802
    return Outcome(error, OutcomeKind.FATAL)


def classify(returned: object) -> Outcome[object, object]:
    """Convert whatever an attempt returned into an Outcome.

    - Outcome: passed through unchanged
    - Result: Ok(v) -> Success(v), Err(e) -> Retry(e)
    - anything else: Success(value)
    """
    if isinstance(returned, Outcome):
        return returned
    if isinstance(returned, Result):
        return Success(returned.unwrap()) if returned.is_ok() else Retry(returned.unwrap_err())
    return Success(returned)


def classify_exception(
    exc: Exception,
    *,
    retry_on: ExcTypes | None = None,
    fatal_on: ExcTypes = (),
) -> Outcome[object, Exception]:
    """Classify an exception raised by an attempt.

    A raised exception is an ordinary error and retried by default. It is
    Fatal when it matches fatal_on, or when retry_on is given and it does not
    match retry_on. fatal_on wins when both match.
    """
    if fatal_on and isinstance(exc, fatal_on):
        return Fatal(exc)
    if retry_on is not None and not isinstance(exc, retry_on):
        return Fatal(exc)
    return Retry(exc)
