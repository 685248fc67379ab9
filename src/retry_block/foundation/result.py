"""Two-way Result type returned by every retry loop.

A loop run ends in exactly one of two ways:
- Ok: the operation produced a value
- Err: the operation failed fatally, or retries ran out; carries the last error

Example:
    >>> from retry_block import Ok, Err
    >>> Ok(42).map(lambda x: x + 1).unwrap()
    43
    >>> Err("boom").unwrap_or(0)
    0
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Generic, TypeVar, cast

if TYPE_CHECKING:
    from collections.abc import Iterator

T = TypeVar("T")  # Success type
E = TypeVar("E")  # Error type
U = TypeVar("U")  # Mapped success type
F = TypeVar("F")  # Mapped error type


class Result(Generic[T, E]):
    """Discriminated union of a success value (Ok) or an error (Err).

    The error side is whatever the attempt produced: an exception instance
    when the attempt raised, or any value it returned through Err/Retry/Fatal.
    The loop never inspects it.
    """

    __slots__ = ("_value", "_is_ok")
    __match_args__ = ("_value",)

    def __init__(self, value: T | E, is_ok: bool) -> None:
        """Private constructor. Use Ok() or Err() instead."""
        self._value: T | E = value
        self._is_ok: bool = is_ok

    def is_ok(self) -> bool:
        return self._is_ok

    def is_err(self) -> bool:
        return not self._is_ok

    # ─────────────────────────────────────────────────────────────────
    # Value Extraction
    # ─────────────────────────────────────────────────────────────────

    def unwrap(self) -> T:
        """Extract Ok value.

        Raises:
            RuntimeError: If Result is Err. Chained from the error when it is an exception.
        """
        if self._is_ok:
            return cast(T, self._value)
        cause = self._value if isinstance(self._value, BaseException) else None
        raise RuntimeError(f"Called unwrap() on Err value: {self._value!r}") from cause

    def unwrap_err(self) -> E:
        """Extract Err value.

        Raises:
            RuntimeError: If Result is Ok
        """
        if not self._is_ok:
            return cast(E, self._value)
        raise RuntimeError(f"Called unwrap_err() on Ok value: {self._value!r}")

    def unwrap_or(self, default: T) -> T:
        return cast(T, self._value) if self._is_ok else default

    def expect(self, msg: str) -> T:
        """Extract Ok value with a custom failure message."""
        if self._is_ok:
            return cast(T, self._value)
        cause = self._value if isinstance(self._value, BaseException) else None
        raise RuntimeError(f"{msg}: {self._value!r}") from cause

    def ok(self) -> T | None:
        return cast(T, self._value) if self._is_ok else None

    def err(self) -> E | None:
        return cast(E, self._value) if not self._is_ok else None

    # ─────────────────────────────────────────────────────────────────
    # Transformations
    # ─────────────────────────────────────────────────────────────────

    def map(self, f: Callable[[T], U]) -> Result[U, E]:
        if self._is_ok:
            return Ok(f(cast(T, self._value)))
        return Err(cast(E, self._value))

    def map_err(self, f: Callable[[E], F]) -> Result[T, F]:
        if not self._is_ok:
            return Err(f(cast(E, self._value)))
        return Ok(cast(T, self._value))

    def flat_map(self, f: Callable[[T], Result[U, E]]) -> Result[U, E]:
        """Chain a second fallible step onto a successful run."""
        if self._is_ok:
            return f(cast(T, self._value))
        return Err(cast(E, self._value))

    def match(self, *, ok: Callable[[T], U], err: Callable[[E], U]) -> U:
        """Exhaustive case analysis.

        Example:
            >>> Ok(42).match(ok=lambda v: f"got {v}", err=lambda e: f"failed: {e}")
            'got 42'
        """
        if self._is_ok:
            return ok(cast(T, self._value))
        return err(cast(E, self._value))

    # ─────────────────────────────────────────────────────────────────
    # Dunder Methods
    # ─────────────────────────────────────────────────────────────────

    def __bool__(self) -> bool:
        return self._is_ok

    def __repr__(self) -> str:
        return f"{'Ok' if self._is_ok else 'Err'}({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Result):
            return NotImplemented
        return self._is_ok == other._is_ok and self._value == other._value

    def __hash__(self) -> int:
        return hash((self._is_ok, self._value))

    def __iter__(self) -> Iterator[T]:
        """Yield the Ok value, if any (0 or 1 element)."""
        if self._is_ok:
            yield cast(T, self._value)


def Ok(value: T) -> Result[T, E]:  # noqa: N802
    return Result(value, is_ok=True)


def Err(error: E) -> Result[T, E]:  # noqa: N802
    return Result(error, is_ok=False)
