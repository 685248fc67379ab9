"""Tests for the retrying decorators and perpetual helpers."""

from __future__ import annotations

import itertools

import pytest

from retry_block import (
    Err,
    Fixed,
    RetryConfig,
    RetryError,
    async_retry_perpetual,
    async_retrying,
    retry_perpetual,
    retrying,
)
from retry_block.runtime.retry import loop as loop_module


@pytest.fixture
def sleeps(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    recorded: list[float] = []
    monkeypatch.setattr(loop_module.time, "sleep", recorded.append)
    return recorded


def test_retrying_returns_value_after_failures(sleeps: list[float]) -> None:
    calls: list[int] = []

    @retrying([0.1, 0.2, 0.3])
    def flaky(x: int) -> int:
        calls.append(x)
        if len(calls) < 3:
            raise ConnectionError("reset")
        return x * 2

    assert flaky(21) == 42
    assert calls == [21, 21, 21]
    assert sleeps == [0.1, 0.2]


def test_each_call_gets_fresh_delays(sleeps: list[float]) -> None:
    @retrying(lambda: Fixed(0.5).take(1))
    def always_fails() -> None:
        raise TimeoutError("slow")

    for _ in range(2):
        with pytest.raises(TimeoutError):
            always_fails()

    assert sleeps == [0.5, 0.5]


def test_final_exception_is_reraised(sleeps: list[float]) -> None:
    @retrying(RetryConfig(strategy="fixed", base_ms=0, max_retries=2))
    def broken() -> None:
        raise ValueError("still broken")

    with pytest.raises(ValueError, match="still broken"):
        broken()


def test_non_exception_error_raises_retry_error(sleeps: list[float]) -> None:
    @retrying([0])
    def unavailable() -> object:
        return Err({"status": 503})

    with pytest.raises(RetryError) as info:
        unavailable()

    assert info.value.error == {"status": 503}


def test_loop_options_are_forwarded(sleeps: list[float]) -> None:
    calls = 0

    @retrying([0, 0, 0], retry_on=ConnectionError)
    def picky() -> None:
        nonlocal calls
        calls += 1
        raise KeyError("missing")

    with pytest.raises(KeyError):
        picky()

    assert calls == 1


def test_wraps_preserves_metadata() -> None:
    @retrying([0])
    def documented() -> int:
        """Returns one."""
        return 1

    assert documented.__name__ == "documented"
    assert documented.__doc__ == "Returns one."


def test_single_use_sequence_rejected() -> None:
    with pytest.raises(ValueError, match="single-use"):
        retrying(Fixed(1.0).take(2))


def test_one_shot_iterators_rejected() -> None:
    with pytest.raises(ValueError, match="single-use"):
        retrying(itertools.repeat(0.0, 2))

    with pytest.raises(ValueError, match="single-use"):
        async_retrying(d for d in [0.0, 0.0])


def test_repeated_calls_retry_every_time(sleeps: list[float]) -> None:
    calls = 0

    @retrying(lambda: itertools.repeat(0.0, 2))
    def always_fails() -> None:
        nonlocal calls
        calls += 1
        raise TimeoutError("slow")

    for expected in (3, 6):
        with pytest.raises(TimeoutError):
            always_fails()
        assert calls == expected


def test_retry_perpetual_uses_exponential_delays(sleeps: list[float]) -> None:
    outcomes = iter([Err("a"), Err("b"), "ready"])

    assert retry_perpetual(lambda: next(outcomes)) == "ready"
    assert sleeps == pytest.approx([0.1, 0.2])


@pytest.mark.asyncio
async def test_async_retrying() -> None:
    calls = 0

    @async_retrying([0.001, 0.001])
    async def flaky(name: str) -> str:
        nonlocal calls
        calls += 1
        if calls == 1:
            raise ConnectionError("reset")
        return f"hello {name}"

    assert await flaky("world") == "hello world"
    assert calls == 2


@pytest.mark.asyncio
async def test_async_retrying_raises_last_error() -> None:
    @async_retrying([0])
    async def broken() -> None:
        raise RuntimeError("nope")

    with pytest.raises(RuntimeError, match="nope"):
        await broken()


@pytest.mark.asyncio
async def test_async_retry_perpetual() -> None:
    outcomes = iter([Err("warming up"), 7])

    async def attempt() -> object:
        return next(outcomes)

    assert await async_retry_perpetual(attempt) == 7
