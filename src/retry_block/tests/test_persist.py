"""Tests for persistent retries and the bundled injectors."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from pathlib import Path

import orjson
import pytest

from retry_block import (
    Err,
    Fatal,
    Fixed,
    JsonFileInjector,
    MemoryInjector,
    NoDelay,
    Ok,
    Record,
    RetryConfig,
    RetryHandle,
    ResumeToken,
    Status,
)


class Crash(BaseException):
    """Stands in for the process dying mid-retry."""


class StatusOnlyInjector:
    """Injector without checkpoint support."""

    def __init__(self) -> None:
        self.saved: list[tuple[str, Status]] = []

    async def load_pending(self) -> list[tuple[str, int]]:
        return []

    async def save_status(self, id: str, input: int, record: Record) -> None:
        self.saved.append((id, record.status))


def no_delays() -> NoDelay:
    return NoDelay()


async def double(x: int) -> int:
    return x * 2


# ═════════════════════════════════════════════════════════════════════════════
# RetryHandle.retry
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_retry_records_success() -> None:
    injector: MemoryInjector[str, int] = MemoryInjector()
    handle = RetryHandle(injector, no_delays)

    result = await handle.retry("job", 21, double)

    assert result == Ok(42)
    assert injector.get("job") == Record(Status.SUCCESS, value=42)
    assert await injector.load_pending() == []
    assert await injector.load_checkpoint("job") is None


@pytest.mark.asyncio
async def test_retry_records_failure() -> None:
    injector: MemoryInjector[str, int] = MemoryInjector()
    handle = RetryHandle(injector, lambda: NoDelay().take(2))

    async def unavailable(x: int) -> object:
        return Err(f"down {x}")

    result = await handle.retry("job", 1, unavailable)

    assert result == Err("down 1")
    record = injector.get("job")
    assert record is not None and record.status is Status.FAILURE
    assert record.error == "down 1"


@pytest.mark.asyncio
async def test_retry_forwards_loop_options() -> None:
    injector: MemoryInjector[str, int] = MemoryInjector()
    handle = RetryHandle(injector, no_delays)
    calls = 0

    async def rejected(x: int) -> int:
        nonlocal calls
        calls += 1
        raise PermissionError("denied")

    result = await handle.retry("job", 1, rejected, fatal_on=PermissionError)

    assert isinstance(result.unwrap_err(), PermissionError)
    assert calls == 1


@pytest.mark.asyncio
async def test_fatal_outcome_is_saved_as_failure() -> None:
    injector: MemoryInjector[str, int] = MemoryInjector()
    handle = RetryHandle(injector, no_delays)

    async def invalid(x: int) -> object:
        return Fatal("invalid input")

    await handle.retry("job", 1, invalid)

    assert injector.get("job") == Record(Status.FAILURE, error="invalid input")


@pytest.mark.asyncio
async def test_injector_without_checkpoints() -> None:
    injector = StatusOnlyInjector()
    handle = RetryHandle(injector, no_delays)

    assert await handle.retry("job", 2, double) == Ok(4)
    assert injector.saved == [("job", Status.PENDING), ("job", Status.SUCCESS)]


def test_handle_rejects_single_use_sequence() -> None:
    with pytest.raises(ValueError, match="single-use"):
        RetryHandle(MemoryInjector(), Fixed(1.0).take(3))

    with pytest.raises(ValueError, match="single-use"):
        RetryHandle(MemoryInjector(), iter([0.0, 0.0]))


# ═════════════════════════════════════════════════════════════════════════════
# Restart & resume
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_pending_operation_survives_crash_in_memory() -> None:
    injector: MemoryInjector[str, int] = MemoryInjector()
    handle = RetryHandle(injector, lambda: NoDelay().take(3))
    attempts = 0

    async def dies_on_second_attempt(x: int) -> object:
        nonlocal attempts
        attempts += 1
        if attempts == 2:
            raise Crash()
        return Err("busy")

    with pytest.raises(Crash):
        await handle.retry("job", 5, dies_on_second_attempt)

    assert await injector.load_pending() == [("job", 5)]
    assert await injector.load_checkpoint("job") == ResumeToken(attempt=2, pulled=1, elapsed=0.0)


@pytest.mark.asyncio
async def test_resume_after_restart_from_json_file(tmp_path: Path) -> None:
    path = tmp_path / "retries.json"
    calls = 0

    async def dies_on_second_attempt(x: int) -> object:
        nonlocal calls
        calls += 1
        if calls == 2:
            raise Crash()
        return Err("busy")

    handle = RetryHandle(JsonFileInjector(path), lambda: NoDelay().take(2))
    with pytest.raises(Crash):
        await handle.retry("job", 5, dies_on_second_attempt)

    # A new process reloads the same file
    restarted = JsonFileInjector(path)
    assert await restarted.load_pending() == [("job", 5)]

    resumed_calls = 0

    async def still_busy(x: int) -> object:
        nonlocal resumed_calls
        resumed_calls += 1
        return Err("busy")

    results = await RetryHandle(restarted, lambda: NoDelay().take(2)).retry_pending(2, still_busy)

    # Attempts 2 and 3 only: one delay was used before the crash
    assert resumed_calls == 2
    assert results == {"job": Err("busy")}
    assert restarted.get("job") == Record(Status.FAILURE, error="'busy'")
    assert await restarted.load_pending() == []


@pytest.mark.asyncio
async def test_json_file_contents(tmp_path: Path) -> None:
    path = tmp_path / "retries.json"
    handle = RetryHandle(JsonFileInjector(path), no_delays)

    await handle.retry("a", 1, double)

    data = orjson.loads(path.read_bytes())
    assert data == {
        "operations": [
            {"id": "a", "status": "success", "input": 1, "value": 2, "error": None, "token": None},
        ]
    }


@pytest.mark.asyncio
async def test_unserializable_value_leaves_memory_and_disk_in_sync(tmp_path: Path) -> None:
    path = tmp_path / "retries.json"
    injector = JsonFileInjector(path)
    handle = RetryHandle(injector, [0])

    async def opaque(x: int) -> object:
        return object()

    with pytest.raises(TypeError):
        await handle.retry("job", 1, opaque)

    assert injector.get("job") == Record(Status.PENDING)
    assert JsonFileInjector(path).get("job") == Record(Status.PENDING)
    assert await injector.load_pending() == [("job", 1)]


# ═════════════════════════════════════════════════════════════════════════════
# Streams
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_retry_stream_respects_concurrency_limit() -> None:
    handle = RetryHandle(MemoryInjector(), no_delays)
    active = peak = 0

    async def slow(x: int) -> int:
        nonlocal active, peak
        active += 1
        peak = max(peak, active)
        await asyncio.sleep(0.01)
        active -= 1
        return x

    results = await handle.retry_stream(((f"op{i}", i) for i in range(6)), 2, slow)

    assert results == {f"op{i}": Ok(i) for i in range(6)}
    assert peak == 2


@pytest.mark.asyncio
async def test_retry_stream_accepts_async_iterables() -> None:
    handle = RetryHandle(MemoryInjector(), no_delays)

    async def source() -> AsyncIterator[tuple[str, int]]:
        for i in range(3):
            await asyncio.sleep(0)
            yield f"op{i}", i

    assert await handle.retry_stream(source(), 1, double) == {"op0": Ok(0), "op1": Ok(2), "op2": Ok(4)}


@pytest.mark.asyncio
async def test_retry_stream_rejects_zero_limit() -> None:
    handle = RetryHandle(MemoryInjector(), no_delays)

    with pytest.raises(ValueError, match="concurrency_limit"):
        await handle.retry_stream([], 0, double)


@pytest.mark.asyncio
async def test_retry_pending_processes_preloaded_operations() -> None:
    injector = MemoryInjector(pending={"a": 1, "b": 2})
    handle = RetryHandle(injector, RetryConfig(strategy="fixed", base_ms=0, max_retries=1))

    results = await handle.retry_pending(4, double)

    assert results == {"a": Ok(2), "b": Ok(4)}
    assert injector.get("a") == Record(Status.SUCCESS, value=2)
    assert await injector.load_pending() == []
