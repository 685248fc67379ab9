"""Persistent retries that survive a process restart.

A RetryHandle runs operations through async_retry_fn() and reports to an
injector, the storage collaborator:

- before the first attempt the operation is saved as PENDING
- after every attempt the checkpoint is saved (if the injector stores them)
- when the loop ends the operation is saved as SUCCESS or FAILURE

On start-up, retry_pending() reloads PENDING operations and continues each
one from its last checkpoint: the attempt index and delay position carry
over, so a restarted process does not reset the backoff.

Storage formats and durability are entirely the injector's business.

Example:
    >>> injector = MemoryInjector()
    >>> handle = RetryHandle(injector, RetryConfig(count=10, min_backoff=500, max_backoff=1000))
    >>> await handle.retry("job-1", 3, increment)
    Ok(3)
    >>> # ...after a restart
    >>> await handle.retry_pending(4, increment)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterable, AsyncIterator, Iterable
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Any, Awaitable, Callable, Generic, Hashable, Protocol, TypeVar, runtime_checkable

import orjson

from retry_block.foundation.result import Result

from .config import DelaySource, RetryConfig, delay_source
from .loop import Checkpoint, ResumeToken, async_retry_fn

logger = logging.getLogger("retry_block.persist")

I = TypeVar("I")  # noqa: E741 - operation input
K = TypeVar("K", bound=Hashable)


class Status(StrEnum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True, slots=True)
class Record:
    """Stored state of one persistent operation."""

    status: Status
    value: Any = None
    error: Any = None

    @classmethod
    def from_result(cls, result: Result[Any, Any]) -> Record:
        return result.match(
            ok=lambda v: cls(Status.SUCCESS, value=v),
            err=lambda e: cls(Status.FAILURE, error=e),
        )


# ─────────────────────────────────────────────────────────────────────────────
# Injector Protocols
# ─────────────────────────────────────────────────────────────────────────────


@runtime_checkable
class RetryInjector(Protocol[K, I]):
    """Saves and reloads the status of persistent operations."""

    async def load_pending(self) -> list[tuple[K, I]]:
        """Return (id, input) for every operation saved as PENDING."""
        ...

    async def save_status(self, id: K, input: I, record: Record) -> None:
        """Save the status of one operation."""
        ...


@runtime_checkable
class CheckpointStore(Protocol[K]):
    """Optional injector capability: keep the latest checkpoint per operation."""

    async def save_checkpoint(self, id: K, checkpoint: Checkpoint) -> None: ...

    async def load_checkpoint(self, id: K) -> ResumeToken | None: ...


# ─────────────────────────────────────────────────────────────────────────────
# Handle
# ─────────────────────────────────────────────────────────────────────────────


Operation = Callable[[I], Awaitable[Any]]


class RetryHandle(Generic[K, I]):
    """Runs persistent retries against one injector.

    Args:
        injector: Storage collaborator; may also implement CheckpointStore
        delays: RetryConfig, factory, or re-iterable; every operation gets a fresh sequence
    """

    __slots__ = ("_injector", "_delays", "_checkpoints")

    def __init__(self, injector: RetryInjector[K, I], delays: RetryConfig | DelaySource | Iterable[float]) -> None:
        self._injector = injector
        self._delays = delay_source(delays)
        self._checkpoints: CheckpointStore[K] | None = injector if isinstance(injector, CheckpointStore) else None

    @property
    def injector(self) -> RetryInjector[K, I]:
        return self._injector

    async def retry(self, id: K, input: I, operation: Operation[I], **loop_kwargs: Any) -> Result[Any, Any]:
        """Persistently retry `operation(input)`, identified by `id`.

        Resumes from the stored checkpoint when there is one. Extra keyword
        arguments go to async_retry_fn (retry_on, fatal_on).
        """
        await self._injector.save_status(id, input, Record(Status.PENDING))

        token: ResumeToken | None = None
        on_checkpoint = None
        if self._checkpoints is not None:
            store = self._checkpoints
            token = await store.load_checkpoint(id)

            async def on_checkpoint(cp: Checkpoint) -> None:
                await store.save_checkpoint(id, cp)

        if token is not None:
            logger.info(f"[{id}] Resuming at attempt {token.attempt} ({token.pulled} delays used)")

        result = await async_retry_fn(
            self._delays(),
            lambda: operation(input),
            on_checkpoint=on_checkpoint,
            resume_from=token,
            name=str(id),
            **loop_kwargs,
        )
        await self._injector.save_status(id, input, Record.from_result(result))
        return result

    async def retry_stream(
        self,
        stream: Iterable[tuple[K, I]] | AsyncIterable[tuple[K, I]],
        concurrency_limit: int,
        operation: Operation[I],
    ) -> dict[K, Result[Any, Any]]:
        """Persistently retry every (id, input) from `stream`.

        At most `concurrency_limit` operations run at once; the stream is not
        read further until a slot frees up.

        Returns:
            Final Result per id
        """
        if concurrency_limit < 1:
            raise ValueError(f"concurrency_limit must be >= 1, got {concurrency_limit}")

        semaphore = asyncio.Semaphore(concurrency_limit)

        async def limited_call(id: K, input: I) -> tuple[K, Result[Any, Any]]:
            try:
                return id, await self.retry(id, input, operation)
            finally:
                semaphore.release()

        tasks: list[asyncio.Task[tuple[K, Result[Any, Any]]]] = []
        try:
            async for id, input in _aiter(stream):
                await semaphore.acquire()
                tasks.append(asyncio.create_task(limited_call(id, input)))
            return dict(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            raise

    async def retry_pending(self, concurrency_limit: int, operation: Operation[I]) -> dict[K, Result[Any, Any]]:
        """Reload PENDING operations from the injector and retry them."""
        pending = await self._injector.load_pending()
        if pending:
            logger.info(f"Retrying {len(pending)} pending operation(s)")
        return await self.retry_stream(pending, concurrency_limit, operation)


async def _aiter(stream: Iterable[tuple[K, I]] | AsyncIterable[tuple[K, I]]) -> AsyncIterator[tuple[K, I]]:
    if isinstance(stream, AsyncIterable):
        async for item in stream:
            yield item
    else:
        for item in stream:
            yield item


# ─────────────────────────────────────────────────────────────────────────────
# Injectors
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(slots=True)
class _Entry:
    input: Any
    record: Record
    token: ResumeToken | None = None


class MemoryInjector(Generic[K, I]):
    """In-process injector, mostly for tests and as a reference implementation."""

    __slots__ = ("_entries",)

    def __init__(self, pending: dict[K, I] | None = None) -> None:
        self._entries: dict[K, _Entry] = {
            id: _Entry(input, Record(Status.PENDING)) for id, input in (pending or {}).items()
        }

    async def load_pending(self) -> list[tuple[K, I]]:
        return [(id, e.input) for id, e in self._entries.items() if e.record.status is Status.PENDING]

    async def save_status(self, id: K, input: I, record: Record) -> None:
        token = None if record.status is not Status.PENDING else (e.token if (e := self._entries.get(id)) else None)
        self._entries[id] = _Entry(input, record, token)

    async def save_checkpoint(self, id: K, checkpoint: Checkpoint) -> None:
        if (entry := self._entries.get(id)) is not None:
            entry.token = checkpoint.token

    async def load_checkpoint(self, id: K) -> ResumeToken | None:
        return e.token if (e := self._entries.get(id)) else None

    def get(self, id: K) -> Record | None:
        return e.record if (e := self._entries.get(id)) else None

    def __len__(self) -> int:
        return len(self._entries)


class JsonFileInjector:
    """Injector that keeps every operation in one JSON file.

    Inputs and success values must be JSON-serializable; errors are stored as
    their repr. The whole file is rewritten on each save, which suits modest
    numbers of operations. Writes run in a worker thread, one at a time, and
    an entry changes in memory only once its write has succeeded, so a save
    that fails (e.g. orjson.JSONEncodeError) leaves memory and disk agreeing.
    """

    __slots__ = ("_path", "_entries", "_lock")

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._entries: dict[Any, dict[str, Any]] = {}
        self._lock = asyncio.Lock()
        if self._path.exists():
            data = orjson.loads(self._path.read_bytes())
            self._entries = {op["id"]: op for op in data.get("operations", [])}

    @property
    def path(self) -> Path:
        return self._path

    def _write(self, payload: bytes) -> None:
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_bytes(payload)
        tmp.replace(self._path)

    async def _commit(self, id: Any, op: dict[str, Any]) -> None:
        async with self._lock:
            entries = {**self._entries, id: op}
            payload = orjson.dumps({"operations": list(entries.values())}, option=orjson.OPT_INDENT_2)
            await asyncio.to_thread(self._write, payload)
            self._entries = entries

    async def load_pending(self) -> list[tuple[Any, Any]]:
        return [(op["id"], op["input"]) for op in self._entries.values() if op["status"] == Status.PENDING]

    async def save_status(self, id: Any, input: Any, record: Record) -> None:
        previous = self._entries.get(id, {})
        await self._commit(id, {
            "id": id,
            "status": record.status.value,
            "input": input,
            "value": record.value,
            "error": None if record.error is None else repr(record.error),
            "token": previous.get("token") if record.status is Status.PENDING else None,
        })

    async def save_checkpoint(self, id: Any, checkpoint: Checkpoint) -> None:
        if (op := self._entries.get(id)) is None:
            return
        await self._commit(id, {**op, "token": checkpoint.token.model_dump(mode="json")})

    async def load_checkpoint(self, id: Any) -> ResumeToken | None:
        op = self._entries.get(id)
        return ResumeToken.model_validate(op["token"]) if op and op.get("token") else None

    def get(self, id: Any) -> Record | None:
        if (op := self._entries.get(id)) is None:
            return None
        return Record(Status(op["status"]), value=op["value"], error=op["error"])


__all__ = [
    "Status",
    "Record",
    "RetryInjector",
    "CheckpointStore",
    "RetryHandle",
    "MemoryInjector",
    "JsonFileInjector",
]
