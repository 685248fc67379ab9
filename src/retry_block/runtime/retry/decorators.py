"""Decorators that run a function under a retry loop.

The decorated function keeps its normal calling convention: it returns the
value on success and raises the final error on failure. Use retry_fn()
directly when you want the Result instead.

Example:
    >>> from retry_block import Exponential, retrying
    >>>
    >>> @retrying(lambda: Exponential(0.1).take(3), retry_on=ConnectionError)
    ... def fetch_profile(user_id: int) -> dict:
    ...     return client.get(f"/users/{user_id}")
    >>>
    >>> @async_retrying(RetryConfig(strategy="jittered", base_ms=50, max_retries=5))
    ... async def publish(event: dict) -> None:
    ...     await broker.send(event)
"""

from __future__ import annotations

from collections.abc import Iterable
from functools import wraps
from typing import Any, Awaitable, Callable, ParamSpec, TypeVar

from retry_block.foundation.errors import RetryError
from retry_block.foundation.result import Result

from .backoff import Exponential
from .config import DelaySource, RetryConfig, delay_source
from .loop import async_retry_fn, retry_fn

P = ParamSpec("P")
T = TypeVar("T")

# Initial delay and total wait budget for the perpetual helpers
PERPETUAL_BASE: float = 0.1
PERPETUAL_BUDGET: float = 3600.0


def _value_or_raise(result: Result[T, Any]) -> T:
    if result.is_ok():
        return result.unwrap()
    error = result.unwrap_err()
    if isinstance(error, BaseException):
        raise error
    raise RetryError(error)


def retrying(
    delays: RetryConfig | DelaySource | Iterable[float],
    **loop_kwargs: Any,
) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """Retry every call of the decorated function.

    Args:
        delays: RetryConfig, factory returning a fresh iterable, or a re-iterable such as a list
        **loop_kwargs: Forwarded to retry_fn (retry_on, fatal_on, on_checkpoint, name)

    Raises:
        ValueError: If `delays` is a single-use DelaySequence
    """
    source = delay_source(delays)

    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        options = {"name": func.__qualname__, **loop_kwargs}

        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            return _value_or_raise(retry_fn(source(), lambda: func(*args, **kwargs), **options))

        return wrapper

    return decorator


def async_retrying(
    delays: RetryConfig | DelaySource | Iterable[float],
    **loop_kwargs: Any,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Async twin of retrying() for coroutine functions."""
    source = delay_source(delays)

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        options = {"name": func.__qualname__, **loop_kwargs}

        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            return _value_or_raise(await async_retry_fn(source(), lambda: func(*args, **kwargs), **options))

        return wrapper

    return decorator


def retry_perpetual(operation: Callable[[], T], *, name: str | None = None) -> T:
    """Retry with exponential delay until success.

    Waiting stops after roughly an hour in total; the last error is then
    raised.
    """
    delays = Exponential(PERPETUAL_BASE).bounded(PERPETUAL_BUDGET)
    return _value_or_raise(retry_fn(delays, operation, name=name))


async def async_retry_perpetual(operation: Callable[[], Awaitable[T]], *, name: str | None = None) -> T:
    """Async twin of retry_perpetual()."""
    delays = Exponential(PERPETUAL_BASE).bounded(PERPETUAL_BUDGET)
    return _value_or_raise(await async_retry_fn(delays, operation, name=name))
