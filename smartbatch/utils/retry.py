"""Tenacity retry for store calls that fail transiently."""

from __future__ import annotations

import functools
import sqlite3
from typing import TYPE_CHECKING, Any, ParamSpec, TypeVar

from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from smartbatch.utils.logger import get_logger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

P = ParamSpec("P")
T = TypeVar("T")

logger = get_logger(__name__)

# Transient store failures worth another attempt. StoreError is a rejection
# and is never retried.
_RETRYABLE_EXCEPTIONS: tuple[type[BaseException], ...] = (
    ConnectionError,
    TimeoutError,
    sqlite3.OperationalError,
)


def _log_retry(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "retrying_store_call",
        attempt=retry_state.attempt_number,
        call=getattr(retry_state.fn, "__name__", "unknown"),
        backoff_s=retry_state.next_action.sleep if retry_state.next_action else 0.0,
        error_type=type(error).__name__ if error else None,
        error=str(error) if error else None,
    )


def retry_with_logging(
    max_attempts: int = 3,
    min_wait: float = 2.0,
    max_wait: float = 10.0,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Decorator retrying a coroutine function on transient store errors.

    Retries on: ConnectionError, TimeoutError, sqlite3.OperationalError.
    Uses exponential backoff between ``min_wait`` and ``max_wait`` seconds and
    re-raises the last error once ``max_attempts`` is exhausted.
    """

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        @retry(
            stop=stop_after_attempt(max(max_attempts, 1)),
            wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
            retry=retry_if_exception_type(_RETRYABLE_EXCEPTIONS),
            before_sleep=_log_retry,
            reraise=True,
        )
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> Any:
            return await func(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator
