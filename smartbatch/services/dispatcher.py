"""Chunk dispatch with sequential or wave-bounded concurrent execution."""

from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog

from smartbatch.core.chunking import group_waves
from smartbatch.core.validators import count_invalid_items
from smartbatch.exceptions import BatchValidationError, StoreError
from smartbatch.models.batch_result import ChunkFailure
from smartbatch.utils.retry import retry_with_logging

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    ChunkExecutor = Callable[[list[Any]], Awaitable[list[Any]]]
    ChunkCallback = Callable[[int, list[Any], bool], Awaitable[None] | None]

logger = structlog.get_logger(__name__)


@dataclass
class ChunkResult:
    """Outcome of a single chunk."""

    index: int
    items: list[Any]
    results: list[Any] = field(default_factory=list)
    failure: ChunkFailure | None = None
    invalid_items: int = 0

    @property
    def succeeded(self) -> bool:
        return self.failure is None


@dataclass
class DispatchResult:
    """Aggregated results and failures across all chunks."""

    results: list[Any] = field(default_factory=list)
    failures: list[ChunkFailure] = field(default_factory=list)
    success_count: int = 0
    failure_count: int = 0
    validation_errors: int = 0

    def add(self, chunk: ChunkResult) -> None:
        if chunk.failure is None:
            self.results.extend(chunk.results)
            self.success_count += len(chunk.items)
        else:
            self.failures.append(chunk.failure)
            self.failure_count += len(chunk.items)
        self.validation_errors += chunk.invalid_items


class ChunkDispatcher:
    """Run chunks against a store executor, isolating failures per chunk.

    A failing chunk never aborts its siblings or later waves. Transient store
    errors are retried up to ``max_retry_attempts`` extra times.
    """

    def __init__(
        self,
        max_retry_attempts: int = 0,
        retry_min_wait: float = 2.0,
        retry_max_wait: float = 10.0,
    ) -> None:
        self.max_retry_attempts = max_retry_attempts
        self.retry_min_wait = retry_min_wait
        self.retry_max_wait = retry_max_wait

    async def run(
        self,
        chunks: list[list[Any]],
        executor: ChunkExecutor,
        *,
        parallel: bool = False,
        max_concurrency: int = 1,
        validate: bool = False,
        on_chunk_done: ChunkCallback | None = None,
    ) -> DispatchResult:
        """Execute every chunk and aggregate per-chunk results.

        Sequential runs go strictly in chunk order. Parallel runs go in waves
        of at most ``max_concurrency`` chunks; a wave fully resolves before
        the next one starts.
        """
        call = self._with_retry(executor)
        dispatched = DispatchResult()

        if parallel and len(chunks) > 1:
            semaphore = asyncio.Semaphore(max_concurrency)

            async def bounded(index: int) -> ChunkResult:
                async with semaphore:
                    return await self._execute_chunk(index, chunks[index], call, validate)

            for wave_number, wave in enumerate(group_waves(len(chunks), max_concurrency), 1):
                logger.debug("dispatching_wave", wave=wave_number, chunks=len(wave))
                outcomes = await asyncio.gather(*(bounded(index) for index in wave))
                for outcome in outcomes:
                    dispatched.add(outcome)
                    await self._notify(on_chunk_done, outcome)
        else:
            for index, chunk in enumerate(chunks):
                outcome = await self._execute_chunk(index, chunk, call, validate)
                dispatched.add(outcome)
                await self._notify(on_chunk_done, outcome)

        return dispatched

    def _with_retry(self, executor: ChunkExecutor) -> ChunkExecutor:
        if self.max_retry_attempts <= 0:
            return executor
        return retry_with_logging(
            max_attempts=self.max_retry_attempts + 1,
            min_wait=self.retry_min_wait,
            max_wait=self.retry_max_wait,
        )(executor)

    async def _execute_chunk(
        self,
        index: int,
        chunk: list[Any],
        executor: ChunkExecutor,
        validate: bool,
    ) -> ChunkResult:
        outcome = ChunkResult(index=index, items=chunk)
        try:
            if validate:
                invalid = count_invalid_items(chunk)
                if invalid:
                    outcome.invalid_items = invalid
                    msg = f"Invalid item in batch: {invalid} empty item(s) in chunk {index}"
                    raise BatchValidationError(msg, invalid_count=invalid)
            outcome.results = list(await executor(chunk))
        except (BatchValidationError, StoreError) as exc:
            outcome.failure = ChunkFailure(chunk_index=index, error=exc, affected_items=chunk)
        except Exception as exc:
            error = StoreError(f"{type(exc).__name__}: {exc}")
            error.__cause__ = exc
            outcome.failure = ChunkFailure(chunk_index=index, error=error, affected_items=chunk)

        if outcome.failure is not None:
            logger.warning(
                "chunk_failed",
                chunk_index=index,
                items=len(chunk),
                error_type=type(outcome.failure.error).__name__,
                error=str(outcome.failure.error),
            )
        return outcome

    async def _notify(self, callback: ChunkCallback | None, outcome: ChunkResult) -> None:
        if callback is None:
            return
        result = callback(outcome.index, outcome.items, outcome.succeeded)
        if inspect.isawaitable(result):
            await result
