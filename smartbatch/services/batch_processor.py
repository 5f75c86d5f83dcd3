"""Adaptive batch processor for bulk create, update and delete."""

from __future__ import annotations

import inspect
import time
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, TypeVar

import structlog
from pydantic import ValidationError as PydanticValidationError

from smartbatch.core.batch_sizing import select_batch_size
from smartbatch.core.chunking import chunk_items
from smartbatch.exceptions import ConfigurationError
from smartbatch.models.batch_options import BatchOptions, resolve_options
from smartbatch.models.batch_result import BatchOutcome, BatchRunMetrics, ProgressSnapshot
from smartbatch.models.item_update import ItemUpdate
from smartbatch.models.performance import OperationKind
from smartbatch.services.change_filter import filter_unchanged
from smartbatch.services.dispatcher import ChunkDispatcher, DispatchResult
from smartbatch.services.profile_store import MetricsAggregator, PerformanceProfileStore
from smartbatch.utils.progress import ProgressTracker

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable

    from smartbatch.models.config import Settings
    from smartbatch.models.performance import PerformanceReport
    from smartbatch.services.protocols import ResourceSamplerProtocol, StoreProtocol

    OptionsArg = BatchOptions | Mapping[str, Any] | None
    ProgressCallback = Callable[[ProgressSnapshot], Awaitable[None] | None]

R = TypeVar("R")

logger = structlog.get_logger(__name__)


class SmartBatchProcessor:
    """Bulk mutation engine with batch sizes tuned from past runs.

    Every entry point returns a BatchOutcome once work has started; chunk
    failures are reported in the outcome, never raised. Invalid options
    raise ConfigurationError before any store call.
    """

    def __init__(
        self,
        store: StoreProtocol,
        profile_store: PerformanceProfileStore | None = None,
        *,
        dispatcher: ChunkDispatcher | None = None,
        sampler: ResourceSamplerProtocol | None = None,
        default_options: BatchOptions | None = None,
    ) -> None:
        self.store = store
        self.profile_store = profile_store or PerformanceProfileStore()
        self.aggregator = MetricsAggregator(self.profile_store, sampler)
        self.dispatcher = dispatcher or ChunkDispatcher()
        self.default_options = default_options or BatchOptions()

    @classmethod
    def from_settings(
        cls,
        store: StoreProtocol,
        settings: Settings,
        profile_store: PerformanceProfileStore | None = None,
    ) -> SmartBatchProcessor:
        """Build a processor with retry and concurrency defaults from settings."""
        return cls(
            store,
            profile_store,
            dispatcher=ChunkDispatcher(max_retry_attempts=settings.max_retry_attempts),
            default_options=settings.default_options(),
        )

    async def create_batch(self, items: Iterable[Any], options: OptionsArg = None) -> BatchOutcome:
        """Save items in auto-sized chunks, optionally in concurrent waves."""
        opts = resolve_options(options, self.default_options)
        pending = list(items)
        batch_size = self._select(OperationKind.CREATE, len(pending), opts)
        start = time.monotonic()

        chunks = chunk_items(pending, batch_size)
        dispatched = await self.dispatcher.run(
            chunks,
            self.store.save,
            parallel=self._use_parallel(opts, len(pending), batch_size),
            max_concurrency=opts.max_concurrency,
            validate=opts.validate_items,
        )
        return self._finish(OperationKind.CREATE, len(pending), batch_size, chunks, dispatched, start)

    async def update_batch(
        self,
        updates: Iterable[ItemUpdate | Mapping[str, Any]],
        options: OptionsArg = None,
    ) -> BatchOutcome:
        """Apply patches in chunks, optionally skipping ones that change nothing."""
        opts = resolve_options(options, self.default_options)
        proposed = _coerce_updates(updates)
        batch_size = self._select(OperationKind.UPDATE, len(proposed), opts)
        start = time.monotonic()

        pending = proposed
        if opts.detect_changes:
            pending = await filter_unchanged(proposed, self.store.find_one)
        skipped = len(proposed) - len(pending)

        async def save_updates(chunk: list[ItemUpdate]) -> list[Any]:
            return await self.store.save([update.to_record() for update in chunk])

        chunks = chunk_items(pending, batch_size)
        dispatched = await self.dispatcher.run(
            chunks,
            save_updates,
            parallel=self._use_parallel(opts, len(pending), batch_size),
            max_concurrency=opts.max_concurrency,
        )
        return self._finish(
            OperationKind.UPDATE,
            len(proposed),
            batch_size,
            chunks,
            dispatched,
            start,
            unchanged_skipped=skipped,
        )

    async def delete_batch(self, ids: Iterable[Any], options: OptionsArg = None) -> BatchOutcome:
        """Delete ids in chunks, soft or hard per ``options.soft_delete``.

        Successful results are the ids whose chunk was deleted.
        """
        opts = resolve_options(options, self.default_options)
        pending = list(ids)
        batch_size = self._select(OperationKind.DELETE, len(pending), opts)
        start = time.monotonic()

        remove = self.store.soft_delete if opts.soft_delete else self.store.delete

        async def delete_chunk(chunk: list[Any]) -> list[Any]:
            await remove(chunk)
            return chunk

        chunks = chunk_items(pending, batch_size)
        dispatched = await self.dispatcher.run(
            chunks,
            delete_chunk,
            parallel=self._use_parallel(opts, len(pending), batch_size),
            max_concurrency=opts.max_concurrency,
        )
        return self._finish(OperationKind.DELETE, len(pending), batch_size, chunks, dispatched, start)

    async def create_batch_with_progress(
        self,
        items: Iterable[Any],
        callback: ProgressCallback,
        options: OptionsArg = None,
    ) -> BatchOutcome:
        """Save items strictly in order, reporting progress after every chunk.

        ``options.parallel`` is ignored. The callback runs on the event loop
        between chunks, so a slow callback delays the next chunk.
        """
        opts = resolve_options(options, self.default_options)
        pending = list(items)
        batch_size = self._select(OperationKind.CREATE, len(pending), opts)
        start = time.monotonic()

        chunks = chunk_items(pending, batch_size)
        tracker = ProgressTracker(total_items=len(pending), total_chunks=len(chunks))

        async def report_progress(index: int, chunk: list[Any], succeeded: bool) -> None:
            tracker.record_chunk(len(chunk), succeeded)
            tracker.log_progress()
            snapshot = tracker.snapshot()
            try:
                result = callback(snapshot)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("progress_callback_failed", chunk_index=index)

        dispatched = await self.dispatcher.run(
            chunks,
            self.store.save,
            parallel=False,
            validate=opts.validate_items,
            on_chunk_done=report_progress,
        )
        return self._finish(OperationKind.CREATE, len(pending), batch_size, chunks, dispatched, start)

    async def run_transactional(
        self,
        fn: Callable[[Any], Awaitable[R]],
        options: OptionsArg = None,
    ) -> R:
        """Run ``fn`` with a transactional store handle.

        Commit and rollback belong to the store; a failure in ``fn``
        propagates after the store has rolled back.
        """
        resolve_options(options, self.default_options)
        logger.debug("transaction_started")
        result = await self.store.run_in_transaction(fn)
        logger.debug("transaction_committed")
        return result

    def get_performance_report(self) -> PerformanceReport:
        """Report profiles and recommendations for every tracked operation kind."""
        return self.aggregator.report()

    def _select(self, kind: OperationKind, item_count: int, options: BatchOptions) -> int:
        return select_batch_size(kind, item_count, options, self.profile_store.get(kind))

    @staticmethod
    def _use_parallel(options: BatchOptions, item_count: int, batch_size: int) -> bool:
        return options.parallel and item_count > batch_size

    def _finish(
        self,
        kind: OperationKind,
        total_items: int,
        batch_size: int,
        chunks: list[list[Any]],
        dispatched: DispatchResult,
        start: float,
        unchanged_skipped: int = 0,
    ) -> BatchOutcome:
        elapsed_ms = (time.monotonic() - start) * 1000.0
        attempted = dispatched.success_count + dispatched.failure_count

        outcome = BatchOutcome(
            total_items=total_items,
            success_count=dispatched.success_count,
            failure_count=dispatched.failure_count,
            batch_size_used=batch_size,
            processing_time_ms=elapsed_ms,
            results=dispatched.results,
            failures=dispatched.failures,
            metrics=BatchRunMetrics(
                chunk_count=len(chunks),
                average_chunk_size=attempted / len(chunks) if chunks else 0.0,
                total_processing_time_ms=elapsed_ms,
                success_rate=dispatched.success_count / attempted if attempted else 1.0,
                unchanged_items_skipped=unchanged_skipped,
                validation_errors=dispatched.validation_errors,
            ),
        )

        # Runs that touched no chunk carry no timing signal
        if chunks:
            self.aggregator.record(kind, outcome)

        logger.info(
            "batch_operation_complete",
            operation=kind.value,
            total_items=total_items,
            success_count=outcome.success_count,
            failure_count=outcome.failure_count,
            batch_size=batch_size,
            chunks=len(chunks),
            unchanged_skipped=unchanged_skipped,
            duration_ms=round(elapsed_ms, 2),
        )
        return outcome


def _coerce_updates(updates: Iterable[ItemUpdate | Mapping[str, Any]]) -> list[ItemUpdate]:
    """Accept ItemUpdate instances or ``{"id": ..., "data": {...}}`` mappings."""
    coerced: list[ItemUpdate] = []
    for update in updates:
        if isinstance(update, ItemUpdate):
            coerced.append(update)
            continue
        try:
            coerced.append(ItemUpdate.model_validate(update))
        except PydanticValidationError as exc:
            msg = f"invalid update entry: {exc}"
            raise ConfigurationError(msg) from exc
    return coerced
