"""Progress tracking for chunked batch operations."""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from smartbatch.core.progress import estimate_remaining_ms, percent_complete
from smartbatch.models.batch_result import ProgressSnapshot
from smartbatch.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class ProgressTracker:
    """Track cumulative progress across the chunks of one batch call."""

    total_items: int
    total_chunks: int
    chunks_done: int = 0
    items_processed: int = 0
    successful: int = 0
    failed: int = 0
    start_time: float = field(default_factory=time.monotonic)

    def record_chunk(self, size: int, succeeded: bool) -> None:
        """Record a completed chunk of ``size`` items."""
        self.chunks_done += 1
        self.items_processed += size
        if succeeded:
            self.successful += size
        else:
            self.failed += size

    @property
    def elapsed_ms(self) -> float:
        """Milliseconds elapsed since start."""
        return (time.monotonic() - self.start_time) * 1000.0

    def snapshot(self) -> ProgressSnapshot:
        """Build a snapshot of progress so far."""
        return ProgressSnapshot(
            current_chunk=self.chunks_done,
            total_chunks=self.total_chunks,
            items_processed=self.items_processed,
            total_items=self.total_items,
            percent_complete=percent_complete(self.items_processed, self.total_items),
            estimated_remaining_ms=estimate_remaining_ms(
                self.elapsed_ms, self.items_processed, self.total_items
            ),
        )

    def log_progress(self, every_n: int = 1) -> None:
        """Log progress every N chunks."""
        if self.chunks_done % every_n == 0 or self.chunks_done == self.total_chunks:
            logger.info(
                "batch_progress",
                chunk=self.chunks_done,
                total_chunks=self.total_chunks,
                processed=self.items_processed,
                total=self.total_items,
                successful=self.successful,
                failed=self.failed,
                percentage=f"{percent_complete(self.items_processed, self.total_items)}%",
                elapsed=f"{self.elapsed_ms / 1000.0:.1f}s",
            )
