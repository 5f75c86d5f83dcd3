"""Batch outcome models returned to callers."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ChunkFailure(BaseModel):
    """A chunk whose store call (or validation) failed."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    chunk_index: int = Field(ge=0)
    error: Exception
    affected_items: list[Any] = []

    @property
    def message(self) -> str:
        return f"chunk {self.chunk_index}: {type(self.error).__name__}: {self.error}"


class BatchRunMetrics(BaseModel):
    """Per-call statistics describing how the batch was executed."""

    chunk_count: int = 0
    average_chunk_size: float = 0.0
    total_processing_time_ms: float = 0.0
    success_rate: float = 0.0
    unchanged_items_skipped: int = 0
    duplicates_removed: int = 0
    validation_errors: int = 0


class BatchOutcome(BaseModel):
    """Result of one batch invocation. Never retained by the engine."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    total_items: int
    success_count: int = 0
    failure_count: int = 0
    batch_size_used: int
    processing_time_ms: float = 0.0
    results: list[Any] = []
    failures: list[ChunkFailure] = []
    metrics: BatchRunMetrics = Field(default_factory=BatchRunMetrics)

    @property
    def succeeded(self) -> bool:
        """True when no chunk failed."""
        return self.failure_count == 0

    def summary(self) -> dict[str, Any]:
        """Return summary statistics suitable for display."""
        return {
            "total_items": self.total_items,
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "batch_size_used": self.batch_size_used,
            "chunk_count": self.metrics.chunk_count,
            "unchanged_items_skipped": self.metrics.unchanged_items_skipped,
            "validation_errors": self.metrics.validation_errors,
            "processing_time_ms": round(self.processing_time_ms, 2),
            "errors": [failure.message for failure in self.failures],
        }


class ProgressSnapshot(BaseModel):
    """Cumulative progress emitted after each chunk of a progress-tracked run."""

    current_chunk: int
    total_chunks: int
    items_processed: int
    total_items: int
    percent_complete: int
    estimated_remaining_ms: int
