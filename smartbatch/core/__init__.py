"""Batch engine core -- pure functions for sizing, chunking, change detection and tuning."""

from __future__ import annotations

from smartbatch.core.batch_sizing import DEFAULT_BATCH_SIZES, adaptive_batch_size, select_batch_size
from smartbatch.core.change_detection import has_changes
from smartbatch.core.chunking import chunk_items, group_waves
from smartbatch.core.progress import estimate_remaining_ms, percent_complete
from smartbatch.core.tuning import (
    build_recommendations,
    next_optimal_batch_size,
    running_average,
)
from smartbatch.core.validators import count_invalid_items, is_non_empty_item

__all__ = [
    "DEFAULT_BATCH_SIZES",
    "adaptive_batch_size",
    "build_recommendations",
    "chunk_items",
    "count_invalid_items",
    "estimate_remaining_ms",
    "group_waves",
    "has_changes",
    "is_non_empty_item",
    "next_optimal_batch_size",
    "percent_complete",
    "running_average",
    "select_batch_size",
]
