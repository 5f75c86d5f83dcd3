"""Pydantic data models for the smartbatch engine."""

from smartbatch.models.batch_options import BatchOptions, BatchSize, BatchSizeMode
from smartbatch.models.batch_result import (
    BatchOutcome,
    BatchRunMetrics,
    ChunkFailure,
    ProgressSnapshot,
)
from smartbatch.models.config import Settings
from smartbatch.models.item_update import ItemUpdate
from smartbatch.models.performance import OperationKind, PerformanceProfile, PerformanceReport

__all__ = [
    "BatchOptions",
    "BatchOutcome",
    "BatchRunMetrics",
    "BatchSize",
    "BatchSizeMode",
    "ChunkFailure",
    "ItemUpdate",
    "OperationKind",
    "PerformanceProfile",
    "PerformanceReport",
    "ProgressSnapshot",
    "Settings",
]
