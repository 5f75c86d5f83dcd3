"""Adaptive bulk create/update/delete with self-tuning batch sizes."""

from smartbatch.exceptions import (
    BatchValidationError,
    ConfigurationError,
    SmartBatchError,
    StoreError,
)
from smartbatch.models import (
    BatchOptions,
    BatchOutcome,
    BatchRunMetrics,
    BatchSize,
    ChunkFailure,
    ItemUpdate,
    OperationKind,
    PerformanceProfile,
    PerformanceReport,
    ProgressSnapshot,
)
from smartbatch.services.batch_processor import SmartBatchProcessor
from smartbatch.services.profile_store import MetricsAggregator, PerformanceProfileStore

__all__ = [
    "BatchOptions",
    "BatchOutcome",
    "BatchRunMetrics",
    "BatchSize",
    "BatchValidationError",
    "ChunkFailure",
    "ConfigurationError",
    "ItemUpdate",
    "MetricsAggregator",
    "OperationKind",
    "PerformanceProfile",
    "PerformanceProfileStore",
    "PerformanceReport",
    "ProgressSnapshot",
    "SmartBatchError",
    "SmartBatchProcessor",
    "StoreError",
]
