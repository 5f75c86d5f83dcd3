"""Performance profile and report models."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field, field_validator

MIN_OPTIMAL_BATCH_SIZE = 10
MAX_OPTIMAL_BATCH_SIZE = 500


def _utc_now() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(UTC)


class OperationKind(StrEnum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class PerformanceProfile(BaseModel):
    """Running statistics for one operation kind, used to tune batch sizes."""

    operation: OperationKind
    execution_count: int = Field(default=0, ge=0)
    average_processing_time_ms: float = Field(default=0.0, ge=0.0)
    optimal_batch_size: int = MIN_OPTIMAL_BATCH_SIZE
    memory_pressure: float = Field(default=0.0, ge=0.0, le=100.0)
    cpu_pressure: float = Field(default=0.0, ge=0.0, le=100.0)
    last_updated: datetime = Field(default_factory=_utc_now)

    @field_validator("optimal_batch_size")
    @classmethod
    def clamp_optimal_batch_size(cls, value: int) -> int:
        """Keep the optimal batch size within [10, 500]."""
        return max(MIN_OPTIMAL_BATCH_SIZE, min(value, MAX_OPTIMAL_BATCH_SIZE))


class PerformanceReport(BaseModel):
    """Summary of all tracked performance profiles."""

    profiles: list[PerformanceProfile] = []
    recommendations: list[str] = []
    total_operations: int = 0
    average_processing_time_ms: float = 0.0
