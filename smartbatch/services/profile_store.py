"""Performance profile storage and the metrics aggregator that feeds it."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from smartbatch.core.tuning import build_recommendations, next_optimal_batch_size, running_average
from smartbatch.models.performance import OperationKind, PerformanceProfile, PerformanceReport

if TYPE_CHECKING:
    from smartbatch.models.batch_result import BatchOutcome
    from smartbatch.services.protocols import ResourceSamplerProtocol

logger = structlog.get_logger(__name__)


@dataclass
class ChunkTotals:
    """Cumulative chunk counters for one operation kind."""

    chunks: int = 0
    processing_time_ms: float = 0.0


class PerformanceProfileStore:
    """In-memory profile map owned by one engine instance.

    Not locked: concurrent operations of the same kind may lose updates,
    which only degrades tuning quality.
    """

    def __init__(self) -> None:
        self._profiles: dict[OperationKind, PerformanceProfile] = {}
        self._chunk_totals: dict[OperationKind, ChunkTotals] = {}

    def get(self, kind: OperationKind) -> PerformanceProfile | None:
        return self._profiles.get(kind)

    def put(self, profile: PerformanceProfile) -> None:
        self._profiles[profile.operation] = profile

    def profiles(self) -> list[PerformanceProfile]:
        """All tracked profiles in operation-kind order."""
        return [self._profiles[kind] for kind in OperationKind if kind in self._profiles]

    def add_chunks(self, kind: OperationKind, chunks: int, processing_time_ms: float) -> None:
        totals = self._chunk_totals.setdefault(kind, ChunkTotals())
        totals.chunks += chunks
        totals.processing_time_ms += processing_time_ms

    def chunk_totals(self) -> list[ChunkTotals]:
        return list(self._chunk_totals.values())

    def reset(self) -> None:
        """Forget all profiles and counters."""
        self._profiles.clear()
        self._chunk_totals.clear()


class NullResourceSampler:
    """Reports no resource pressure."""

    def sample(self, kind: OperationKind) -> tuple[float, float]:
        return 0.0, 0.0


class MetricsAggregator:
    """Folds completed operations into the profile store and builds reports."""

    def __init__(
        self,
        store: PerformanceProfileStore,
        sampler: ResourceSamplerProtocol | None = None,
    ) -> None:
        self.store = store
        self.sampler = sampler or NullResourceSampler()

    def record(self, kind: OperationKind, outcome: BatchOutcome) -> PerformanceProfile:
        """Update the profile for ``kind`` from a completed outcome."""
        existing = self.store.get(kind)
        count = (existing.execution_count if existing else 0) + 1
        previous_average = existing.average_processing_time_ms if existing else 0.0
        base_size = existing.optimal_batch_size if existing else outcome.batch_size_used

        # Ratios use the proposed count, so skipped updates lower the success rate
        if outcome.total_items > 0:
            success_rate = outcome.success_count / outcome.total_items
            ms_per_item = outcome.processing_time_ms / outcome.total_items
        else:
            success_rate, ms_per_item = 1.0, 0.0

        memory_pressure, cpu_pressure = self.sampler.sample(kind)
        profile = PerformanceProfile(
            operation=kind,
            execution_count=count,
            average_processing_time_ms=running_average(
                previous_average, outcome.processing_time_ms, count
            ),
            optimal_batch_size=next_optimal_batch_size(base_size, success_rate, ms_per_item),
            memory_pressure=min(max(memory_pressure, 0.0), 100.0),
            cpu_pressure=min(max(cpu_pressure, 0.0), 100.0),
        )
        self.store.put(profile)
        self.store.add_chunks(kind, outcome.metrics.chunk_count, outcome.processing_time_ms)

        logger.debug(
            "performance_profile_updated",
            operation=kind.value,
            execution_count=count,
            optimal_batch_size=profile.optimal_batch_size,
            success_rate=round(success_rate, 3),
            ms_per_item=round(ms_per_item, 3),
        )
        return profile

    def report(self) -> PerformanceReport:
        """Summarize all tracked profiles with tuning recommendations."""
        profiles = self.store.profiles()
        totals = self.store.chunk_totals()
        total_chunks = sum(t.chunks for t in totals)
        total_time = sum(t.processing_time_ms for t in totals)

        return PerformanceReport(
            profiles=[profile.model_copy() for profile in profiles],
            recommendations=build_recommendations(profiles),
            total_operations=sum(profile.execution_count for profile in profiles),
            average_processing_time_ms=total_time / total_chunks if total_chunks > 0 else 0.0,
        )
