"""Feedback rules that tune batch sizes from completed operations."""

from __future__ import annotations

from typing import TYPE_CHECKING

from smartbatch.core.batch_sizing import HIGH_PRESSURE_THRESHOLD
from smartbatch.models.performance import MAX_OPTIMAL_BATCH_SIZE, MIN_OPTIMAL_BATCH_SIZE

if TYPE_CHECKING:
    from collections.abc import Iterable

    from smartbatch.models.performance import PerformanceProfile

GROWTH_FACTOR = 1.2
SHRINK_FACTOR = 0.8

# Healthy run: nearly everything succeeded and items were cheap
GROW_SUCCESS_RATE = 0.95
GROW_MAX_MS_PER_ITEM = 10.0

# Unhealthy run: too many failures or items were slow
SHRINK_SUCCESS_RATE = 0.8
SHRINK_MIN_MS_PER_ITEM = 50.0

SLOW_OPERATION_THRESHOLD_MS = 5000.0


def running_average(current_average: float, new_value: float, count: int) -> float:
    """Exact running mean where ``count`` includes ``new_value``."""
    if count <= 0:
        return 0.0
    return (current_average * (count - 1) + new_value) / count


def clamp_batch_size(value: float) -> int:
    """Round and clamp a batch size to the tunable range."""
    return max(MIN_OPTIMAL_BATCH_SIZE, min(round(value), MAX_OPTIMAL_BATCH_SIZE))


def next_optimal_batch_size(current_size: int, success_rate: float, ms_per_item: float) -> int:
    """Grow, shrink or keep the optimal batch size.

    Grows by 20% (capped at 500) when success_rate > 0.95 and items took
    under 10ms each; shrinks by 20% (floored at 10) when success_rate < 0.8
    or items took over 50ms each.
    """
    if success_rate > GROW_SUCCESS_RATE and ms_per_item < GROW_MAX_MS_PER_ITEM:
        return clamp_batch_size(min(current_size * GROWTH_FACTOR, MAX_OPTIMAL_BATCH_SIZE))
    if success_rate < SHRINK_SUCCESS_RATE or ms_per_item > SHRINK_MIN_MS_PER_ITEM:
        return clamp_batch_size(max(current_size * SHRINK_FACTOR, MIN_OPTIMAL_BATCH_SIZE))
    return clamp_batch_size(current_size)


def build_recommendations(profiles: Iterable[PerformanceProfile]) -> list[str]:
    """Human-readable tuning hints for slow or resource-constrained operations."""
    recommendations: list[str] = []
    for profile in profiles:
        operation = profile.operation.value
        if profile.average_processing_time_ms > SLOW_OPERATION_THRESHOLD_MS:
            recommendations.append(
                f"Consider reducing batch size for {operation} operations "
                f"(current avg: {profile.average_processing_time_ms:.0f}ms)"
            )
        if profile.memory_pressure > HIGH_PRESSURE_THRESHOLD:
            recommendations.append(
                f"High memory usage detected for {operation} operations "
                f"({profile.memory_pressure:.0f}%)"
            )
        if profile.cpu_pressure > HIGH_PRESSURE_THRESHOLD:
            recommendations.append(
                f"High CPU usage detected for {operation} operations "
                f"({profile.cpu_pressure:.0f}%)"
            )
    return recommendations
