"""Batch size selection from caller overrides and performance profiles."""

from __future__ import annotations

from typing import TYPE_CHECKING

from smartbatch.models.performance import OperationKind

if TYPE_CHECKING:
    from smartbatch.models.batch_options import BatchOptions
    from smartbatch.models.performance import PerformanceProfile

DEFAULT_BATCH_SIZES: dict[OperationKind, int] = {
    OperationKind.CREATE: 100,
    OperationKind.UPDATE: 50,  # updates write more per item
    OperationKind.DELETE: 200,
}

HIGH_PRESSURE_THRESHOLD = 80.0
MEMORY_PRESSURE_FACTOR = 0.7
CPU_PRESSURE_FACTOR = 0.8


def adaptive_batch_size(profile: PerformanceProfile) -> int:
    """Scale the profile's optimal batch size down under resource pressure."""
    memory_factor = (
        MEMORY_PRESSURE_FACTOR if profile.memory_pressure > HIGH_PRESSURE_THRESHOLD else 1.0
    )
    cpu_factor = CPU_PRESSURE_FACTOR if profile.cpu_pressure > HIGH_PRESSURE_THRESHOLD else 1.0
    return round(profile.optimal_batch_size * memory_factor * cpu_factor)


def select_batch_size(
    kind: OperationKind,
    item_count: int,
    options: BatchOptions,
    profile: PerformanceProfile | None = None,
) -> int:
    """Choose the chunk size for an operation.

    An explicit override always wins. Without a profile the per-kind default
    applies; otherwise the profile's optimal size adjusted for pressure.
    Always returns a value in [1, item_count] for non-empty input.
    """
    if not options.batch_size.is_auto:
        candidate = options.batch_size.value or 1
    elif profile is None:
        candidate = DEFAULT_BATCH_SIZES[kind]
    else:
        candidate = adaptive_batch_size(profile)

    if item_count > 0:
        candidate = min(candidate, item_count)
    return max(candidate, 1)
