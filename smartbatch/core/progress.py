"""Progress percentage and time-remaining estimates."""

from __future__ import annotations


def percent_complete(items_processed: int, total_items: int) -> int:
    """Rounded percentage of items processed; 100 for an empty batch."""
    if total_items <= 0:
        return 100
    return round(items_processed / total_items * 100)


def estimate_remaining_ms(elapsed_ms: float, items_processed: int, total_items: int) -> int:
    """Extrapolate remaining time from the average time per processed item.

    Returns 0 until at least one item has been processed.
    """
    if items_processed <= 0:
        return 0
    remaining_items = max(total_items - items_processed, 0)
    return round(remaining_items * (elapsed_ms / items_processed))
