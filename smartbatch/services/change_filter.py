"""Skip updates that would not change the stored record."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from smartbatch.core.change_detection import has_changes

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from smartbatch.models.item_update import ItemUpdate

logger = structlog.get_logger(__name__)


async def filter_unchanged(
    updates: list[ItemUpdate],
    fetch_current: Callable[[Any], Awaitable[Any | None]],
) -> list[ItemUpdate]:
    """Return the updates whose patch differs from the stored record.

    Costs one read per update. A record that no longer exists, or whose read
    fails, is kept so the store write reports the problem downstream.
    """
    retained: list[ItemUpdate] = []
    for update in updates:
        try:
            existing = await fetch_current(update.id)
        except Exception as exc:
            logger.warning(
                "change_detection_read_failed",
                item_id=update.id,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            retained.append(update)
            continue
        if existing is None or has_changes(existing, update.data):
            retained.append(update)

    skipped = len(updates) - len(retained)
    if skipped:
        logger.info("unchanged_updates_skipped", skipped=skipped, retained=len(retained))
    return retained
