"""Generic item validation for batch input."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel


def is_non_empty_item(item: Any) -> bool:
    """Check that an item is present and carries at least one field."""
    if item is None:
        return False
    if isinstance(item, BaseModel):
        return bool(item.model_dump(exclude_unset=True))
    if isinstance(item, Mapping):
        return len(item) > 0
    if hasattr(item, "__dict__"):
        return bool(vars(item))
    return bool(item)


def count_invalid_items(items: list[Any]) -> int:
    """Count items that fail the non-empty check."""
    return sum(1 for item in items if not is_non_empty_item(item))
