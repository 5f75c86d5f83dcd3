"""Field-level change detection between a patch and a stored record."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

_MISSING = object()


def read_field(record: Any, field: str) -> Any:
    """Read a field from a mapping or an attribute-style record."""
    if isinstance(record, Mapping):
        return record.get(field, _MISSING)
    return getattr(record, field, _MISSING)


def has_changes(existing: Any, patch: Mapping[str, Any]) -> bool:
    """Return True if any field in ``patch`` differs from ``existing``.

    A field absent from the stored record counts as a change.
    """
    for field, value in patch.items():
        current = read_field(existing, field)
        if current is _MISSING or current != value:
            return True
    return False
