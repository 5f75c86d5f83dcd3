"""Proposed update model for the update path."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class ItemUpdate(BaseModel):
    """A patch to apply to the stored record identified by ``id``."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: Any
    data: dict[str, Any]

    def to_record(self) -> dict[str, Any]:
        """Merge identity and patch into the record handed to ``save``."""
        return {**self.data, "id": self.id}
