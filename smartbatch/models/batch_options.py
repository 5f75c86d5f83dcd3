"""Batch option models controlling chunking, concurrency and delete mode."""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from smartbatch.exceptions import ConfigurationError

DEFAULT_MAX_CONCURRENCY = 3


class BatchSizeMode(StrEnum):
    AUTO = "auto"  # defer to the batch size selector
    EXPLICIT = "explicit"


class BatchSize(BaseModel):
    """Either an explicit chunk size or ``auto``."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    mode: BatchSizeMode = BatchSizeMode.AUTO
    value: int | None = None

    @model_validator(mode="after")
    def validate_value(self) -> BatchSize:
        """Explicit sizes need a positive value; auto carries none."""
        if self.mode == BatchSizeMode.EXPLICIT:
            if self.value is None or self.value < 1:
                msg = "explicit batch size must be a positive integer"
                raise ValueError(msg)
        elif self.value is not None:
            msg = "auto batch size does not take a value"
            raise ValueError(msg)
        return self

    @classmethod
    def auto(cls) -> BatchSize:
        return cls()

    @classmethod
    def explicit(cls, value: int) -> BatchSize:
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            msg = f"batch size must be a positive integer, got {value!r}"
            raise ConfigurationError(msg)
        return cls(mode=BatchSizeMode.EXPLICIT, value=value)

    @property
    def is_auto(self) -> bool:
        return self.mode == BatchSizeMode.AUTO

    def __str__(self) -> str:
        return "auto" if self.is_auto else str(self.value)


class BatchOptions(BaseModel):
    """Options recognized by every batch entry point.

    ``validate_items`` is also accepted under its short name ``validate``.
    Invalid values raise ConfigurationError, whether the options are built
    directly or through ``resolve_options``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    batch_size: BatchSize = Field(default_factory=BatchSize.auto)
    parallel: bool = False
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    validate_items: bool = Field(default=False, alias="validate")
    detect_changes: bool = False
    soft_delete: bool = False

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except PydanticValidationError as exc:
            msg = f"invalid batch options: {exc}"
            raise ConfigurationError(msg) from exc

    @field_validator("batch_size", mode="before")
    @classmethod
    def coerce_batch_size(cls, value: Any) -> Any:
        """Accept ``"auto"`` and plain integers in place of a BatchSize."""
        if isinstance(value, str) and value.strip().lower() == BatchSizeMode.AUTO:
            return BatchSize.auto()
        if isinstance(value, int) and not isinstance(value, bool):
            return BatchSize.explicit(value)
        return value

    @field_validator("max_concurrency")
    @classmethod
    def validate_max_concurrency(cls, value: int) -> int:
        """Concurrency must allow at least one chunk in flight."""
        if value < 1:
            msg = "max_concurrency must be at least 1"
            raise ValueError(msg)
        return value


def resolve_options(
    options: BatchOptions | Mapping[str, Any] | None,
    defaults: BatchOptions | None = None,
) -> BatchOptions:
    """Normalize caller options into a BatchOptions instance.

    Mappings are layered over ``defaults``. Raises ConfigurationError when the
    options do not validate.
    """
    base = defaults or BatchOptions()
    if options is None:
        return base
    if isinstance(options, BatchOptions):
        return options
    if not isinstance(options, Mapping):
        msg = f"batch options must be a BatchOptions or a mapping, got {type(options).__name__}"
        raise ConfigurationError(msg)

    merged: dict[str, Any] = base.model_dump()
    merged.update(options)
    if "validate" in options:
        merged.pop("validate_items", None)
    try:
        return BatchOptions.model_validate(merged)
    except PydanticValidationError as exc:
        msg = f"invalid batch options: {exc}"
        raise ConfigurationError(msg) from exc
