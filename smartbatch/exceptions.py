"""Exception taxonomy for batch operations."""

from __future__ import annotations


class SmartBatchError(Exception):
    """Base class for all smartbatch errors."""


class BatchValidationError(SmartBatchError):
    """Raised when a chunk contains an empty or invalid item.

    Fatal to the affected chunk only; recorded as a chunk failure.
    """

    def __init__(self, message: str, invalid_count: int = 1) -> None:
        super().__init__(message)
        self.invalid_count = invalid_count


class StoreError(SmartBatchError):
    """Raised when the persistent store rejects an operation."""


class ConfigurationError(SmartBatchError, ValueError):
    """Raised for invalid batch options before any store call is made."""
