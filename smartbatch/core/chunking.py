"""Split ordered sequences into contiguous fixed-size chunks."""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeVar

from smartbatch.exceptions import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Sequence

T = TypeVar("T")


def chunk_items(items: Sequence[T], size: int) -> list[list[T]]:
    """Split items into chunks of ``size``; the last chunk may be shorter.

    Order is preserved and no chunk is empty.
    """
    if size < 1:
        msg = f"chunk size must be at least 1, got {size}"
        raise ConfigurationError(msg)
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


def group_waves(chunk_count: int, max_concurrency: int) -> list[range]:
    """Group chunk indexes into waves of at most ``max_concurrency``."""
    if max_concurrency < 1:
        msg = f"max_concurrency must be at least 1, got {max_concurrency}"
        raise ConfigurationError(msg)
    return [
        range(start, min(start + max_concurrency, chunk_count))
        for start in range(0, chunk_count, max_concurrency)
    ]
