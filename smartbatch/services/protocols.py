"""Service protocols defining interfaces for dependency injection."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, TypeVar

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from smartbatch.models.performance import OperationKind

R = TypeVar("R")


class StoreProtocol(Protocol):
    """Persistent store the batch engine mutates.

    ``save`` fails with StoreError if any item is rejected; ``delete`` fails
    with StoreError if any id is unresolved. ``run_in_transaction`` must
    guarantee no partial write survives a failed ``fn``.
    """

    async def save(self, items: list[Any]) -> list[Any]: ...

    async def delete(self, ids: list[Any]) -> Any: ...

    async def soft_delete(self, ids: list[Any]) -> Any: ...

    async def find_one(self, identity: Any) -> Any | None: ...

    async def run_in_transaction(self, fn: Callable[[Any], Awaitable[R]]) -> R: ...


class ResourceSamplerProtocol(Protocol):
    """Samples memory and CPU pressure (0-100) after an operation."""

    def sample(self, kind: OperationKind) -> tuple[float, float]: ...
