"""Shared test fixtures for the smartbatch engine."""

from __future__ import annotations

import asyncio
import copy
from typing import TYPE_CHECKING, Any

import pytest

from smartbatch.exceptions import StoreError
from smartbatch.repositories.record_repository import RecordRepository
from smartbatch.services.batch_processor import SmartBatchProcessor
from smartbatch.services.database import Database

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterator
    from pathlib import Path


class FakeStore:
    """In-memory store that records every call and tracks concurrency.

    ``fail_on`` decides per call whether the store rejects the chunk.
    """

    def __init__(
        self,
        records: dict[int, dict[str, Any]] | None = None,
        fail_on: Callable[[list[Any]], bool] | None = None,
    ) -> None:
        self.records: dict[int, dict[str, Any]] = copy.deepcopy(records or {})
        self.fail_on = fail_on
        self.save_calls: list[list[Any]] = []
        self.delete_calls: list[list[Any]] = []
        self.soft_delete_calls: list[list[Any]] = []
        self.find_calls: list[Any] = []
        self.soft_deleted: set[int] = set()
        self.events: list[tuple[str, int]] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._calls = 0
        self._next_id = max(self.records, default=0) + 1

    async def _begin(self) -> int:
        call = self._calls
        self._calls += 1
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        self.events.append(("start", call))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        return call

    def _end(self, call: int) -> None:
        self.in_flight -= 1
        self.events.append(("end", call))

    def _check(self, items: list[Any]) -> None:
        if self.fail_on is not None and self.fail_on(items):
            msg = f"store rejected chunk of {len(items)} items"
            raise StoreError(msg)

    async def save(self, items: list[Any]) -> list[Any]:
        self.save_calls.append(list(items))
        call = await self._begin()
        try:
            self._check(items)
            saved = []
            for item in items:
                record = dict(item)
                record_id = record.pop("id", None)
                if record_id is None:
                    record_id = self._next_id
                    self._next_id += 1
                    self.records[record_id] = record
                elif record_id in self.records:
                    self.records[record_id].update(record)
                else:
                    msg = f"record {record_id} not found"
                    raise StoreError(msg)
                saved.append({"id": record_id, **self.records[record_id]})
            return saved
        finally:
            self._end(call)

    async def delete(self, ids: list[Any]) -> int:
        self.delete_calls.append(list(ids))
        call = await self._begin()
        try:
            self._check(ids)
            missing = [i for i in ids if i not in self.records]
            if missing:
                msg = f"cannot delete unresolved ids: {missing}"
                raise StoreError(msg)
            for i in ids:
                del self.records[i]
            return len(ids)
        finally:
            self._end(call)

    async def soft_delete(self, ids: list[Any]) -> int:
        self.soft_delete_calls.append(list(ids))
        call = await self._begin()
        try:
            self._check(ids)
            self.soft_deleted.update(ids)
            return len(ids)
        finally:
            self._end(call)

    async def find_one(self, identity: Any) -> dict[str, Any] | None:
        self.find_calls.append(identity)
        record = self.records.get(identity)
        return None if record is None else {"id": identity, **record}

    async def run_in_transaction(self, fn: Callable[[FakeStore], Awaitable[Any]]) -> Any:
        snapshot = copy.deepcopy(self.records)
        try:
            return await fn(self)
        except Exception:
            self.records = snapshot
            raise

    def waves(self) -> list[list[int]]:
        """Group call numbers into waves: calls started before any call ended."""
        waves: list[list[int]] = []
        current: list[int] = []
        ending = False
        for kind, call in self.events:
            if kind == "start":
                if ending:
                    waves.append(current)
                    current = []
                    ending = False
                current.append(call)
            else:
                ending = True
        if current:
            waves.append(current)
        return waves


@pytest.fixture
def fake_store() -> FakeStore:
    """Provide an empty in-memory store."""
    return FakeStore()


@pytest.fixture
def processor(fake_store: FakeStore) -> SmartBatchProcessor:
    """Provide a processor over the fake store with a fresh profile store."""
    return SmartBatchProcessor(fake_store)


@pytest.fixture
def sample_items() -> list[dict[str, Any]]:
    """250 distinct, non-empty items."""
    return [{"n": i, "name": f"item-{i}"} for i in range(250)]


@pytest.fixture
def tmp_db_path(tmp_path: Path) -> str:
    """Provide a temporary database file path."""
    return str(tmp_path / "test.db")


@pytest.fixture
def db(tmp_db_path: str) -> Iterator[Database]:
    """Provide an initialized temporary database."""
    database = Database(db_path=tmp_db_path)
    database.init_db()
    yield database
    database.close()


@pytest.fixture
def repo(db: Database) -> RecordRepository:
    """Provide a record repository over the temporary database."""
    return RecordRepository(db)


@pytest.fixture
def make_store() -> type[FakeStore]:
    """Provide the FakeStore class for tests that need seeded or failing stores."""
    return FakeStore
