"""Record repository: a SQLite-backed store for the batch engine."""

from __future__ import annotations

import asyncio
import json
import sqlite3
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, TypeVar

import structlog
from pydantic import BaseModel

from smartbatch.exceptions import StoreError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from smartbatch.services.database import Database

R = TypeVar("R")

logger = structlog.get_logger(__name__)


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


def _to_mapping(item: Any) -> dict[str, Any]:
    """Convert a saveable item into a plain dict."""
    if isinstance(item, BaseModel):
        return item.model_dump(exclude_unset=True)
    if isinstance(item, Mapping):
        return dict(item)
    msg = f"cannot save item of type {type(item).__name__}"
    raise StoreError(msg)


def _row_to_record(row: sqlite3.Row) -> dict[str, Any]:
    return {"id": row["id"], **json.loads(row["data"])}


class RecordRepository:
    """Stores JSON records keyed by an integer id.

    ``save`` inserts records without an ``id`` and patches records with one.
    Every call runs in a single transaction, so one rejected item rolls back
    the whole call.
    """

    def __init__(self, db: Database) -> None:
        self.db = db

    async def save(self, items: list[Any]) -> list[dict[str, Any]]:
        """Insert or patch records. Returns the saved records."""
        await asyncio.sleep(0)
        saved: list[dict[str, Any]] = []
        try:
            with self.db.transaction() as cursor:
                for item in items:
                    saved.append(self._save_one(cursor, item))
        except sqlite3.IntegrityError as exc:
            msg = f"integrity error while saving: {exc}"
            raise StoreError(msg) from exc
        return saved

    def _save_one(self, cursor: sqlite3.Cursor, item: Any) -> dict[str, Any]:
        record = _to_mapping(item)
        record_id = record.pop("id", None)
        if record_id is None and not record:
            msg = "cannot save an empty record"
            raise StoreError(msg)

        try:
            now = _now_iso()
            if record_id is None:
                cursor.execute(
                    "INSERT INTO records (data, created_at, updated_at) VALUES (?, ?, ?)",
                    (json.dumps(record), now, now),
                )
                return {"id": cursor.lastrowid, **record}

            row = cursor.execute(
                "SELECT * FROM records WHERE id = ? AND deleted_at IS NULL",
                (record_id,),
            ).fetchone()
            if row is None:
                msg = f"record {record_id} not found"
                raise StoreError(msg)

            merged = {**json.loads(row["data"]), **record}
            cursor.execute(
                "UPDATE records SET data = ?, updated_at = ? WHERE id = ?",
                (json.dumps(merged), now, record_id),
            )
            return {"id": record_id, **merged}
        except (TypeError, ValueError) as exc:
            msg = f"record is not JSON serializable: {exc}"
            raise StoreError(msg) from exc

    async def delete(self, ids: list[Any]) -> int:
        """Hard-delete records. Fails if any id does not exist."""
        await asyncio.sleep(0)
        if not ids:
            return 0
        placeholders = ", ".join("?" for _ in ids)
        with self.db.transaction() as cursor:
            rows = cursor.execute(
                f"SELECT id FROM records WHERE id IN ({placeholders})",  # noqa: S608
                tuple(ids),
            ).fetchall()
            missing = set(ids) - {row["id"] for row in rows}
            if missing:
                msg = f"cannot delete unresolved ids: {sorted(missing, key=str)}"
                raise StoreError(msg)
            cursor.execute(
                f"DELETE FROM records WHERE id IN ({placeholders})",  # noqa: S608
                tuple(ids),
            )
            return cursor.rowcount

    async def soft_delete(self, ids: list[Any]) -> int:
        """Mark records as deleted. Already-deleted or unknown ids are ignored."""
        await asyncio.sleep(0)
        if not ids:
            return 0
        placeholders = ", ".join("?" for _ in ids)
        with self.db.transaction() as cursor:
            cursor.execute(
                f"""UPDATE records SET deleted_at = ?
                    WHERE id IN ({placeholders}) AND deleted_at IS NULL""",  # noqa: S608
                (_now_iso(), *ids),
            )
            return cursor.rowcount

    async def find_one(self, identity: Any) -> dict[str, Any] | None:
        """Get a live record by id."""
        await asyncio.sleep(0)
        if isinstance(identity, Mapping):
            identity = identity.get("id")
        row = self.db.fetchone(
            "SELECT * FROM records WHERE id = ? AND deleted_at IS NULL", (identity,)
        )
        return _row_to_record(row) if row else None

    async def run_in_transaction(self, fn: Callable[[RecordRepository], Awaitable[R]]) -> R:
        """Run ``fn(self)`` inside one transaction; roll back if it fails."""
        with self.db.transaction():
            return await fn(self)

    def get_all_records(self, include_deleted: bool = False) -> list[dict[str, Any]]:
        """Get all records ordered by id."""
        sql = "SELECT * FROM records"
        if not include_deleted:
            sql += " WHERE deleted_at IS NULL"
        rows = self.db.fetchall(sql + " ORDER BY id")
        return [_row_to_record(row) for row in rows]

    def get_record_count(self, include_deleted: bool = False) -> int:
        """Get number of records."""
        sql = "SELECT COUNT(*) as count FROM records"
        if not include_deleted:
            sql += " WHERE deleted_at IS NULL"
        row = self.db.fetchone(sql)
        return row["count"] if row else 0
