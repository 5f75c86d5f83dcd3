"""SQLite connection and transaction handling for the record store."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = structlog.get_logger(__name__)

IN_MEMORY = ":memory:"

Params = tuple[Any, ...] | dict[str, Any]

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS records (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        data TEXT NOT NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        deleted_at TEXT
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_records_deleted_at ON records(deleted_at)",
)


class Database:
    """Lazily opened SQLite connection with nestable transactions.

    File databases run in WAL mode and get their parent directory created on
    construction. ``:memory:`` databases live as long as the connection.
    """

    def __init__(self, db_path: str = "data/smartbatch.db") -> None:
        self.db_path = db_path
        if db_path != IN_MEMORY:
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn: sqlite3.Connection | None = None
        self._depth = 0

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            conn = sqlite3.connect(self.db_path)
            conn.row_factory = sqlite3.Row
            if self.db_path != IN_MEMORY:
                conn.execute("PRAGMA journal_mode=WAL")
            self._conn = conn
        return self._conn

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Cursor]:
        """Yield a cursor inside a transaction; commit on exit, roll back on error.

        Nested use opens a savepoint inside the outermost transaction, so a
        failed inner block is undone without ending the outer one.
        """
        conn = self.connection
        cursor = conn.cursor()
        self._depth += 1
        try:
            if self._depth == 1:
                with self._outermost(conn, cursor):
                    yield cursor
            else:
                with self._savepoint(cursor, f"sp_{self._depth}"):
                    yield cursor
        finally:
            self._depth -= 1

    @staticmethod
    @contextmanager
    def _outermost(conn: sqlite3.Connection, cursor: sqlite3.Cursor) -> Iterator[None]:
        if not conn.in_transaction:
            cursor.execute("BEGIN")
        try:
            yield
        except BaseException:
            conn.rollback()
            raise
        conn.commit()

    @staticmethod
    @contextmanager
    def _savepoint(cursor: sqlite3.Cursor, name: str) -> Iterator[None]:
        cursor.execute(f"SAVEPOINT {name}")
        try:
            yield
        except BaseException:
            cursor.execute(f"ROLLBACK TO SAVEPOINT {name}")
            cursor.execute(f"RELEASE SAVEPOINT {name}")
            raise
        cursor.execute(f"RELEASE SAVEPOINT {name}")

    def fetchone(self, sql: str, params: Params = ()) -> sqlite3.Row | None:
        return self.connection.execute(sql, params).fetchone()

    def fetchall(self, sql: str, params: Params = ()) -> list[sqlite3.Row]:
        return self.connection.execute(sql, params).fetchall()

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def init_db(self) -> None:
        """Create the records table and its indexes if missing."""
        logger.info("initializing_database", path=self.db_path)
        with self.transaction() as cursor:
            for statement in _SCHEMA:
                cursor.execute(statement)
