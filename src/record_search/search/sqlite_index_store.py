"""SQLite-backed index store.

One row per indexed record in a ``search_texts`` table:
- ``(owner_type, owner_id)`` is unique, upserts keep the original row so
  insertion order is stable
- qualifier texts are stored as a JSON object
- ``(owner_type, stale)`` is indexed so stale batches are cheap to find

Connections are thread-local for file databases. ``":memory:"`` databases use
one shared connection guarded by a lock, since every new connection would see
an empty database.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
import logging
from pathlib import Path
import sqlite3
import threading
from typing import Any

import orjson

from record_search.domain.model import IndexEntry, RecordId
from record_search.errors import IndexStoreError
from record_search.search.index_store import AbstractIndexStore
from record_search.search.sqlite_pragmas import apply_connection_pragmas, apply_maintenance_pragmas


logger = logging.getLogger(__name__)

MEMORY_DATABASE = ":memory:"

_COLUMNS = ("owner_type", "owner_id", "full_text", "qualifier_texts", "stale", "indexed_at")
_SELECT = f"SELECT {', '.join(_COLUMNS)} FROM search_texts"

_SCHEMA = """
    CREATE TABLE IF NOT EXISTS search_texts (
        owner_type TEXT NOT NULL,
        owner_id NOT NULL,
        full_text TEXT NOT NULL DEFAULT '',
        qualifier_texts TEXT NOT NULL DEFAULT '{}',
        stale INTEGER NOT NULL DEFAULT 1,
        indexed_at TEXT,
        UNIQUE (owner_type, owner_id)
    );

    CREATE INDEX IF NOT EXISTS idx_search_texts_stale ON search_texts(owner_type, stale);
"""

_UPSERT = (
    "INSERT INTO search_texts (owner_type, owner_id, full_text, qualifier_texts, stale, indexed_at) "
    "VALUES (?, ?, ?, ?, ?, ?) "
    "ON CONFLICT(owner_type, owner_id) DO UPDATE SET "
    "full_text = excluded.full_text, "
    "qualifier_texts = excluded.qualifier_texts, "
    "stale = excluded.stale, "
    "indexed_at = excluded.indexed_at"
)


def _entry_to_row(entry: IndexEntry) -> tuple[Any, ...]:
    return (
        entry.owner_type,
        entry.owner_id,
        entry.full_text,
        orjson.dumps(entry.qualifier_texts).decode("utf-8"),
        1 if entry.stale else 0,
        entry.indexed_at.isoformat() if entry.indexed_at else None,
    )


def _row_to_entry(row: sqlite3.Row | tuple) -> IndexEntry:
    data = dict(zip(_COLUMNS, row, strict=True))
    data["qualifier_texts"] = orjson.loads(data["qualifier_texts"] or "{}")
    data["stale"] = bool(data["stale"])
    return IndexEntry.model_validate(data)


class SQLiteConnectionPool:
    """Thread-local connections, or one locked connection for in-memory databases."""

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = db_path
        self._shared = str(db_path) == MEMORY_DATABASE
        self._local = threading.local()
        self._lock = threading.RLock()
        self._connections: list[sqlite3.Connection] = []

    @contextmanager
    def get_connection(self) -> Iterator[sqlite3.Connection]:
        if self._shared:
            with self._lock:
                if not self._connections:
                    self._connections.append(self._create_connection())
                yield self._connections[0]
            return

        conn = getattr(self._local, "connection", None)
        if conn is None:
            conn = self._create_connection()
            self._local.connection = conn
            with self._lock:
                self._connections.append(conn)
        yield conn

    def _create_connection(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        apply_connection_pragmas(conn)
        return conn

    def close_all(self) -> None:
        with self._lock:
            for conn in self._connections:
                try:
                    conn.close()
                except sqlite3.Error as exc:
                    logger.warning("Failed to close SQLite connection for %s: %s", self.db_path, exc)
            self._connections.clear()
        self._local = threading.local()


class SqliteIndexStore(AbstractIndexStore):
    """Index store persisting entries in a SQLite database."""

    def __init__(self, db_path: Path | str = MEMORY_DATABASE) -> None:
        if str(db_path) != MEMORY_DATABASE:
            db_path = Path(db_path).expanduser()
            db_path.parent.mkdir(parents=True, exist_ok=True)
        self.db_path = db_path
        self._pool = SQLiteConnectionPool(db_path)
        with self._transaction() as conn:
            conn.executescript(_SCHEMA)
        logger.debug("Opened SQLite index store at %s", db_path)

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        with self._pool.get_connection() as conn:
            try:
                with conn:
                    yield conn
            except sqlite3.Error as exc:
                raise IndexStoreError(f"SQLite index store failure at {self.db_path}: {exc}") from exc

    def get(self, owner_type: str, owner_id: RecordId) -> IndexEntry | None:
        with self._transaction() as conn:
            row = conn.execute(
                f"{_SELECT} WHERE owner_type = ? AND owner_id = ?", (owner_type, owner_id)
            ).fetchone()
        return _row_to_entry(row) if row else None

    def upsert(self, entry: IndexEntry) -> None:
        with self._transaction() as conn:
            conn.execute(_UPSERT, _entry_to_row(entry))

    def delete(self, owner_type: str, owner_id: RecordId) -> bool:
        with self._transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM search_texts WHERE owner_type = ? AND owner_id = ?", (owner_type, owner_id)
            )
        return cursor.rowcount > 0

    def all_for(self, owner_type: str) -> list[IndexEntry]:
        with self._transaction() as conn:
            rows = conn.execute(f"{_SELECT} WHERE owner_type = ? ORDER BY rowid", (owner_type,)).fetchall()
        return [_row_to_entry(row) for row in rows]

    def all_stale_for(self, owner_type: str) -> list[IndexEntry]:
        with self._transaction() as conn:
            rows = conn.execute(
                f"{_SELECT} WHERE owner_type = ? AND stale = 1 ORDER BY rowid", (owner_type,)
            ).fetchall()
        return [_row_to_entry(row) for row in rows]

    def mark_stale(self, owner_type: str, owner_id: RecordId) -> bool:
        with self._transaction() as conn:
            conn.execute(
                "UPDATE search_texts SET stale = 1 WHERE owner_type = ? AND owner_id = ?", (owner_type, owner_id)
            )
            row = conn.execute(
                "SELECT 1 FROM search_texts WHERE owner_type = ? AND owner_id = ?", (owner_type, owner_id)
            ).fetchone()
        return row is not None

    def count(self, owner_type: str | None = None) -> int:
        with self._transaction() as conn:
            if owner_type is None:
                row = conn.execute("SELECT COUNT(*) FROM search_texts").fetchone()
            else:
                row = conn.execute("SELECT COUNT(*) FROM search_texts WHERE owner_type = ?", (owner_type,)).fetchone()
        return int(row[0])

    def clear(self, owner_type: str | None = None) -> int:
        with self._transaction() as conn:
            if owner_type is None:
                cursor = conn.execute("DELETE FROM search_texts")
            else:
                cursor = conn.execute("DELETE FROM search_texts WHERE owner_type = ?", (owner_type,))
        return cursor.rowcount

    def optimize(self) -> None:
        """Run maintenance PRAGMAs after large reindex batches."""
        with self._transaction() as conn:
            apply_maintenance_pragmas(conn)

    def close(self) -> None:
        self._pool.close_all()
