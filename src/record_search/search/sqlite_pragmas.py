"""Shared SQLite PRAGMA helpers for the index store connections."""

from __future__ import annotations

import sqlite3


def apply_connection_pragmas(
    conn: sqlite3.Connection,
    *,
    journal_mode: str = "WAL",
    synchronous: str = "NORMAL",
    cache_size_kb: int = -16384,
    temp_store: str = "MEMORY",
    busy_timeout_ms: int | None = 30000,
) -> None:
    """Apply PRAGMAs suited to small, frequent read/write transactions."""
    if busy_timeout_ms is not None:
        conn.execute(f"PRAGMA busy_timeout = {busy_timeout_ms}")
    conn.execute(f"PRAGMA journal_mode = {journal_mode}")
    conn.execute(f"PRAGMA synchronous = {synchronous}")
    conn.execute(f"PRAGMA cache_size = {cache_size_kb}")
    conn.execute(f"PRAGMA temp_store = {temp_store}")


def apply_maintenance_pragmas(conn: sqlite3.Connection) -> None:
    """Refresh planner statistics and bound the WAL after bulk writes."""
    conn.execute("PRAGMA optimize")
    conn.execute("PRAGMA wal_checkpoint(TRUNCATE)")
