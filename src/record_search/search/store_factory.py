"""Index store factory for choosing between the memory and SQLite backends."""

from pathlib import Path

from record_search.config import Settings
from record_search.search.index_store import AbstractIndexStore, InMemoryIndexStore
from record_search.search.sqlite_index_store import SqliteIndexStore


def create_index_store(*, use_sqlite: bool = False, sqlite_path: Path | str | None = None) -> AbstractIndexStore:
    """Create the index store for the requested backend."""
    if use_sqlite:
        if sqlite_path is None:
            raise ValueError("sqlite_path is required for the SQLite index store")
        return SqliteIndexStore(sqlite_path)
    return InMemoryIndexStore()


def build_index_store(settings: Settings) -> AbstractIndexStore:
    """Create the index store configured by ``settings``."""
    return create_index_store(use_sqlite=settings.is_sqlite_backend(), sqlite_path=settings.sqlite_path)
