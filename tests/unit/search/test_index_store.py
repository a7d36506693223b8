"""Contract tests run against every index store backend."""

from __future__ import annotations

from pathlib import Path

import pytest

from record_search.config import Settings
from record_search.domain.model import IndexEntry
from record_search.search.index_store import AbstractIndexStore, InMemoryIndexStore
from record_search.search.sqlite_index_store import SqliteIndexStore
from record_search.search.store_factory import build_index_store, create_index_store


pytestmark = pytest.mark.unit


def test_get_missing_entry_returns_none(index_store: AbstractIndexStore) -> None:
    assert index_store.get("user", 1) is None


def test_upsert_replaces_the_entry_of_the_same_owner(index_store: AbstractIndexStore) -> None:
    index_store.upsert(IndexEntry.indexed("user", 1, "old text", {"name": "old"}))
    index_store.upsert(IndexEntry.indexed("user", 1, "new text", {"name": "new"}))

    entry = index_store.get("user", 1)
    assert entry is not None
    assert entry.full_text == "new text"
    assert entry.qualifier_texts == {"name": "new"}
    assert not entry.stale
    assert entry.indexed_at is not None
    assert index_store.count("user") == 1


def test_entries_round_trip_exactly(index_store: AbstractIndexStore) -> None:
    entry = IndexEntry.indexed("user", 7, "Abraham foo@bar.com", {"name": "Abraham", "email": "foo@bar.com"})
    index_store.upsert(entry)

    assert index_store.get("user", 7) == entry


def test_owner_ids_keep_their_type(index_store: AbstractIndexStore) -> None:
    index_store.upsert(IndexEntry.placeholder("user", 1))
    index_store.upsert(IndexEntry.placeholder("user", "1"))

    assert index_store.owner_ids("user") == [1, "1"]
    assert index_store.get("user", "1") is not None


def test_entries_are_partitioned_by_type(index_store: AbstractIndexStore) -> None:
    index_store.upsert(IndexEntry.placeholder("user", 1))
    index_store.upsert(IndexEntry.placeholder("recipe", 1))

    assert index_store.count() == 2
    assert index_store.count("user") == 1
    assert [entry.owner_type for entry in index_store.all_for("recipe")] == ["recipe"]


def test_all_for_keeps_insertion_order_across_updates(index_store: AbstractIndexStore) -> None:
    for owner_id in (3, 1, 2):
        index_store.upsert(IndexEntry.placeholder("user", owner_id))
    index_store.upsert(IndexEntry.indexed("user", 3, "x", {}))

    assert index_store.owner_ids("user") == [3, 1, 2]


def test_delete_reports_whether_an_entry_existed(index_store: AbstractIndexStore) -> None:
    index_store.upsert(IndexEntry.placeholder("user", 1))

    assert index_store.delete("user", 1) is True
    assert index_store.delete("user", 1) is False
    assert index_store.get("user", 1) is None


def test_mark_stale_keeps_the_previous_text(index_store: AbstractIndexStore) -> None:
    index_store.upsert(IndexEntry.indexed("user", 1, "name email city", {"name": "name"}))

    assert index_store.mark_stale("user", 1) is True
    assert index_store.mark_stale("user", 2) is False

    entry = index_store.get("user", 1)
    assert entry is not None
    assert entry.stale
    assert entry.full_text == "name email city"
    assert index_store.get("user", 2) is None


def test_ensure_stale_creates_a_placeholder(index_store: AbstractIndexStore) -> None:
    entry = index_store.ensure_stale("user", 5)

    assert entry.stale
    assert entry.full_text == ""
    assert index_store.get("user", 5) == entry


def test_all_stale_for_lists_only_stale_entries(index_store: AbstractIndexStore) -> None:
    index_store.upsert(IndexEntry.placeholder("user", 1))
    index_store.upsert(IndexEntry.indexed("user", 2, "fresh", {}))
    index_store.upsert(IndexEntry.placeholder("user", 3))
    index_store.upsert(IndexEntry.placeholder("recipe", 4))

    assert [entry.owner_id for entry in index_store.all_stale_for("user")] == [1, 3]


def test_clear_by_type_and_all(index_store: AbstractIndexStore) -> None:
    index_store.upsert(IndexEntry.placeholder("user", 1))
    index_store.upsert(IndexEntry.placeholder("user", 2))
    index_store.upsert(IndexEntry.placeholder("recipe", 1))

    assert index_store.clear("user") == 2
    assert index_store.count() == 1
    assert index_store.clear() == 1
    assert index_store.count() == 0


def test_sqlite_store_persists_across_instances(tmp_path: Path) -> None:
    db_path = tmp_path / "nested" / "search_texts.db"
    store = SqliteIndexStore(db_path)
    store.upsert(IndexEntry.indexed("user", 1, "Abraham", {"name": "Abraham"}))
    store.optimize()
    store.close()

    reopened = SqliteIndexStore(db_path)
    try:
        entry = reopened.get("user", 1)
        assert entry is not None
        assert entry.full_text == "Abraham"
    finally:
        reopened.close()


def test_sqlite_store_defaults_to_an_in_memory_database() -> None:
    store = SqliteIndexStore()
    try:
        store.upsert(IndexEntry.placeholder("user", 1))
        assert store.count() == 1
    finally:
        store.close()


def test_create_index_store_selects_the_backend(tmp_path: Path) -> None:
    assert isinstance(create_index_store(), InMemoryIndexStore)

    store = create_index_store(use_sqlite=True, sqlite_path=tmp_path / "index.db")
    try:
        assert isinstance(store, SqliteIndexStore)
    finally:
        store.close()

    with pytest.raises(ValueError, match="sqlite_path"):
        create_index_store(use_sqlite=True)


def test_build_index_store_reads_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RECORD_SEARCH_INDEX_BACKEND", "sqlite")
    monkeypatch.setenv("RECORD_SEARCH_SQLITE_PATH", str(tmp_path / "settings.db"))

    store = build_index_store(Settings(_env_file=None))
    try:
        assert isinstance(store, SqliteIndexStore)
        assert (tmp_path / "settings.db").exists()
    finally:
        store.close()
