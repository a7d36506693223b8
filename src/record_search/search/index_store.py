"""Index store abstractions and the in-memory implementation.

Following the repository pattern from Cosmic Python: the engine talks to
``AbstractIndexStore`` only, so the shadow index can live in process memory
(``InMemoryIndexStore``) or in SQLite (``SqliteIndexStore``). Exactly one
entry exists per ``(owner_type, owner_id)``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import logging
import threading

from record_search.domain.model import IndexEntry, RecordId


logger = logging.getLogger(__name__)


class AbstractIndexStore(ABC):
    """Abstract repository for index entries."""

    @abstractmethod
    def get(self, owner_type: str, owner_id: RecordId) -> IndexEntry | None:
        """Get the entry owned by a record, or None."""
        raise NotImplementedError

    @abstractmethod
    def upsert(self, entry: IndexEntry) -> None:
        """Insert an entry or replace the existing entry with the same owner."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, owner_type: str, owner_id: RecordId) -> bool:
        """Delete an entry.

        Returns:
            True if an entry was deleted, False if none existed
        """
        raise NotImplementedError

    @abstractmethod
    def all_for(self, owner_type: str) -> list[IndexEntry]:
        """All entries of a type, in insertion order."""
        raise NotImplementedError

    @abstractmethod
    def count(self, owner_type: str | None = None) -> int:
        """Count entries of one type, or of every type."""
        raise NotImplementedError

    @abstractmethod
    def clear(self, owner_type: str | None = None) -> int:
        """Remove entries of one type, or every entry; returns the number removed."""
        raise NotImplementedError

    def all_stale_for(self, owner_type: str) -> list[IndexEntry]:
        """Stale entries of a type, in insertion order."""
        return [entry for entry in self.all_for(owner_type) if entry.stale]

    def owner_ids(self, owner_type: str) -> list[RecordId]:
        return [entry.owner_id for entry in self.all_for(owner_type)]

    def mark_stale(self, owner_type: str, owner_id: RecordId) -> bool:
        """Flag an existing entry stale.

        Returns:
            True if an entry exists (stale now), False if there is none
        """
        entry = self.get(owner_type, owner_id)
        if entry is None:
            return False
        if not entry.stale:
            self.upsert(entry.as_stale())
        return True

    def ensure_stale(self, owner_type: str, owner_id: RecordId) -> IndexEntry:
        """Flag an entry stale, creating an empty placeholder when missing."""
        entry = self.get(owner_type, owner_id)
        stale_entry = IndexEntry.placeholder(owner_type, owner_id) if entry is None else entry.as_stale()
        if entry is None or not entry.stale:
            self.upsert(stale_entry)
        return stale_entry

    def close(self) -> None:
        """Release backend resources."""
        return


class InMemoryIndexStore(AbstractIndexStore):
    """Dictionary-backed store, the default backend and the test double."""

    def __init__(self, entries: list[IndexEntry] | None = None) -> None:
        self._entries: dict[tuple[str, RecordId], IndexEntry] = {}
        self._lock = threading.RLock()
        for entry in entries or []:
            self.upsert(entry)

    def get(self, owner_type: str, owner_id: RecordId) -> IndexEntry | None:
        with self._lock:
            return self._entries.get((owner_type, owner_id))

    def upsert(self, entry: IndexEntry) -> None:
        with self._lock:
            self._entries[entry.key] = entry

    def delete(self, owner_type: str, owner_id: RecordId) -> bool:
        with self._lock:
            return self._entries.pop((owner_type, owner_id), None) is not None

    def all_for(self, owner_type: str) -> list[IndexEntry]:
        with self._lock:
            return [entry for key, entry in self._entries.items() if key[0] == owner_type]

    def count(self, owner_type: str | None = None) -> int:
        with self._lock:
            if owner_type is None:
                return len(self._entries)
            return sum(1 for key in self._entries if key[0] == owner_type)

    def clear(self, owner_type: str | None = None) -> int:
        with self._lock:
            if owner_type is None:
                removed = len(self._entries)
                self._entries.clear()
                return removed
            keys = [key for key in self._entries if key[0] == owner_type]
            for key in keys:
                del self._entries[key]
            return len(keys)
