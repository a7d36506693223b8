"""Host persistence layer abstractions.

The search core never queries storage directly. The host application
implements ``AbstractRecordSource`` to hand out record snapshots, resolve
associations and list candidate ids for a query (honouring whatever scope
the host already applied), and calls the engine's ``on_create`` /
``on_update`` / ``on_destroy`` hooks synchronously with its commits.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
import logging
from typing import Any

from record_search.domain.model import RecordId, RecordRef, RecordSnapshot


logger = logging.getLogger(__name__)


class AbstractRecordSource(ABC):
    """Read access to the host's committed records."""

    @abstractmethod
    def fetch(self, entity_type: str, record_id: RecordId) -> Mapping[str, Any] | None:
        """Return the current field values of a record, or None if it does not exist."""
        raise NotImplementedError

    @abstractmethod
    def resolve(self, entity_type: str, record_id: RecordId, relation: str) -> list[RecordRef]:
        """Return the records associated with a record through ``relation``.

        Unknown relations and records without associated records resolve to an
        empty list.
        """
        raise NotImplementedError

    @abstractmethod
    def candidate_ids(self, entity_type: str, scope: Any = None) -> list[RecordId]:
        """Return the ids a query of ``entity_type`` may match, in result order.

        Args:
            entity_type: Type being searched
            scope: Host-specific filter already applied by the caller; None means
                every record of the type
        """
        raise NotImplementedError

    def snapshot(self, entity_type: str, record_id: RecordId) -> RecordSnapshot | None:
        """Fetch a record wrapped for extractors, with lazy association loading."""
        fields = self.fetch(entity_type, record_id)
        if fields is None:
            return None
        return RecordSnapshot(RecordRef(entity_type, record_id), fields, self._resolve_snapshots)

    def _resolve_snapshots(self, ref: RecordRef, relation: str) -> list[RecordSnapshot]:
        snapshots = []
        for associated in self.resolve(ref.entity_type, ref.record_id, relation):
            snapshot = self.snapshot(associated.entity_type, associated.record_id)
            if snapshot is not None:
                snapshots.append(snapshot)
        return snapshots
