"""In-memory host persistence layer.

A complete, dependency-free host used by tests and examples: records are
plain dictionaries grouped by entity type, associations are declared as
``belongs_to`` / ``has_many`` relations over foreign keys, and every committed
mutation notifies subscribed listeners (usually a ``SearchService``).

Destroyed records are kept as tombstones for association resolution only, so
a destroy notification can still follow the foreign keys the record had.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
import itertools
import logging
from typing import Any, Literal, Protocol

from record_search.adapters.record_source import AbstractRecordSource
from record_search.domain.model import RecordId, RecordRef


logger = logging.getLogger(__name__)


class ChangeListener(Protocol):
    """Receiver of committed record changes."""

    def on_create(self, entity_type: str, record_id: RecordId) -> None: ...

    def on_update(self, entity_type: str, record_id: RecordId) -> None: ...

    def on_destroy(self, entity_type: str, record_id: RecordId) -> None: ...


@dataclass(frozen=True, slots=True)
class Relation:
    """Foreign-key association between two entity types.

    For ``belongs_to`` the foreign key lives on the owning record, for
    ``has_many`` it lives on the target records.
    """

    name: str
    target_type: str
    foreign_key: str
    kind: Literal["belongs_to", "has_many"]


Scope = Mapping[str, Any] | Callable[[Mapping[str, Any]], bool] | None


class InMemoryRecordSource(AbstractRecordSource):
    """Dictionary-backed record store that notifies listeners after each commit."""

    def __init__(self) -> None:
        self._records: dict[str, dict[RecordId, dict[str, Any]]] = {}
        self._relations: dict[str, dict[str, Relation]] = {}
        self._listeners: list[ChangeListener] = []
        self._tombstones: dict[str, dict[RecordId, dict[str, Any]]] = {}
        self._sequences: dict[str, itertools.count] = {}

    def subscribe(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def belongs_to(self, entity_type: str, name: str, target_type: str, foreign_key: str | None = None) -> Relation:
        relation = Relation(name, target_type, foreign_key or f"{name}_id", "belongs_to")
        self._relations.setdefault(entity_type, {})[name] = relation
        return relation

    def has_many(self, entity_type: str, name: str, target_type: str, foreign_key: str) -> Relation:
        relation = Relation(name, target_type, foreign_key, "has_many")
        self._relations.setdefault(entity_type, {})[name] = relation
        return relation

    def create(self, entity_type: str, fields: Mapping[str, Any] | None = None, **values: Any) -> RecordId:
        """Insert a record and notify listeners; returns the new id."""
        data = {**(fields or {}), **values}
        record_id = data.pop("id", None)
        if record_id is None:
            record_id = next(self._sequences.setdefault(entity_type, itertools.count(1)))
        table = self._records.setdefault(entity_type, {})
        if record_id in table:
            raise KeyError(f"{entity_type}#{record_id} already exists")
        table[record_id] = data
        self._tombstones.get(entity_type, {}).pop(record_id, None)
        logger.debug("Created %s#%s", entity_type, record_id)
        for listener in list(self._listeners):
            listener.on_create(entity_type, record_id)
        return record_id

    def update(self, entity_type: str, record_id: RecordId, **changes: Any) -> dict[str, Any]:
        """Apply field changes and notify listeners; returns the new field values."""
        record = self._records.get(entity_type, {}).get(record_id)
        if record is None:
            raise KeyError(f"{entity_type}#{record_id} does not exist")
        record.update(changes)
        logger.debug("Updated %s#%s: %s", entity_type, record_id, sorted(changes))
        for listener in list(self._listeners):
            listener.on_update(entity_type, record_id)
        return dict(record)

    def destroy(self, entity_type: str, record_id: RecordId) -> bool:
        """Delete a record and notify listeners; False when it did not exist."""
        record = self._records.get(entity_type, {}).pop(record_id, None)
        if record is None:
            return False
        self._tombstones.setdefault(entity_type, {})[record_id] = record
        logger.debug("Destroyed %s#%s", entity_type, record_id)
        for listener in list(self._listeners):
            listener.on_destroy(entity_type, record_id)
        return True

    def fetch(self, entity_type: str, record_id: RecordId) -> dict[str, Any] | None:
        record = self._records.get(entity_type, {}).get(record_id)
        return dict(record) if record is not None else None

    def resolve(self, entity_type: str, record_id: RecordId, relation: str) -> list[RecordRef]:
        definition = self._relations.get(entity_type, {}).get(relation)
        if definition is None:
            return []
        targets = self._records.get(definition.target_type, {})

        if definition.kind == "belongs_to":
            record = self._records.get(entity_type, {}).get(record_id)
            if record is None:
                record = self._tombstones.get(entity_type, {}).get(record_id)
            target_id = record.get(definition.foreign_key) if record else None
            if target_id is None or target_id not in targets:
                return []
            return [RecordRef(definition.target_type, target_id)]

        return [
            RecordRef(definition.target_type, target_id)
            for target_id, target in targets.items()
            if target.get(definition.foreign_key) == record_id
        ]

    def candidate_ids(self, entity_type: str, scope: Scope = None) -> list[RecordId]:
        records = self._records.get(entity_type, {})
        if scope is None:
            return list(records)
        if callable(scope):
            return [record_id for record_id, record in records.items() if scope(record)]
        return [
            record_id
            for record_id, record in records.items()
            if all(record.get(key) == value for key, value in scope.items())
        ]

    def all(self, entity_type: str) -> dict[RecordId, dict[str, Any]]:
        return {record_id: dict(record) for record_id, record in self._records.get(entity_type, {}).items()}
