"""Domain model - index entries and value objects.

Following Cosmic Python principles:
- Domain model has NO dependencies on infrastructure
- Value Objects are immutable and defined by their attributes
- An IndexEntry is the shadow row of exactly one host record

Entries are immutable Pydantic models; state transitions (marking stale,
storing rebuilt text) return a new entry which the index store persists.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from datetime import datetime, timezone
from typing import Annotated, Any, Self

from pydantic import BaseModel, ConfigDict, Field
from pydantic.dataclasses import dataclass


RecordId = int | str


@dataclass(frozen=True)
class RecordRef:
    """Value object identifying one host record by entity type and id."""

    entity_type: Annotated[str, Field(min_length=1)]
    record_id: RecordId

    def __str__(self) -> str:
        return f"{self.entity_type}#{self.record_id}"


class IndexEntry(BaseModel):
    """Shadow search row owned by one host record.

    ``full_text`` feeds unqualified words and phrases, ``qualifier_texts`` holds
    one blob per registered field for ``field:value`` terms. When ``stale`` is
    False both reflect the owner and its declared dependencies as of
    ``indexed_at``.
    """

    model_config = ConfigDict(frozen=True)

    owner_type: str = Field(min_length=1)
    owner_id: RecordId
    full_text: str = ""
    qualifier_texts: dict[str, str] = Field(default_factory=dict)
    stale: bool = True
    indexed_at: datetime | None = None

    @property
    def key(self) -> tuple[str, RecordId]:
        return (self.owner_type, self.owner_id)

    @classmethod
    def placeholder(cls, owner_type: str, owner_id: RecordId) -> Self:
        """Stale entry with no text, created before the first reindex."""
        return cls(owner_type=owner_type, owner_id=owner_id, stale=True)

    @classmethod
    def indexed(
        cls,
        owner_type: str,
        owner_id: RecordId,
        full_text: str,
        qualifier_texts: dict[str, str],
    ) -> Self:
        """Fresh entry holding freshly built texts."""
        return cls(
            owner_type=owner_type,
            owner_id=owner_id,
            full_text=full_text,
            qualifier_texts=dict(qualifier_texts),
            stale=False,
            indexed_at=datetime.now(timezone.utc),
        )

    def as_stale(self) -> Self:
        """Return a copy flagged stale; texts are kept until the next reindex."""
        if self.stale:
            return self
        return self.model_copy(update={"stale": True})

    def qualifier_text(self, qualifier: str) -> str | None:
        return self.qualifier_texts.get(qualifier)


class ReindexReport(BaseModel):
    """Outcome of one reindex batch for an entity type."""

    model_config = ConfigDict(frozen=True)

    entity_type: str
    reindexed: list[RecordId] = Field(default_factory=list)
    removed: list[RecordId] = Field(default_factory=list)
    failed: list[RecordId] = Field(default_factory=list)
    elapsed_seconds: float = Field(default=0.0, ge=0.0)

    @property
    def is_noop(self) -> bool:
        """True when the batch found nothing to do."""
        return not (self.reindexed or self.removed or self.failed)

    @property
    def ok(self) -> bool:
        return not self.failed


class RecordSnapshot(Mapping[str, Any]):
    """Read-only view of a host record handed to field extractors.

    Field values are reachable by key (``record["name"]``), with ``get`` or as
    attributes (``record.name``). Associated records are resolved lazily
    through the host resolver, so extractors stay pure functions of the
    snapshot.
    """

    __slots__ = ("_fields", "_resolver", "ref")

    def __init__(
        self,
        ref: RecordRef,
        fields: Mapping[str, Any],
        resolver: Callable[[RecordRef, str], list[RecordSnapshot]] | None = None,
    ) -> None:
        self.ref = ref
        self._fields = dict(fields)
        self._resolver = resolver

    @property
    def entity_type(self) -> str:
        return self.ref.entity_type

    @property
    def record_id(self) -> RecordId:
        return self.ref.record_id

    def __getitem__(self, key: str) -> Any:
        return self._fields[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._fields[name]
        except KeyError:
            raise AttributeError(f"{self.ref} has no field '{name}'") from None

    def __repr__(self) -> str:
        return f"RecordSnapshot({self.ref}, {self._fields!r})"

    def associated(self, relation: str) -> list[RecordSnapshot]:
        """Return the records reachable through ``relation`` (empty when unresolvable)."""
        if self._resolver is None:
            return []
        return list(self._resolver(self.ref, relation))

    def associate(self, relation: str) -> RecordSnapshot | None:
        """Return the single record of a to-one relation, or None."""
        records = self.associated(relation)
        return records[0] if records else None
