"""Domain layer - pure models without infrastructure dependencies."""

from .model import IndexEntry, RecordId, RecordRef, RecordSnapshot, ReindexReport


__all__ = [
    "IndexEntry",
    "RecordId",
    "RecordRef",
    "RecordSnapshot",
    "ReindexReport",
]
