"""Exception hierarchy for record search.

Malformed user queries never raise: they degrade to "no match". The errors
below cover programming mistakes at definition time and failures of the host
persistence layer or the index store.
"""

from __future__ import annotations


class RecordSearchError(Exception):
    """Base class for all record search errors."""


class SyntaxDefinitionError(RecordSearchError, ValueError):
    """Raised when a search syntax is declared with invalid arguments."""


class AssociationResolutionError(RecordSearchError):
    """Raised when the host fails to resolve records associated with a changed record."""

    def __init__(self, entity_type: str, record_id: object, relation: str) -> None:
        super().__init__(f"Failed to resolve '{relation}' for {entity_type}#{record_id}")
        self.entity_type = entity_type
        self.record_id = record_id
        self.relation = relation


class ReindexError(RecordSearchError):
    """Raised when the search text of a single record cannot be rebuilt."""

    def __init__(self, entity_type: str, record_id: object, reason: str) -> None:
        super().__init__(f"Failed to reindex {entity_type}#{record_id}: {reason}")
        self.entity_type = entity_type
        self.record_id = record_id


class IndexStoreError(RecordSearchError, RuntimeError):
    """Raised when the index store backend fails."""
