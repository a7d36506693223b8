"""Search-text derivation.

Turns a record snapshot into the normalized blobs stored in an index entry:
one full-text blob for unqualified terms and one blob per field for
qualified terms. Output is deterministic: the same record state always
yields byte-identical text.
"""

from __future__ import annotations

from collections.abc import Iterable
import logging
import re

from record_search.domain.model import RecordSnapshot
from record_search.search.syntax import SearchField, SyntaxRegistry


logger = logging.getLogger(__name__)

_WHITESPACE_RUN = re.compile(r"\s+")


def normalize_text(fragments: Iterable[str]) -> str:
    """Space-join fragments, collapse whitespace runs and trim."""
    return _WHITESPACE_RUN.sub(" ", " ".join(fragments)).strip()


class SearchTextBuilder:
    """Builds full-text and per-qualifier blobs from registered extractors."""

    def __init__(self, registry: SyntaxRegistry) -> None:
        self.registry = registry

    def build_full_text(self, entity_type: str, record: RecordSnapshot) -> str:
        """Concatenate every full-text field in insertion order."""
        syntax = self.registry.get(entity_type)
        fragments: list[str] = []
        for search_field in syntax.full_text_fields:
            fragments.extend(search_field.extract(record))
        return normalize_text(fragments)

    def build_qualifier_text(self, entity_type: str, record: RecordSnapshot, qualifier_name: str) -> str:
        """Run only the extractor behind ``qualifier_name``; empty for unknown qualifiers."""
        search_field = self.registry.get(entity_type).resolve(qualifier_name)
        if search_field is None:
            return ""
        return self._field_text(search_field, record)

    def build_qualifier_texts(self, entity_type: str, record: RecordSnapshot) -> dict[str, str]:
        """Build the blob of every registered field, keyed by field name."""
        return {
            search_field.name: self._field_text(search_field, record)
            for search_field in self.registry.get(entity_type)
        }

    def build(self, entity_type: str, record: RecordSnapshot) -> tuple[str, dict[str, str]]:
        """Build full text and qualifier texts in one pass over the extractors."""
        syntax = self.registry.get(entity_type)
        full_fragments: list[str] = []
        qualifier_texts: dict[str, str] = {}
        for search_field in syntax:
            fragments = search_field.extract(record)
            qualifier_texts[search_field.name] = normalize_text(fragments)
            if search_field.in_full_text:
                full_fragments.extend(fragments)
        return normalize_text(full_fragments), qualifier_texts

    @staticmethod
    def _field_text(search_field: SearchField, record: RecordSnapshot) -> str:
        return normalize_text(search_field.extract(record))
