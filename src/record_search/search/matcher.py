"""Boolean matching of parsed queries against index entries.

Every term must match (AND). Words and phrases are case-insensitive
substrings of the entry's full text; qualified terms are substrings of the
named field's text and never match when the field is not registered.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from record_search.domain.model import IndexEntry, RecordId
from record_search.search.query import Phrase, Qualified, Query, Term, Word
from record_search.search.syntax import SyntaxDefinition


def contains(haystack: str, needle: str) -> bool:
    """Case-insensitive substring test."""
    return needle.casefold() in haystack.casefold()


class Matcher:
    """Evaluates queries against entries of a single entity type."""

    def __init__(self, syntax: SyntaxDefinition) -> None:
        self.syntax = syntax

    def matches(self, entry: IndexEntry, query: Query) -> bool:
        return all(self.term_matches(entry, term) for term in query)

    def term_matches(self, entry: IndexEntry, term: Term) -> bool:
        if isinstance(term, (Word, Phrase)):
            return contains(entry.full_text, term.text)
        if isinstance(term, Qualified):
            search_field = self.syntax.resolve(term.field)
            if search_field is None:
                return False
            field_text = entry.qualifier_text(search_field.name)
            return field_text is not None and contains(field_text, term.value.text)
        return False

    def filter(self, entries: Iterable[IndexEntry], query: Query) -> Iterator[RecordId]:
        """Yield the owner ids of matching entries, preserving input order."""
        for entry in entries:
            if self.matches(entry, query):
                yield entry.owner_id


def matches(entry: IndexEntry, query: Query, syntax: SyntaxDefinition) -> bool:
    """Functional shortcut for ``Matcher(syntax).matches(entry, query)``."""
    return Matcher(syntax).matches(entry, query)
