"""record-search: free-text search over application records with a self-maintaining shadow index."""

from record_search.adapters import AbstractRecordSource, InMemoryRecordSource
from record_search.bootstrap import build_search_service
from record_search.config import Settings
from record_search.domain import IndexEntry, RecordRef, RecordSnapshot, ReindexReport
from record_search.errors import (
    AssociationResolutionError,
    IndexStoreError,
    RecordSearchError,
    ReindexError,
    SyntaxDefinitionError,
)
from record_search.search.query import Phrase, Qualified, Query, QueryParser, Word, parse_query
from record_search.search.syntax import SyntaxDefinition, SyntaxRegistry, association_extractor, attribute_extractor
from record_search.service_layer import SearchService


__version__ = "0.1.0"

__all__ = [
    "AbstractRecordSource",
    "AssociationResolutionError",
    "InMemoryRecordSource",
    "IndexEntry",
    "IndexStoreError",
    "Phrase",
    "Qualified",
    "Query",
    "QueryParser",
    "RecordRef",
    "RecordSearchError",
    "RecordSnapshot",
    "ReindexError",
    "ReindexReport",
    "SearchService",
    "Settings",
    "SyntaxDefinition",
    "SyntaxDefinitionError",
    "SyntaxRegistry",
    "Word",
    "association_extractor",
    "attribute_extractor",
    "build_search_service",
    "parse_query",
]
