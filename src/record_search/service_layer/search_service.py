"""Search service orchestration layer.

Ties the syntax registry, query parser, matcher, index store, dependency
graph and reindexer together behind the API the host application uses:

- define searchable fields and qualifiers per entity type
- declare cross-type search-text dependencies
- receive create / update / destroy notifications
- search, reindex and inspect search texts
"""

from __future__ import annotations

import logging
from typing import Any

from record_search.adapters.record_source import AbstractRecordSource
from record_search.config import Settings
from record_search.domain.model import IndexEntry, RecordId, RecordSnapshot, ReindexReport
from record_search.errors import AssociationResolutionError, ReindexError
from record_search.observability.context import bind_context
from record_search.observability.metrics import SEARCH_COUNT, SEARCH_LATENCY, STALE_MARKS, track_latency
from record_search.observability.tracing import create_span
from record_search.search.dependencies import DependencyEdge, DependencyGraph
from record_search.search.index_store import AbstractIndexStore
from record_search.search.matcher import Matcher
from record_search.search.query import Query, QueryParser
from record_search.search.reindexer import Reindexer
from record_search.search.store_factory import build_index_store
from record_search.search.syntax import Extractor, SearchField, SyntaxDefinition, SyntaxRegistry
from record_search.search.text_builder import SearchTextBuilder
from record_search.utils.keyed_lock import KeyedLock


logger = logging.getLogger(__name__)


class SearchService:
    """High-level search orchestration service.

    One instance owns the syntax registry and the shadow index for a host
    application. It must exist before any syntax is defined or any search
    runs; nothing is reset between operations.
    """

    def __init__(
        self,
        source: AbstractRecordSource,
        *,
        settings: Settings | None = None,
        store: AbstractIndexStore | None = None,
        registry: SyntaxRegistry | None = None,
        dependencies: DependencyGraph | None = None,
        parser: QueryParser | None = None,
    ) -> None:
        """Initialize search service with dependencies.

        Args:
            source: Host persistence layer (records, associations, candidates)
            settings: Configuration; loaded from the environment when omitted
            store: Index store; built from ``settings`` when omitted
            registry: Syntax registry; a fresh one honouring the qualifier case
                policy when omitted
            dependencies: Dependency graph; empty when omitted
            parser: Query parser
        """
        self.settings = settings or Settings()
        self.source = source
        self.store = store or build_index_store(self.settings)
        self.registry = registry or SyntaxRegistry(qualifier_case_sensitive=self.settings.qualifier_case_sensitive)
        self.dependencies = dependencies if dependencies is not None else DependencyGraph()
        self.parser = parser or QueryParser()
        self.builder = SearchTextBuilder(self.registry)
        self.locks = KeyedLock()
        self.reindexer = Reindexer(self.store, self.source, self.builder, locks=self.locks)

    # Syntax

    def define_search_syntax(
        self,
        entity_type: str,
        name: str,
        extractor: Extractor | str,
        *,
        in_full_text: bool = True,
    ) -> SearchField:
        """Register a searchable field, or a qualifier alias when ``extractor`` is a field name.

        Entries already indexed for ``entity_type`` are marked stale, so the
        next search or ``index_search_texts`` rebuilds them with the new field.

        Examples:
            service.define_search_syntax("user", "name", attribute_extractor("name"))
            service.define_search_syntax("user", "mail", "email")
        """
        if isinstance(extractor, str):
            search_field = self.registry.define_qualifier(entity_type, name, extractor)
        else:
            search_field = self.registry.define_field(entity_type, name, extractor, in_full_text=in_full_text)
        self._mark_type_stale(entity_type)
        return search_field

    def search_syntax(self, entity_type: str) -> SyntaxDefinition:
        return self.registry.get(entity_type)

    def declare_dependency(
        self, dependent_type: str, depends_on_type: str, relation: str | None = None
    ) -> DependencyEdge:
        """Declare that ``dependent_type`` search text includes ``depends_on_type`` data.

        Args:
            dependent_type: Type whose entries go stale
            depends_on_type: Type whose changes trigger invalidation
            relation: Association on ``depends_on_type`` records yielding the
                dependents (default: the dependent type name)
        """
        return self.dependencies.declare(dependent_type, depends_on_type, relation)

    # Change notifications

    def on_create(self, entity_type: str, record_id: RecordId) -> None:
        """Handle a committed record creation."""
        with bind_context(operation="create", entity_type=entity_type, record_id=record_id):
            self._invalidate(entity_type, record_id, cause="create")
            self._cascade(entity_type, record_id)

    def on_update(self, entity_type: str, record_id: RecordId) -> None:
        """Handle a committed record update."""
        with bind_context(operation="update", entity_type=entity_type, record_id=record_id):
            self._invalidate(entity_type, record_id, cause="update")
            self._cascade(entity_type, record_id)

    def on_destroy(self, entity_type: str, record_id: RecordId) -> None:
        """Handle a committed record destruction."""
        with bind_context(operation="destroy", entity_type=entity_type, record_id=record_id):
            with self.locks.hold((entity_type, record_id)):
                if self.store.delete(entity_type, record_id):
                    logger.debug("Deleted index entry %s#%s", entity_type, record_id)
            self.locks.discard((entity_type, record_id))
            self._cascade(entity_type, record_id)

    def _invalidate(self, entity_type: str, record_id: RecordId, *, cause: str) -> None:
        if entity_type not in self.registry:
            return
        with self.locks.hold((entity_type, record_id)):
            self.store.ensure_stale(entity_type, record_id)
        STALE_MARKS.labels(entity_type=entity_type, cause=cause).inc()

        if self.settings.eager_reindex:
            try:
                self.reindexer.reindex_one(entity_type, record_id)
            except ReindexError as exc:
                logger.warning("Eager reindex failed, entry stays stale: %s", exc)

    def _mark_type_stale(self, entity_type: str) -> None:
        marked = 0
        for owner_id in self.store.owner_ids(entity_type):
            with self.locks.hold((entity_type, owner_id)):
                if self.store.mark_stale(entity_type, owner_id):
                    marked += 1
        if marked:
            STALE_MARKS.labels(entity_type=entity_type, cause="syntax").inc(marked)
            logger.info("Search syntax of %s changed, %d entries marked stale", entity_type, marked)

    def _cascade(self, entity_type: str, record_id: RecordId) -> None:
        for edge in self.dependencies.edges_from(entity_type):
            if edge.dependent_type not in self.registry:
                logger.debug("Ignoring dependency %s -> %s without search syntax", edge.dependent_type, entity_type)
                continue
            try:
                dependents = self.source.resolve(entity_type, record_id, edge.relation)
            except Exception as exc:
                raise AssociationResolutionError(entity_type, record_id, edge.relation) from exc
            for dependent in dependents:
                self._invalidate(edge.dependent_type, dependent.record_id, cause="dependency")
            if dependents:
                logger.debug(
                    "%s#%s changed, %d %s entries marked stale",
                    entity_type,
                    record_id,
                    len(dependents),
                    edge.dependent_type,
                )

    # Queries

    def parse_query(self, raw_query: str | None) -> Query:
        return self.parser.parse(raw_query)

    def search(self, entity_type: str, raw_query: str | None, scope: Any = None) -> list[RecordId]:
        """Return ids of ``entity_type`` records matching every term of ``raw_query``.

        Args:
            entity_type: Type to search
            raw_query: Query string; blank matches every candidate
            scope: Host filter passed through to ``candidate_ids`` unchanged

        Returns:
            Matching ids in the host's candidate order
        """
        query = self.parser.parse(raw_query)
        SEARCH_COUNT.labels(entity_type=entity_type, blank=str(query.is_blank).lower()).inc()

        with (
            bind_context(operation="search", entity_type=entity_type),
            track_latency(SEARCH_LATENCY, entity_type=entity_type),
            create_span("record_search.search", attributes={"entity_type": entity_type, "terms": len(query)}) as span,
        ):
            candidates = self.source.candidate_ids(entity_type, scope)
            if query.is_blank:
                return candidates

            syntax = self.registry.get(entity_type)
            if syntax.is_empty:
                logger.debug("No search syntax for %s, query %r matches nothing", entity_type, str(query))
                return []

            unknown = [name for name in query.qualifiers if name not in syntax]
            if unknown:
                logger.debug("Unknown qualifiers %s for %s, query %r matches nothing", unknown, entity_type, str(query))
                return []

            if self.settings.reindex_on_search:
                self.reindexer.reindex_all(entity_type)

            matcher = Matcher(syntax)
            results = [
                record_id
                for record_id in candidates
                if (entry := self._fresh_entry(entity_type, record_id)) is not None and matcher.matches(entry, query)
            ]
            span.set_attribute("record_search.results", len(results))

        logger.debug("Search %s %r: %d of %d candidates", entity_type, str(query), len(results), len(candidates))
        return results

    def search_records(self, entity_type: str, raw_query: str | None, scope: Any = None) -> list[RecordSnapshot]:
        """Like ``search`` but returns host record snapshots."""
        records = []
        for record_id in self.search(entity_type, raw_query, scope):
            snapshot = self.source.snapshot(entity_type, record_id)
            if snapshot is not None:
                records.append(snapshot)
        return records

    def _fresh_entry(self, entity_type: str, record_id: RecordId) -> IndexEntry | None:
        """Return an up-to-date entry, or None when the record cannot be served fresh."""
        entry = self.store.get(entity_type, record_id)
        if entry is not None and not entry.stale:
            return entry
        if not self.settings.reindex_on_search:
            return None
        try:
            return self.reindexer.reindex_one(entity_type, record_id)
        except ReindexError as exc:
            logger.warning("Excluding %s#%s from results: %s", entity_type, record_id, exc)
            return None

    # Index maintenance

    def index_search_texts(self, entity_type: str) -> ReindexReport:
        """Rebuild every stale entry of ``entity_type``."""
        return self.reindexer.reindex_all(entity_type)

    def rebuild_index(self, entity_type: str) -> ReindexReport:
        """Re-derive every entry of ``entity_type`` from the host.

        Use after changing a type's syntax: every host record is marked stale,
        entries of records the host no longer has are dropped, then stale
        entries are rebuilt.
        """
        candidates = self.source.candidate_ids(entity_type)
        known = set(candidates)
        orphans = [owner_id for owner_id in self.store.owner_ids(entity_type) if owner_id not in known]
        for owner_id in orphans:
            with self.locks.hold((entity_type, owner_id)):
                self.store.delete(entity_type, owner_id)
            self.locks.discard((entity_type, owner_id))
        for record_id in candidates:
            with self.locks.hold((entity_type, record_id)):
                self.store.ensure_stale(entity_type, record_id)

        report = self.reindexer.reindex_all(entity_type)
        if not orphans:
            return report
        return report.model_copy(update={"removed": [*orphans, *report.removed]})

    def search_text(self, entity_type: str, record_id: RecordId) -> str:
        """Return the full text a record would be indexed with right now.

        Computed live from the host, not read from the possibly stale store.

        Raises:
            KeyError: if the host has no such record
        """
        snapshot = self.source.snapshot(entity_type, record_id)
        if snapshot is None:
            raise KeyError(f"{entity_type}#{record_id} does not exist")
        return self.builder.build_full_text(entity_type, snapshot)

    def index_entry(self, entity_type: str, record_id: RecordId) -> IndexEntry | None:
        """Return the stored entry as is, stale or not."""
        return self.store.get(entity_type, record_id)

    def close(self) -> None:
        self.store.close()
