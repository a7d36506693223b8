"""Rebuilds stale index entries from the host's current records.

A rebuild always fetches the record from the host at the time it runs, never
a cached snapshot. Each entry is rebuilt under its per-record lock so a
concurrent change notification cannot be overwritten by text built from
older values. One failing record never stops the rest of a batch.
"""

from __future__ import annotations

import logging
import time

from record_search.adapters.record_source import AbstractRecordSource
from record_search.domain.model import IndexEntry, RecordId, ReindexReport
from record_search.errors import ReindexError
from record_search.observability.context import bind_context
from record_search.observability.metrics import REINDEX_COUNT, REINDEX_FAILURES
from record_search.observability.tracing import create_span
from record_search.search.index_store import AbstractIndexStore
from record_search.search.text_builder import SearchTextBuilder
from record_search.utils.keyed_lock import KeyedLock


logger = logging.getLogger(__name__)


class Reindexer:
    """Recomputes search texts for stale entries."""

    def __init__(
        self,
        store: AbstractIndexStore,
        source: AbstractRecordSource,
        builder: SearchTextBuilder,
        *,
        locks: KeyedLock | None = None,
    ) -> None:
        self.store = store
        self.source = source
        self.builder = builder
        self.locks = locks if locks is not None else KeyedLock()

    def reindex_one(self, entity_type: str, record_id: RecordId) -> IndexEntry | None:
        """Rebuild one entry regardless of its stale flag.

        Returns:
            The fresh entry, or None when the host no longer has the record
            (the entry is removed)

        Raises:
            ReindexError: if the record cannot be fetched or its text cannot be built
        """
        with self.locks.hold((entity_type, record_id)):
            entry = self._rebuild(entity_type, record_id)
        if entry is None:
            self.locks.discard((entity_type, record_id))
        return entry

    def reindex_all(self, entity_type: str) -> ReindexReport:
        """Rebuild every stale entry of ``entity_type``.

        Entries that are no longer stale when their turn comes are skipped, so
        calling this repeatedly is safe and a run with nothing stale is a no-op.
        """
        start = time.perf_counter()
        reindexed: list[RecordId] = []
        removed: list[RecordId] = []
        failed: list[RecordId] = []

        with (
            bind_context(operation="reindex", entity_type=entity_type),
            create_span("record_search.reindex_all", attributes={"entity_type": entity_type}) as span,
        ):
            for candidate in self.store.all_stale_for(entity_type):
                record_id = candidate.owner_id
                with self.locks.hold((entity_type, record_id)):
                    current = self.store.get(entity_type, record_id)
                    if current is None or not current.stale:
                        continue
                    try:
                        rebuilt = self._rebuild(entity_type, record_id)
                    except ReindexError as exc:
                        logger.warning("%s; entry stays stale", exc)
                        REINDEX_FAILURES.labels(entity_type=entity_type).inc()
                        failed.append(record_id)
                        continue
                if rebuilt is None:
                    self.locks.discard((entity_type, record_id))
                    removed.append(record_id)
                else:
                    reindexed.append(record_id)

            span.set_attribute("record_search.reindexed", len(reindexed))
            span.set_attribute("record_search.failed", len(failed))

        report = ReindexReport(
            entity_type=entity_type,
            reindexed=reindexed,
            removed=removed,
            failed=failed,
            elapsed_seconds=time.perf_counter() - start,
        )
        if not report.is_noop:
            logger.info(
                "Reindexed %s: %d rebuilt, %d removed, %d failed in %.3fs",
                entity_type,
                len(reindexed),
                len(removed),
                len(failed),
                report.elapsed_seconds,
            )
        return report

    def _rebuild(self, entity_type: str, record_id: RecordId) -> IndexEntry | None:
        try:
            snapshot = self.source.snapshot(entity_type, record_id)
        except Exception as exc:
            raise ReindexError(entity_type, record_id, f"fetch failed: {exc}") from exc

        if snapshot is None:
            self.store.delete(entity_type, record_id)
            logger.debug("Removed index entry of vanished record %s#%s", entity_type, record_id)
            return None

        try:
            full_text, qualifier_texts = self.builder.build(entity_type, snapshot)
        except Exception as exc:
            raise ReindexError(entity_type, record_id, f"text extraction failed: {exc}") from exc

        entry = IndexEntry.indexed(entity_type, record_id, full_text, qualifier_texts)
        self.store.upsert(entry)
        REINDEX_COUNT.labels(entity_type=entity_type).inc()
        return entry
