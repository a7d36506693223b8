"""Prometheus metrics for search and index maintenance."""

from __future__ import annotations

from contextlib import contextmanager
import time
from typing import TYPE_CHECKING

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest


if TYPE_CHECKING:
    from collections.abc import Generator


SEARCH_LATENCY = Histogram(
    "record_search_query_latency_seconds",
    "Search query latency, including lazy reindexing",
    ["entity_type"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
)

SEARCH_COUNT = Counter(
    "record_search_queries_total",
    "Total search queries",
    ["entity_type", "blank"],
)

STALE_MARKS = Counter(
    "record_search_stale_marks_total",
    "Index entries flagged stale",
    ["entity_type", "cause"],
)

REINDEX_COUNT = Counter(
    "record_search_reindexed_total",
    "Index entries rebuilt",
    ["entity_type"],
)

REINDEX_FAILURES = Counter(
    "record_search_reindex_failures_total",
    "Index entries that could not be rebuilt",
    ["entity_type"],
)


@contextmanager
def track_latency(histogram: Histogram, **labels: str) -> Generator[None, None, None]:
    """Context manager to track operation latency."""
    start = time.perf_counter()
    try:
        yield
    finally:
        histogram.labels(**labels).observe(time.perf_counter() - start)


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest()


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
