"""Observability: structured logging, OpenTelemetry tracing and Prometheus metrics."""

from record_search.observability.context import bind_context, get_trace_context, set_trace_context, trace_context
from record_search.observability.logging import JsonFormatter, configure_logging, json_default
from record_search.observability.metrics import (
    REINDEX_COUNT,
    REINDEX_FAILURES,
    SEARCH_COUNT,
    SEARCH_LATENCY,
    STALE_MARKS,
    get_metrics,
    get_metrics_content_type,
    track_latency,
)
from record_search.observability.tracing import create_span, get_tracer, init_tracing


__all__ = [
    "REINDEX_COUNT",
    "REINDEX_FAILURES",
    "SEARCH_COUNT",
    "SEARCH_LATENCY",
    "STALE_MARKS",
    "JsonFormatter",
    "bind_context",
    "configure_logging",
    "create_span",
    "get_metrics",
    "get_metrics_content_type",
    "get_trace_context",
    "get_tracer",
    "init_tracing",
    "json_default",
    "set_trace_context",
    "trace_context",
    "track_latency",
]
