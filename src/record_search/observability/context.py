"""Per-operation log context: trace ids plus the record being worked on."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from uuid import uuid4


trace_context: ContextVar[dict | None] = ContextVar("record_search_trace_context", default=None)

# Keys copied onto structured log records when bound
SEARCH_CONTEXT_KEYS = ("operation", "entity_type", "record_id")


def generate_trace_id() -> str:
    """Generate a 32-char hex trace ID."""
    return uuid4().hex


def generate_span_id() -> str:
    return uuid4().hex[:16]


def get_trace_context() -> dict:
    """Get the active context, starting a fresh trace when none is active."""
    ctx = trace_context.get()
    if ctx is None or not ctx.get("trace_id"):
        ctx = {"trace_id": generate_trace_id(), "span_id": generate_span_id()}
        trace_context.set(ctx)
    return ctx


def set_trace_context(trace_id: str, span_id: str, **extra: object) -> None:
    trace_context.set({"trace_id": trace_id, "span_id": span_id, **extra})


def update_trace_ids(trace_id: str, span_id: str) -> None:
    """Adopt the ids of the active OpenTelemetry span, keeping bound search fields."""
    ctx = trace_context.get() or {}
    trace_context.set({**ctx, "trace_id": trace_id, "span_id": span_id})


@contextmanager
def bind_context(**fields: object) -> Iterator[dict]:
    """Attach search fields to every log record emitted inside the block.

    Example:
        with bind_context(operation="update", entity_type="user", record_id=7):
            logger.info("marked stale")
    """
    token = trace_context.set({**get_trace_context(), **fields})
    try:
        yield trace_context.get()
    finally:
        trace_context.reset(token)
