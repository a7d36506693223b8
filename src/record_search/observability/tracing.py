"""OpenTelemetry spans around searches and reindex batches."""

from __future__ import annotations

from contextlib import contextmanager
import logging
from typing import TYPE_CHECKING, Any

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.trace import SpanKind, Status, StatusCode

from record_search.observability.context import update_trace_ids


if TYPE_CHECKING:
    from collections.abc import Generator

    from opentelemetry.trace import Span, Tracer

logger = logging.getLogger(__name__)

ATTRIBUTE_NAMESPACE = "record_search"

_tracer_holder: dict[str, Tracer | None] = {"tracer": None}


def init_tracing(
    service_name: str = "record-search",
    resource_attributes: dict[str, str] | None = None,
) -> TracerProvider:
    """Install an SDK tracer provider for the service.

    Span processors and exporters are left to the caller, who can add them to
    the returned provider.
    """
    provider = TracerProvider(resource=Resource.create({"service.name": service_name, **(resource_attributes or {})}))
    trace.set_tracer_provider(provider)
    _tracer_holder["tracer"] = trace.get_tracer(ATTRIBUTE_NAMESPACE)
    logger.info("Tracing initialized for service: %s", service_name)
    return provider


def get_tracer() -> Tracer:
    """Return the configured tracer, or the global (possibly no-op) one."""
    tracer = _tracer_holder["tracer"]
    return tracer if tracer is not None else trace.get_tracer(ATTRIBUTE_NAMESPACE)


def span_attributes(attributes: dict[str, Any] | None) -> dict[str, Any]:
    """Namespace bare keys under ``record_search.`` and drop None values."""
    return {
        key if "." in key else f"{ATTRIBUTE_NAMESPACE}.{key}": value
        for key, value in (attributes or {}).items()
        if value is not None
    }


@contextmanager
def create_span(
    name: str,
    kind: SpanKind = SpanKind.INTERNAL,
    attributes: dict[str, Any] | None = None,
) -> Generator[Span, None, None]:
    """Run the block in a span whose ids are also stamped on log records.

    Exceptions leaving the block mark the span as failed and are re-raised.
    """
    with get_tracer().start_as_current_span(
        name,
        kind=kind,
        attributes=span_attributes(attributes),
        record_exception=False,
        set_status_on_exception=False,
    ) as span:
        span_context = span.get_span_context()
        if span_context.is_valid:
            update_trace_ids(format(span_context.trace_id, "032x"), format(span_context.span_id, "016x"))
        try:
            yield span
        except Exception as exc:
            span.set_status(Status(StatusCode.ERROR, str(exc)))
            span.record_exception(exc)
            raise
