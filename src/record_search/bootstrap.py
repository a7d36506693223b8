"""Composition root: observability setup and service construction from settings."""

from __future__ import annotations

import logging

from record_search.adapters.record_source import AbstractRecordSource
from record_search.config import Settings
from record_search.observability import configure_logging, init_tracing
from record_search.service_layer.search_service import SearchService


logger = logging.getLogger(__name__)


def configure_observability(settings: Settings) -> None:
    """Install logging and, when enabled, an OpenTelemetry tracer provider."""
    configure_logging(level=settings.log_level, json_output=settings.json_logs)
    if settings.tracing_enabled:
        init_tracing(service_name=settings.service_name)


def build_search_service(
    source: AbstractRecordSource,
    settings: Settings | None = None,
    *,
    configure: bool = True,
) -> SearchService:
    """Build a ``SearchService`` for ``source`` and subscribe it to change notifications.

    Args:
        source: Host persistence layer
        settings: Configuration; loaded from the environment when omitted
        configure: Also set up logging and tracing from ``settings``

    Returns:
        The service, already subscribed when ``source`` supports ``subscribe``
    """
    settings = settings or Settings()
    if configure:
        configure_observability(settings)

    service = SearchService(source, settings=settings)
    subscribe = getattr(source, "subscribe", None)
    if callable(subscribe):
        subscribe(service)
    logger.info(
        "Search service ready (backend=%s, reindex_on_search=%s, eager_reindex=%s)",
        settings.index_backend,
        settings.reindex_on_search,
        settings.eager_reindex,
    )
    return service
