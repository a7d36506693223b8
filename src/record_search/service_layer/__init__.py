"""Service layer - search use case orchestration.

Following Cosmic Python Chapter 4: the service layer orchestrates use cases
and talks to storage only through repositories.
"""

from .search_service import SearchService


__all__ = ["SearchService"]
