"""Declared search-text dependencies between entity types.

An edge ``recipe -> category`` says that recipe search text is partly built
from categories. When a category changes, the host resolves the edge's
relation on the changed category (e.g. ``category.recipes``) and every
resolved recipe entry is marked stale. Edges are declarative; instance
traversal is the host's job.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging

from record_search.errors import SyntaxDefinitionError


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DependencyEdge:
    """
    Directed dependency between two entity types.

    Args:
        dependent_type: Type whose search text includes the other type's data
        depends_on_type: Type whose changes invalidate dependents
        relation: Association on ``depends_on_type`` records that yields the
            dependent records
    """

    dependent_type: str
    depends_on_type: str
    relation: str


class DependencyGraph:
    """Set of dependency edges indexed by the changed type."""

    def __init__(self) -> None:
        self._edges: dict[str, dict[tuple[str, str], DependencyEdge]] = {}

    def __len__(self) -> int:
        return sum(len(edges) for edges in self._edges.values())

    def __contains__(self, edge: object) -> bool:
        if not isinstance(edge, DependencyEdge):
            return False
        return (edge.dependent_type, edge.relation) in self._edges.get(edge.depends_on_type, {})

    def declare(self, dependent_type: str, depends_on_type: str, relation: str | None = None) -> DependencyEdge:
        """Register an edge; declaring the same edge twice is a no-op."""
        for name in (dependent_type, depends_on_type):
            if not isinstance(name, str) or not name:
                raise SyntaxDefinitionError("Dependency entity types must be non-empty strings")
        edge = DependencyEdge(dependent_type, depends_on_type, relation or dependent_type)
        edges = self._edges.setdefault(depends_on_type, {})
        if (dependent_type, edge.relation) not in edges:
            edges[(dependent_type, edge.relation)] = edge
            logger.debug(
                "Declared search dependency %s -> %s via %s", dependent_type, depends_on_type, edge.relation
            )
        return edges[(dependent_type, edge.relation)]

    def edges_from(self, changed_type: str) -> list[DependencyEdge]:
        """Edges whose dependents must be invalidated when ``changed_type`` changes."""
        return list(self._edges.get(changed_type, {}).values())
