"""GraphEngine — lazy-built NetworkX digraph of stored adjacency rows.

Each stored ``(unit_id, neighbor_id)`` row becomes a directed edge, so an
asymmetric pair shows up as an edge without its reverse. Neighbor IDs that
name no stored unit are added as nodes flagged ``stored=False``.

Rebuilt on demand; the integrity check is the only consumer.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeAlias

import networkx as nx

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

_Graph: TypeAlias = nx.DiGraph


class GraphEngine:
    """Lazy-loading graph engine backed by SQLite adjacency data."""

    def __init__(self, db: Engine) -> None:
        self._db = db
        self._graph: _Graph | None = None

    @property
    def graph(self) -> _Graph:
        """Return the graph, building from DB on first access."""
        if self._graph is None:
            self._graph = self._build_from_db()
        return self._graph

    def invalidate(self) -> None:
        """Clear the cached graph, forcing rebuild on next access."""
        self._graph = None

    def self_loops(self) -> list[str]:
        """Units listing themselves as a neighbor."""
        return sorted(str(n) for n in nx.nodes_with_selfloops(self.graph))

    def dangling(self) -> list[tuple[str, str]]:
        """``(unit_id, neighbor_id)`` pairs whose neighbor is not a stored unit."""
        g = self.graph
        return sorted(
            (str(u), str(v)) for u, v in g.edges() if not g.nodes[v].get("stored", False)
        )

    def asymmetric(self) -> list[tuple[str, str]]:
        """Stored-to-stored edges whose reverse edge is missing."""
        g = self.graph
        return sorted(
            (str(u), str(v))
            for u, v in g.edges()
            if u != v and g.nodes[v].get("stored", False) and not g.has_edge(v, u)
        )

    def _build_from_db(self) -> _Graph:
        """Build a NetworkX DiGraph from the units and unit_adjacency tables.

        Loads all units first (so isolated units appear in the graph),
        then adds one edge per adjacency row.
        """
        from sqlalchemy import select

        from adjctl.infrastructure.database.schema import unit_adjacency, units

        g: _Graph = nx.DiGraph()
        with self._db.connect() as conn:
            for row in conn.execute(select(units.c.id, units.c.group_id)):
                g.add_node(row.id, group_id=row.group_id, stored=True)

            for row in conn.execute(select(unit_adjacency)):
                if row.neighbor_id not in g:
                    g.add_node(row.neighbor_id, stored=False)
                g.add_edge(row.unit_id, row.neighbor_id)
        return g
