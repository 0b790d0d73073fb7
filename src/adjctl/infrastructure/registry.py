"""Registry — the single dependency injected into every service.

The Registry owns the database engine, the unit and group store adapters,
and the graph engine. Services never touch the engine directly for graph
edits; they go through ``registry.units`` and ``registry.groups`` so every
read and write crosses the adapter boundary.

There is no cross-call transaction. Each adapter write commits on its own,
which is what lets a best-effort neighbor loop keep its progress when a
later step fails.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from adjctl.infrastructure.database.engine import init_database
from adjctl.infrastructure.graph.engine import GraphEngine
from adjctl.infrastructure.store import GroupStore, UnitStore

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from adjctl.config.settings import AdjSettings
    from adjctl.infrastructure.store import GroupStoreAdapter, UnitStoreAdapter

logger = logging.getLogger(__name__)


class Registry:
    """Repository encapsulating the unit store, group store, and graph.

    Constructed once at CLI startup from :class:`AdjSettings`. Tests may
    pass replacement adapters to simulate store failures.
    """

    def __init__(
        self,
        settings: AdjSettings,
        *,
        units: UnitStoreAdapter | None = None,
        groups: GroupStoreAdapter | None = None,
    ) -> None:
        self._settings = settings
        self._engine: Engine = init_database(self.root, settings.store.filename)
        self._units: UnitStoreAdapter = units if units is not None else UnitStore(self._engine)
        self._groups: GroupStoreAdapter = (
            groups if groups is not None else GroupStore(self._engine)
        )
        self._graph = GraphEngine(self._engine)

    @property
    def root(self) -> Path:
        """The project root directory (holds ``.adjctl/``)."""
        return self._settings.root

    @property
    def engine(self) -> Engine:
        """The underlying SQLAlchemy engine (for direct access when needed)."""
        return self._engine

    @property
    def units(self) -> UnitStoreAdapter:
        """The unit store adapter."""
        return self._units

    @property
    def groups(self) -> GroupStoreAdapter:
        """The group store adapter."""
        return self._groups

    @property
    def graph(self) -> GraphEngine:
        """The adjacency graph engine (lazy-built from DB rows)."""
        return self._graph

    @property
    def settings(self) -> AdjSettings:
        """The resolved settings for this registry."""
        return self._settings

    def close(self) -> None:
        """Release pooled database connections."""
        self._graph.invalidate()
        self._engine.dispose()
        logger.debug("Registry closed: %s", self.root)
