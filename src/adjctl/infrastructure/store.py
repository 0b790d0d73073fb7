"""Unit and group store adapters over SQLite.

The engine core consumes stores through the minimal :class:`UnitStoreAdapter`
and :class:`GroupStoreAdapter` protocols. :class:`UnitStore` and
:class:`GroupStore` are the SQLAlchemy Core implementations.

Every mutating call (``put`` / ``delete``) runs in its own short
transaction and commits before returning. A multi-step graph operation is
therefore a sequence of independent commits: a failure part-way leaves the
earlier writes in place. There is no row locking or version token; two
concurrent structural edits touching the same neighbor record race, and the
last ``put`` wins.

Any SQLAlchemy error is re-raised as :class:`StoreFailure` with the original
exception as ``__cause__``.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Protocol

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import SQLAlchemyError

from adjctl.domain.models import Group, Unit
from adjctl.infrastructure.database.schema import (
    UNIT_CHILD_TABLES,
    group_totals,
    groups,
    unit_adjacency,
    unit_elections,
    unit_enclosing,
    units,
)

if TYPE_CHECKING:
    from sqlalchemy import Connection
    from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)


class StoreFailure(Exception):
    """The backing store could not complete a read or write."""


# ---------------------------------------------------------------------------
# Adapter contracts
# ---------------------------------------------------------------------------


class UnitStoreAdapter(Protocol):
    """Key-value access to unit records by identifier."""

    def get(self, unit_id: str) -> Unit | None: ...

    def get_many(self, unit_ids: Iterable[str]) -> dict[str, Unit]: ...

    def put(self, unit: Unit) -> Unit: ...

    def delete(self, unit_id: str) -> None: ...

    def find(self, *, group_id: str | None = None) -> list[Unit]: ...

    def referrers(self, unit_id: str) -> list[str]: ...


class GroupStoreAdapter(Protocol):
    """Key-value access to group records by identifier."""

    def get(self, group_id: str) -> Group | None: ...

    def put(self, group: Group) -> Group: ...


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


# ---------------------------------------------------------------------------
# UnitStore
# ---------------------------------------------------------------------------


class UnitStore:
    """SQLite-backed :class:`UnitStoreAdapter`.

    Transient fields (``recompute_flag``, ``demographic_snapshot``,
    ``parent_id``) are never written; loaded units always have them unset.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def get(self, unit_id: str) -> Unit | None:
        """Return the stored unit, or None if absent."""
        return self.get_many([unit_id]).get(unit_id)

    def get_many(self, unit_ids: Iterable[str]) -> dict[str, Unit]:
        """Return a mapping of the requested IDs that exist. Missing IDs are absent."""
        wanted = sorted(set(unit_ids))
        if not wanted:
            return {}
        try:
            with self._engine.connect() as conn:
                return self._load(conn, wanted)
        except SQLAlchemyError as exc:
            raise StoreFailure(f"Failed to load units {wanted}") from exc

    def find(self, *, group_id: str | None = None) -> list[Unit]:
        """Return every stored unit (optionally within one group), ordered by ID."""
        stmt = select(units.c.id).order_by(units.c.id)
        if group_id is not None:
            stmt = stmt.where(units.c.group_id == group_id)
        try:
            with self._engine.connect() as conn:
                ids = [str(r.id) for r in conn.execute(stmt)]
                loaded = self._load(conn, ids) if ids else {}
        except SQLAlchemyError as exc:
            raise StoreFailure("Failed to list units") from exc
        return [loaded[i] for i in ids]

    def referrers(self, unit_id: str) -> list[str]:
        """Return the IDs of stored units that list *unit_id* as adjacent, ordered."""
        stmt = (
            select(unit_adjacency.c.unit_id)
            .where(unit_adjacency.c.neighbor_id == unit_id)
            .order_by(unit_adjacency.c.unit_id)
        )
        try:
            with self._engine.connect() as conn:
                return [str(r.unit_id) for r in conn.execute(stmt)]
        except SQLAlchemyError as exc:
            raise StoreFailure(f"Failed to find units adjacent to {unit_id}") from exc

    def put(self, unit: Unit) -> Unit:
        """Upsert *unit* and return its canonical stored form."""
        if unit.id is None:
            msg = "Cannot persist a unit without an id"
            raise ValueError(msg)
        now = _now_iso()
        cols = {
            "group_id": unit.group_id,
            "canonical_name": unit.canonical_name,
            "ghost": int(unit.ghost),
            "multiple_border": int(unit.multiple_border),
            "coordinates": unit.coordinates,
            "modified": now,
        }
        try:
            with self._engine.begin() as conn:
                existing = conn.execute(select(units.c.id).where(units.c.id == unit.id)).first()
                if existing is None:
                    conn.execute(insert(units).values(id=unit.id, created=now, **cols))
                else:
                    conn.execute(update(units).where(units.c.id == unit.id).values(**cols))
                self._replace_children(conn, unit)
                stored = self._load(conn, [unit.id])[unit.id]
        except SQLAlchemyError as exc:
            raise StoreFailure(f"Failed to persist unit {unit.id}") from exc
        logger.debug("Persisted unit %s (%d neighbors)", unit.id, len(unit.adjacent_ids))
        return stored

    def delete(self, unit_id: str) -> None:
        """Remove a unit and its child rows. No error if absent."""
        try:
            with self._engine.begin() as conn:
                for table in UNIT_CHILD_TABLES:
                    conn.execute(delete(table).where(table.c.unit_id == unit_id))
                conn.execute(delete(units).where(units.c.id == unit_id))
        except SQLAlchemyError as exc:
            raise StoreFailure(f"Failed to delete unit {unit_id}") from exc
        logger.debug("Deleted unit %s", unit_id)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _replace_children(conn: Connection, unit: Unit) -> None:
        """Rewrite adjacency, enclosing, and election rows for *unit*."""
        for table in UNIT_CHILD_TABLES:
            conn.execute(delete(table).where(table.c.unit_id == unit.id))

        if unit.adjacent_ids:
            conn.execute(
                insert(unit_adjacency),
                [{"unit_id": unit.id, "neighbor_id": n} for n in sorted(unit.adjacent_ids)],
            )
        if unit.enclosing_ids:
            conn.execute(
                insert(unit_enclosing),
                [{"unit_id": unit.id, "enclosing_id": e} for e in sorted(unit.enclosing_ids)],
            )
        if unit.election_data:
            conn.execute(
                insert(unit_elections),
                [
                    {"unit_id": unit.id, "election": name, "votes": votes}
                    for name, votes in sorted(unit.election_data.items())
                ],
            )

    @staticmethod
    def _load(conn: Connection, unit_ids: list[str]) -> dict[str, Unit]:
        """Assemble Unit records for *unit_ids* from the row and child tables."""
        rows = conn.execute(select(units).where(units.c.id.in_(unit_ids))).fetchall()
        if not rows:
            return {}
        found = [str(r.id) for r in rows]

        adjacent: dict[str, set[str]] = defaultdict(set)
        for r in conn.execute(
            select(unit_adjacency).where(unit_adjacency.c.unit_id.in_(found))
        ):
            adjacent[r.unit_id].add(str(r.neighbor_id))

        enclosing: dict[str, set[str]] = defaultdict(set)
        for r in conn.execute(
            select(unit_enclosing).where(unit_enclosing.c.unit_id.in_(found))
        ):
            enclosing[r.unit_id].add(str(r.enclosing_id))

        elections: dict[str, dict[str, int]] = defaultdict(dict)
        for r in conn.execute(
            select(unit_elections).where(unit_elections.c.unit_id.in_(found))
        ):
            elections[r.unit_id][str(r.election)] = int(r.votes)

        return {
            str(r.id): Unit(
                id=str(r.id),
                group_id=str(r.group_id),
                adjacent_ids=frozenset(adjacent[r.id]),
                enclosing_ids=frozenset(enclosing[r.id]),
                canonical_name=r.canonical_name,
                ghost=bool(r.ghost),
                multiple_border=bool(r.multiple_border),
                coordinates=r.coordinates,
                election_data=elections[r.id],
            )
            for r in rows
        }


# ---------------------------------------------------------------------------
# GroupStore
# ---------------------------------------------------------------------------


class GroupStore:
    """SQLite-backed :class:`GroupStoreAdapter`."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def get(self, group_id: str) -> Group | None:
        """Return the stored group, or None if absent."""
        try:
            with self._engine.connect() as conn:
                return self._load(conn, group_id)
        except SQLAlchemyError as exc:
            raise StoreFailure(f"Failed to load group {group_id}") from exc

    def put(self, group: Group) -> Group:
        """Upsert *group* (totals replaced wholesale) and return the stored form."""
        now = _now_iso()
        try:
            with self._engine.begin() as conn:
                existing = conn.execute(select(groups.c.id).where(groups.c.id == group.id)).first()
                if existing is None:
                    conn.execute(
                        insert(groups).values(
                            id=group.id, parent_id=group.parent_id, created=now, modified=now
                        )
                    )
                else:
                    conn.execute(
                        update(groups)
                        .where(groups.c.id == group.id)
                        .values(parent_id=group.parent_id, modified=now)
                    )
                conn.execute(delete(group_totals).where(group_totals.c.group_id == group.id))
                if group.demographic_totals:
                    conn.execute(
                        insert(group_totals),
                        [
                            {"group_id": group.id, "category": c, "count": n}
                            for c, n in group.demographic_totals.items()
                        ],
                    )
                stored = self._load(conn, group.id)
        except SQLAlchemyError as exc:
            raise StoreFailure(f"Failed to persist group {group.id}") from exc
        assert stored is not None
        logger.debug("Persisted group %s", group.id)
        return stored

    @staticmethod
    def _load(conn: Connection, group_id: str) -> Group | None:
        row = conn.execute(select(groups).where(groups.c.id == group_id)).first()
        if row is None:
            return None
        # Unpacked positionally: Row.count is the tuple method, not the column.
        totals = {
            str(category): int(count)
            for category, count in conn.execute(
                select(group_totals.c.category, group_totals.c.count).where(
                    group_totals.c.group_id == group_id
                )
            )
        }
        return Group(id=str(row.id), parent_id=row.parent_id, demographic_totals=totals)
