"""ReconcileService — keep adjacency symmetric after a unit edit.

Pipeline: VALIDATE -> DIFF -> REWIRE -> PROPAGATE -> PERSIST

The edited unit's adjacency set is diffed against its stored baseline.
Only neighbors in the symmetric difference are rewritten: each removed
neighbor drops this unit's ID, each added neighbor gains it. The edited
unit is persisted last.

Consistency model: no locking. The engine assumes at most one in-flight
structural edit per unit ID. Concurrent edits whose neighbor sets overlap
race on the shared neighbor records and the last write wins; a hardened
deployment needs per-ID locks or version tokens at the store boundary.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from adjctl.domain.adjacency import (
    ACTION_ADD,
    ACTION_REMOVE,
    AdjacencyDiff,
    NeighborOutcome,
    diff_adjacency,
    skip_warnings,
    skipped,
)
from adjctl.domain.ids import is_blank
from adjctl.infrastructure.store import StoreFailure
from adjctl.services.base import BaseService
from adjctl.services.propagate import PropagateService
from adjctl.services.result import INVALID_ARGUMENT, NOT_FOUND, ServiceResult
from adjctl.services.telemetry import trace_span, traced

if TYPE_CHECKING:
    from adjctl.domain.models import Group, Unit

logger = logging.getLogger(__name__)


class ReconcileService(BaseService):
    """Applies unit edits and repairs the neighbor side of changed edges."""

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @traced
    def reconcile_unit(self, incoming: Unit) -> ServiceResult:
        """Persist *incoming* over its stored baseline, rewiring neighbors as needed.

        Unresolvable neighbors are skipped and reported, never fatal. A
        store failure aborts the remaining steps; neighbor writes already
        committed stay committed.
        """
        op = "reconcile_unit"

        # -- VALIDATE --
        invalid = validate_incoming(incoming)
        if invalid is not None:
            return ServiceResult.failure(op, INVALID_ARGUMENT, invalid)
        unit_id = str(incoming.id)

        outcomes: list[NeighborOutcome] = []
        try:
            stored = self._registry.units.get(unit_id)
            if stored is None:
                return ServiceResult.failure(
                    op,
                    NOT_FOUND,
                    f"No stored unit with ID: {unit_id} (create it first)",
                )
            if stored.group_id != incoming.group_id:
                return ServiceResult.failure(
                    op,
                    INVALID_ARGUMENT,
                    f"group_id is immutable: {stored.group_id} -> {incoming.group_id}",
                )

            propagator = PropagateService(self._registry)
            group: Group | None = None
            if incoming.recompute_flag:
                group, _ = propagator.resolve_group(incoming)

            # -- DIFF --
            diff = diff_adjacency(stored.adjacent_ids, incoming.adjacent_ids)

            # -- REWIRE --
            if diff.changed:
                with trace_span("rewire") as span:
                    self._rewire(unit_id, diff, outcomes)
                    if span is not None:
                        span.annotate("neighbors", len(outcomes))

            # -- PROPAGATE --
            if group is not None:
                with trace_span("propagate"):
                    group = propagator.apply(incoming, group)

            # -- PERSIST --
            saved = self._registry.units.put(incoming.persistent())
        except StoreFailure as exc:
            return self._store_failure(op, exc, outcomes)

        return ServiceResult(
            ok=True,
            op=op,
            data={
                "unit": saved.to_payload(),
                "adjacency_changed": diff.changed,
                "removed": sorted(diff.removed),
                "added": sorted(diff.added),
                "neighbors": [o.to_dict() for o in outcomes],
                "propagated": group is not None,
            },
            warnings=skip_warnings(outcomes),
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _rewire(
        self, unit_id: str, diff: AdjacencyDiff, outcomes: list[NeighborOutcome]
    ) -> None:
        """Remove then add this unit's ID on every neighbor in *diff*.

        Outcomes are appended as each write commits so a caller that sees a
        :class:`StoreFailure` knows exactly which neighbors were rewritten.
        """
        store = self._registry.units
        neighbors = store.get_many(diff.removed | diff.added)

        for neighbor_id in sorted(diff.removed):
            neighbor = neighbors.get(neighbor_id)
            if neighbor is None:
                logger.warning(
                    "Skipping removed neighbor %s of %s: not found", neighbor_id, unit_id
                )
                outcomes.append(skipped(neighbor_id, ACTION_REMOVE))
                continue
            store.put(neighbor.without_neighbor(unit_id))
            outcomes.append(NeighborOutcome(neighbor_id=neighbor_id, action=ACTION_REMOVE))

        for neighbor_id in sorted(diff.added):
            neighbor = neighbors.get(neighbor_id)
            if neighbor is None:
                logger.warning(
                    "Skipping added neighbor %s of %s: not found", neighbor_id, unit_id
                )
                outcomes.append(skipped(neighbor_id, ACTION_ADD))
                continue
            store.put(neighbor.with_neighbor(unit_id))
            outcomes.append(NeighborOutcome(neighbor_id=neighbor_id, action=ACTION_ADD))


def validate_incoming(unit: Unit) -> str | None:
    """Return an error message if *unit* cannot enter the graph, else None."""
    if is_blank(unit.id):
        return "Unit ID is required"
    if unit.id in unit.adjacent_ids:
        return f"Unit {unit.id} cannot be adjacent to itself"
    if unit.recompute_flag and unit.demographic_snapshot is None:
        return f"Unit {unit.id} sets recompute_flag without a demographic snapshot"
    return None
