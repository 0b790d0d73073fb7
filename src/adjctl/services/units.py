"""UnitService — first-time insertion, lookup, listing, and deletion.

Creation is the only path that accepts a unit with no stored baseline.
Edits of existing units go through :class:`ReconcileService`.
"""

from __future__ import annotations

import logging

from adjctl.domain.adjacency import ACTION_ADD, NeighborOutcome, skip_warnings, skipped
from adjctl.domain.ids import generate_unit_id, is_blank
from adjctl.domain.models import Unit
from adjctl.infrastructure.store import StoreFailure
from adjctl.services.base import BaseService
from adjctl.services.propagate import PropagateService
from adjctl.services.reconcile import validate_incoming
from adjctl.services.result import INVALID_ARGUMENT, NOT_FOUND, ServiceResult
from adjctl.services.telemetry import traced

logger = logging.getLogger(__name__)


class UnitService(BaseService):
    """Handles the unit lifecycle outside of reconciliation and merge."""

    @traced
    def create_unit(self, unit: Unit) -> ServiceResult:
        """Insert a new unit and announce it to its listed neighbors.

        Pipeline: VALIDATE -> GROUP -> PERSIST -> LINK

        A missing owning group is seeded from ``group_id`` / ``parent_id``
        and receives the unit's snapshot (if any). Each resolvable neighbor
        gains the new ID; unresolvable ones are skipped and reported.
        """
        op = "create_unit"
        if is_blank(unit.id):
            unit = unit.model_copy(update={"id": generate_unit_id()})
        unit_id = str(unit.id)

        invalid = validate_incoming(unit)
        if invalid is not None:
            return ServiceResult.failure(op, INVALID_ARGUMENT, invalid)

        outcomes: list[NeighborOutcome] = []
        store = self._registry.units
        try:
            if store.get(unit_id) is not None:
                return ServiceResult.failure(
                    op,
                    INVALID_ARGUMENT,
                    f"Unit {unit_id} already exists; edit it with update instead",
                )

            # -- GROUP --
            propagator = PropagateService(self._registry)
            group, group_created = propagator.resolve_group(unit)
            propagated = False
            if unit.demographic_snapshot is not None and (group_created or unit.recompute_flag):
                propagator.apply(unit, group)
                propagated = True
            elif group_created:
                self._registry.groups.put(group)

            # -- PERSIST --
            saved = store.put(unit.persistent())

            # -- LINK --
            neighbors = store.get_many(unit.adjacent_ids)
            for neighbor_id in sorted(unit.adjacent_ids):
                neighbor = neighbors.get(neighbor_id)
                if neighbor is None:
                    logger.warning(
                        "Skipping neighbor %s of new unit %s: not found", neighbor_id, unit_id
                    )
                    outcomes.append(skipped(neighbor_id, ACTION_ADD))
                    continue
                if unit_id not in neighbor.adjacent_ids:
                    store.put(neighbor.with_neighbor(unit_id))
                outcomes.append(NeighborOutcome(neighbor_id=neighbor_id, action=ACTION_ADD))
        except StoreFailure as exc:
            return self._store_failure(op, exc, outcomes)

        return ServiceResult(
            ok=True,
            op=op,
            data={
                "id": unit_id,
                "unit": saved.to_payload(),
                "group_created": group_created,
                "propagated": propagated,
                "neighbors": [o.to_dict() for o in outcomes],
            },
            warnings=skip_warnings(outcomes),
        )

    def get_unit(self, unit_id: str) -> ServiceResult:
        """Look up one unit by ID."""
        op = "get_unit"
        try:
            unit = self._registry.units.get(unit_id)
        except StoreFailure as exc:
            return self._store_failure(op, exc)
        if unit is None:
            return ServiceResult.failure(op, NOT_FOUND, f"No stored unit with ID: {unit_id}")
        return ServiceResult(ok=True, op=op, data={"id": unit_id, "unit": unit.to_payload()})

    def list_units(self, *, group_id: str | None = None) -> ServiceResult:
        """List stored units, optionally restricted to one group."""
        op = "list_units"
        try:
            found = self._registry.units.find(group_id=group_id)
        except StoreFailure as exc:
            return self._store_failure(op, exc)
        items = [u.to_payload() for u in found]
        return ServiceResult(ok=True, op=op, data={"items": items, "count": len(items)})

    def delete_unit(self, unit_id: str) -> ServiceResult:
        """Delete a unit without repairing its neighbors.

        Idempotent. Neighbors that still list the deleted ID are reported as
        warnings; they are repaired by their next edit or by ``check --fix``.
        """
        op = "delete_unit"
        try:
            existed = self._registry.units.get(unit_id) is not None
            self._registry.units.delete(unit_id)
            referrers = self._registry.units.referrers(unit_id)
        except StoreFailure as exc:
            return self._store_failure(op, exc)

        warnings: list[str] = []
        if referrers:
            warnings.append(
                f"{len(referrers)} unit(s) still list {unit_id} as adjacent: "
                f"{', '.join(referrers)}"
            )
        return ServiceResult(
            ok=True,
            op=op,
            data={"id": unit_id, "existed": existed, "dangling_referrers": referrers},
            warnings=warnings,
        )

    def get_group(self, group_id: str) -> ServiceResult:
        """Look up one group and its current demographic totals."""
        op = "get_group"
        try:
            group = self._registry.groups.get(group_id)
        except StoreFailure as exc:
            return self._store_failure(op, exc)
        if group is None:
            return ServiceResult.failure(op, NOT_FOUND, f"No stored group with ID: {group_id}")
        return ServiceResult(ok=True, op=op, data={"id": group_id, "group": group.to_payload()})
