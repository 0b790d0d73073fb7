"""PropagateService — fold a unit's demographic snapshot into its group.

INVARIANT: replace, not accumulate. A propagation overwrites the group's
totals with the unit's snapshot; the previous totals are discarded. A
group owning several units therefore reflects only the most recent
flagged unit, not a sum across its units.
"""

from __future__ import annotations

import logging

from adjctl.domain.demographics import replace_totals
from adjctl.domain.models import Group, Unit
from adjctl.infrastructure.store import StoreFailure
from adjctl.services.base import BaseService
from adjctl.services.result import INVALID_ARGUMENT, ServiceResult
from adjctl.services.telemetry import traced

logger = logging.getLogger(__name__)


class PropagateService(BaseService):
    """Copies unit demographic snapshots into owning group totals."""

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @traced
    def propagate_demographics(self, unit: Unit, group: Group) -> ServiceResult:
        """Overwrite *group*'s totals with *unit*'s snapshot and persist the group."""
        op = "propagate_demographics"

        if unit.demographic_snapshot is None:
            return ServiceResult.failure(
                op, INVALID_ARGUMENT, f"Unit {unit.id} carries no demographic snapshot"
            )
        if group.id != unit.group_id:
            return ServiceResult.failure(
                op,
                INVALID_ARGUMENT,
                f"Group {group.id} does not own unit {unit.id} (owner: {unit.group_id})",
            )

        try:
            saved = self.apply(unit, group)
        except StoreFailure as exc:
            return self._store_failure(op, exc)

        return ServiceResult(
            ok=True,
            op=op,
            data={"unit_id": unit.id, "group": saved.to_payload()},
        )

    # ------------------------------------------------------------------
    # Collaborator API (used by reconcile, merge, and create)
    # ------------------------------------------------------------------

    def resolve_group(self, unit: Unit) -> tuple[Group, bool]:
        """Return ``(group, created)`` for *unit*'s owner.

        A missing group is seeded from the unit's ``group_id`` and transient
        ``parent_id`` but not persisted here; :meth:`apply` persists it.
        """
        group = self._registry.groups.get(unit.group_id)
        if group is not None:
            return group, False
        logger.info("Seeding missing group %s for unit %s", unit.group_id, unit.id)
        return Group(id=unit.group_id, parent_id=unit.parent_id), True

    def apply(self, unit: Unit, group: Group) -> Group:
        """Replace totals and persist. Raises :class:`StoreFailure`."""
        snapshot = unit.demographic_snapshot or {}
        updated = group.model_copy(update={"demographic_totals": replace_totals(snapshot)})
        saved = self._registry.groups.put(updated)
        logger.debug("Propagated unit %s into group %s: %s", unit.id, group.id, snapshot)
        return saved
