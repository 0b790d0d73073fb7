"""MergeService — collapse two units into one.

Pipeline: VALIDATE -> REWIRE -> DETACH -> DELETE -> PROPAGATE -> PERSIST

Every neighbor of the absorbed unit is pointed at the primary unit and
loses its reference to the absorbed ID. The primary gains those neighbors
(never itself), drops the absorbed ID, and is persisted last, after the
absorbed unit has been deleted.

The merge is best-effort rather than all-or-nothing: an unresolvable
neighbor is skipped, and a store failure leaves the neighbor writes that
already committed in place. The same single-writer-per-ID assumption as
reconciliation applies.

Every resolved neighbor of the absorbed unit is written back listing the
primary, including one the primary already listed. A pre-existing
asymmetric pair (primary lists the neighbor, the neighbor does not list
the primary) is therefore healed rather than carried over.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from adjctl.domain.adjacency import (
    ACTION_DETACH,
    ACTION_REWIRE,
    NeighborOutcome,
    skip_warnings,
    skipped,
)
from adjctl.domain.demographics import validate_counts
from adjctl.domain.models import Unit
from adjctl.infrastructure.store import StoreFailure
from adjctl.services.base import BaseService
from adjctl.services.propagate import PropagateService
from adjctl.services.result import INVALID_ARGUMENT, NOT_FOUND, ServiceResult
from adjctl.services.telemetry import trace_span, traced

logger = logging.getLogger(__name__)


class MergeService(BaseService):
    """Merges an absorbed unit into a primary unit."""

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def merge(
        self,
        unit_ids: Sequence[str],
        *,
        demographic_snapshot: Mapping[str, int] | None = None,
    ) -> ServiceResult:
        """Merge ``unit_ids[1]`` into ``unit_ids[0]``.

        Exactly two IDs are accepted: primary first, absorbed second.
        """
        if len(unit_ids) != 2:
            return ServiceResult.failure(
                "merge_units",
                INVALID_ARGUMENT,
                f"A merge needs exactly two unit IDs (primary, absorbed); got {len(unit_ids)}",
            )
        primary_id, absorbed_id = unit_ids
        return self.merge_units(
            primary_id, absorbed_id, demographic_snapshot=demographic_snapshot
        )

    @traced
    def merge_units(
        self,
        primary_id: str,
        absorbed_id: str,
        *,
        demographic_snapshot: Mapping[str, int] | None = None,
    ) -> ServiceResult:
        """Absorb *absorbed_id* into *primary_id* and delete it.

        If *demographic_snapshot* is given, it is propagated into the
        primary unit's group after the absorbed unit is removed.
        """
        op = "merge_units"

        # -- VALIDATE --
        if primary_id == absorbed_id:
            return ServiceResult.failure(
                op, INVALID_ARGUMENT, f"Cannot merge unit {primary_id} into itself"
            )
        snapshot: dict[str, int] | None = None
        if demographic_snapshot is not None:
            try:
                snapshot = validate_counts(demographic_snapshot)
            except ValueError as exc:
                return ServiceResult.failure(op, INVALID_ARGUMENT, str(exc))

        outcomes: list[NeighborOutcome] = []
        try:
            loaded = self._registry.units.get_many([primary_id, absorbed_id])
            missing = [i for i in (primary_id, absorbed_id) if i not in loaded]
            if missing:
                return ServiceResult.failure(
                    op,
                    NOT_FOUND,
                    f"No stored unit with ID: {', '.join(missing)}",
                    detail={"missing": missing},
                )
            primary, absorbed = loaded[primary_id], loaded[absorbed_id]

            # -- REWIRE --
            with trace_span("rewire") as span:
                primary = self._rewire(primary, absorbed, outcomes)
                if span is not None:
                    span.annotate("neighbors", len(outcomes))

            # -- DETACH --
            # Covers primary and absorbed having been mutual neighbors.
            primary = primary.without_neighbor(absorbed_id)

            # -- DELETE --
            self._registry.units.delete(absorbed_id)
            logger.info("Merged unit %s into %s", absorbed_id, primary_id)

            # -- PROPAGATE --
            propagated = False
            if snapshot is not None:
                with trace_span("propagate"):
                    carrier = primary.model_copy(
                        update={"recompute_flag": True, "demographic_snapshot": snapshot}
                    )
                    propagator = PropagateService(self._registry)
                    group, _ = propagator.resolve_group(carrier)
                    propagator.apply(carrier, group)
                    propagated = True

            # -- PERSIST --
            saved = self._registry.units.put(primary)
        except StoreFailure as exc:
            return self._store_failure(op, exc, outcomes)

        return ServiceResult(
            ok=True,
            op=op,
            data={
                "unit": saved.to_payload(),
                "absorbed_id": absorbed_id,
                "neighbors": [o.to_dict() for o in outcomes],
                "propagated": propagated,
            },
            warnings=skip_warnings(outcomes),
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _rewire(self, primary: Unit, absorbed: Unit, outcomes: list[NeighborOutcome]) -> Unit:
        """Move every neighbor of *absorbed* onto *primary*. Returns the updated primary.

        Each neighbor is written (and its outcome recorded) before the next
        is loaded. The primary itself is only written by the caller.
        """
        store = self._registry.units
        primary_id = str(primary.id)
        absorbed_id = str(absorbed.id)
        neighbors = store.get_many(absorbed.adjacent_ids - {primary_id})

        for neighbor_id in sorted(absorbed.adjacent_ids):
            if neighbor_id == primary_id:
                # No self-loop; the DETACH step drops the absorbed ID from primary.
                outcomes.append(NeighborOutcome(neighbor_id=neighbor_id, action=ACTION_DETACH))
                continue

            neighbor = neighbors.get(neighbor_id)
            if neighbor is None:
                logger.warning(
                    "Skipping neighbor %s of absorbed unit %s: not found", neighbor_id, absorbed_id
                )
                outcomes.append(skipped(neighbor_id, ACTION_REWIRE))
                continue

            action = ACTION_DETACH
            if neighbor_id not in primary.adjacent_ids:
                primary = primary.with_neighbor(neighbor_id)
                action = ACTION_REWIRE
            if primary_id not in neighbor.adjacent_ids:
                action = ACTION_REWIRE
            updated = neighbor.with_neighbor(primary_id).without_neighbor(absorbed_id)
            store.put(updated)
            outcomes.append(NeighborOutcome(neighbor_id=neighbor_id, action=action))

        return primary
