"""CheckService — adjacency integrity report and repair.

Three issue categories, all read from the NetworkX view of the stored
adjacency rows:

- ``self_loop``: a unit lists itself as adjacent.
- ``asymmetric_edge``: A lists B but B does not list A.
- ``dangling_reference``: a unit lists an ID that names no stored unit.

Repairs go through the unit store adapter one record at a time and are
idempotent, so a repair interrupted by a store failure can simply be rerun.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any

from adjctl.infrastructure.store import StoreFailure
from adjctl.services.base import BaseService
from adjctl.services.result import STORE_FAILURE, ServiceResult
from adjctl.services.telemetry import trace_span, traced

logger = logging.getLogger(__name__)

SEVERITY_ERROR = "error"
SEVERITY_WARNING = "warning"

CAT_SELF_LOOP = "self_loop"
CAT_ASYMMETRIC = "asymmetric_edge"
CAT_DANGLING = "dangling_reference"


def _issue(
    category: str, severity: str, unit_id: str, message: str, neighbor_id: str | None = None
) -> dict[str, Any]:
    issue: dict[str, Any] = {
        "category": category,
        "severity": severity,
        "unit_id": unit_id,
        "message": message,
    }
    if neighbor_id is not None:
        issue["neighbor_id"] = neighbor_id
    return issue


class CheckService(BaseService):
    """Reports and repairs adjacency graph invariant violations."""

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @traced
    def check(self) -> ServiceResult:
        """Report integrity issues without modifying anything."""
        engine = self._registry.graph
        engine.invalidate()
        issues: list[dict[str, Any]] = []

        with trace_span("self_loops"):
            for unit_id in engine.self_loops():
                issues.append(
                    _issue(
                        CAT_SELF_LOOP,
                        SEVERITY_ERROR,
                        unit_id,
                        f"{unit_id} lists itself as adjacent",
                    )
                )
        with trace_span("asymmetric"):
            for unit_id, neighbor_id in engine.asymmetric():
                issues.append(
                    _issue(
                        CAT_ASYMMETRIC,
                        SEVERITY_ERROR,
                        unit_id,
                        f"{unit_id} lists {neighbor_id} but not the reverse",
                        neighbor_id,
                    )
                )
        with trace_span("dangling"):
            for unit_id, neighbor_id in engine.dangling():
                issues.append(
                    _issue(
                        CAT_DANGLING,
                        SEVERITY_WARNING,
                        unit_id,
                        f"{unit_id} lists unknown unit {neighbor_id}",
                        neighbor_id,
                    )
                )

        return ServiceResult(
            ok=True,
            op="check",
            data={
                "issues": issues,
                "count": len(issues),
                "units": sum(1 for _, d in engine.graph.nodes(data=True) if d.get("stored")),
            },
        )

    @traced
    def repair(self) -> ServiceResult:
        """Fix the issues :meth:`check` reports, honoring the ``[check]`` settings.

        Self-loops are always removed. Asymmetric edges gain their missing
        reverse; dangling references are dropped.
        """
        op = "repair"
        cfg = self._registry.settings.check
        engine = self._registry.graph
        engine.invalidate()

        drop: dict[str, set[str]] = defaultdict(set)
        add: dict[str, set[str]] = defaultdict(set)
        for unit_id in engine.self_loops():
            drop[unit_id].add(unit_id)
        if cfg.repair_dangling:
            for unit_id, neighbor_id in engine.dangling():
                drop[unit_id].add(neighbor_id)
        if cfg.repair_asymmetric:
            for unit_id, neighbor_id in engine.asymmetric():
                add[neighbor_id].add(unit_id)

        fixes: list[str] = []
        store = self._registry.units
        try:
            targets = store.get_many(set(drop) | set(add))
            for unit_id in sorted(targets):
                unit = targets[unit_id]
                updated = unit.model_copy(
                    update={"adjacent_ids": (unit.adjacent_ids - drop[unit_id]) | add[unit_id]}
                )
                store.put(updated)
                fixes.extend(f"Removed {n} from {unit_id}" for n in sorted(drop[unit_id]))
                fixes.extend(f"Added {n} to {unit_id}" for n in sorted(add[unit_id]))
        except StoreFailure as exc:
            return ServiceResult.failure(op, STORE_FAILURE, str(exc), detail={"fixes": fixes})
        finally:
            engine.invalidate()

        if fixes:
            logger.info("Repaired %d adjacency issue(s)", len(fixes))
        return ServiceResult(ok=True, op=op, data={"fixes": fixes, "count": len(fixes)})
