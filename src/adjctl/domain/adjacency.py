"""Adjacency diffing and per-neighbor outcomes.

Pure functions, no infrastructure dependencies. Consumed by the reconcile,
merge, and create services to decide which neighbor records to rewrite,
and to report what happened to each one.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

# Neighbor actions
ACTION_ADD = "add"  # insert this unit's ID into the neighbor
ACTION_REMOVE = "remove"  # delete this unit's ID from the neighbor
ACTION_REWIRE = "rewire"  # merge: point the neighbor at the primary unit
ACTION_DETACH = "detach"  # merge: drop the absorbed ID only

STATUS_APPLIED = "applied"
STATUS_SKIPPED = "skipped"

REASON_NOT_FOUND = "not_found"


@dataclass(frozen=True)
class AdjacencyDiff:
    """Symmetric difference between a stored and an incoming adjacency set."""

    removed: frozenset[str]
    added: frozenset[str]

    @property
    def changed(self) -> bool:
        return bool(self.removed or self.added)


@dataclass(frozen=True)
class NeighborOutcome:
    """What happened to one neighbor record during a graph operation."""

    neighbor_id: str
    action: str
    status: str = STATUS_APPLIED
    reason: str | None = None

    @property
    def skipped(self) -> bool:
        return self.status == STATUS_SKIPPED

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "neighbor_id": self.neighbor_id,
            "action": self.action,
            "status": self.status,
        }
        if self.reason is not None:
            result["reason"] = self.reason
        return result


def diff_adjacency(stored: Iterable[str], incoming: Iterable[str]) -> AdjacencyDiff:
    """Compare adjacency sets as sets (order and duplicates are irrelevant).

    Examples:
        >>> d = diff_adjacency(["B", "C"], ["C", "D"])
        >>> sorted(d.removed), sorted(d.added)
        (['B'], ['D'])
    """
    before = frozenset(stored)
    after = frozenset(incoming)
    return AdjacencyDiff(removed=before - after, added=after - before)


def skipped(neighbor_id: str, action: str, reason: str = REASON_NOT_FOUND) -> NeighborOutcome:
    """Build a skipped outcome for an unresolved neighbor."""
    return NeighborOutcome(
        neighbor_id=neighbor_id, action=action, status=STATUS_SKIPPED, reason=reason
    )


def skip_warnings(outcomes: Iterable[NeighborOutcome]) -> list[str]:
    """Human-readable warnings for every skipped outcome."""
    return [
        f"Skipped {o.action} on neighbor {o.neighbor_id}: {o.reason}"
        for o in outcomes
        if o.skipped
    ]
