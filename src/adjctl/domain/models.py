"""Unit and Group records — the explicit data model of the adjacency graph.

Relations are identifier-based: a unit names its neighbors, enclosing units,
and owning group by ID. Services resolve every relation with an explicit
store lookup, never by following object references.

Models are frozen. Edits produce new instances via ``model_copy(update=...)``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

from adjctl.domain.demographics import validate_counts

# Fields that instruct the engine for one operation and are never persisted.
TRANSIENT_FIELDS: frozenset[str] = frozenset(
    {"recompute_flag", "demographic_snapshot", "parent_id"}
)


class Unit(BaseModel):
    """A node in the adjacency graph (an administrative subdivision).

    Attributes:
        id: Stable identifier. ``None`` only before first insertion.
        group_id: Owning group. Immutable except through a merge.
        adjacent_ids: Units this unit borders. Kept symmetric by reconciliation.
        enclosing_ids: Units that geometrically contain this one (informational).
        parent_id: Transient. Parent grouping used to seed a missing group.
        recompute_flag: Transient. Fold ``demographic_snapshot`` into the group now.
        demographic_snapshot: Transient. Named population counts for propagation.
    """

    model_config = {"frozen": True}

    id: str | None = None
    group_id: str
    adjacent_ids: frozenset[str] = frozenset()
    enclosing_ids: frozenset[str] = frozenset()
    canonical_name: str | None = None
    ghost: bool = False
    multiple_border: bool = False
    coordinates: str | None = None
    election_data: dict[str, int] = Field(default_factory=dict)

    # --- transient ---
    parent_id: str | None = None
    recompute_flag: bool = False
    demographic_snapshot: dict[str, int] | None = None

    @field_validator("demographic_snapshot")
    @classmethod
    def _check_snapshot(cls, value: dict[str, int] | None) -> dict[str, int] | None:
        if value is None:
            return None
        return validate_counts(value)

    @field_validator("election_data")
    @classmethod
    def _check_election_data(cls, value: dict[str, int]) -> dict[str, int]:
        for name, votes in value.items():
            if votes < 0:
                msg = f"Election count for {name!r} must be non-negative"
                raise ValueError(msg)
        return value

    def with_neighbor(self, neighbor_id: str) -> Unit:
        """Return a copy bordering *neighbor_id* (idempotent)."""
        if neighbor_id in self.adjacent_ids:
            return self
        return self.model_copy(update={"adjacent_ids": self.adjacent_ids | {neighbor_id}})

    def without_neighbor(self, neighbor_id: str) -> Unit:
        """Return a copy no longer bordering *neighbor_id* (idempotent)."""
        if neighbor_id not in self.adjacent_ids:
            return self
        return self.model_copy(update={"adjacent_ids": self.adjacent_ids - {neighbor_id}})

    def persistent(self) -> Unit:
        """Return a copy with the transient instruction fields cleared."""
        return self.model_copy(
            update={"parent_id": None, "recompute_flag": False, "demographic_snapshot": None}
        )

    def to_payload(self) -> dict[str, Any]:
        """JSON-friendly dict with ID sets rendered as sorted lists."""
        data = self.model_dump(mode="json", exclude=set(TRANSIENT_FIELDS))
        data["adjacent_ids"] = sorted(self.adjacent_ids)
        data["enclosing_ids"] = sorted(self.enclosing_ids)
        return data


class Group(BaseModel):
    """An aggregate owner of units with rolled-up demographic totals."""

    model_config = {"frozen": True}

    id: str
    parent_id: str | None = None
    demographic_totals: dict[str, int] = Field(default_factory=dict)

    @field_validator("demographic_totals")
    @classmethod
    def _check_totals(cls, value: dict[str, int]) -> dict[str, int]:
        return validate_counts(value)

    def to_payload(self) -> dict[str, Any]:
        """JSON-friendly dict."""
        return self.model_dump(mode="json")
