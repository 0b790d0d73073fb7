"""Unit identifier generation.

INVARIANT: IDs are permanent. Once assigned, a unit's ID never changes;
a merge removes the absorbed ID rather than renaming it.
"""

from __future__ import annotations

import uuid


def generate_unit_id() -> str:
    """Return a random UUID v4 string for a unit created without an ID."""
    return str(uuid.uuid4())


def is_blank(unit_id: str | None) -> bool:
    """True if *unit_id* is missing or whitespace only."""
    return unit_id is None or not unit_id.strip()
