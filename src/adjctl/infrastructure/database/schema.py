"""SQLAlchemy Core table definitions for the adjctl database.

Set-valued unit fields live in child tables keyed by ``unit_id``.
``unit_adjacency.neighbor_id`` is deliberately not a foreign key: a
dangling neighbor reference is representable and is repaired by later
edits or by ``check --fix``.
"""

from __future__ import annotations

from sqlalchemy import (
    Column,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
    UniqueConstraint,
)

metadata = MetaData()

units = Table(
    "units",
    metadata,
    Column("id", Text, primary_key=True),
    Column("group_id", Text, nullable=False),
    Column("canonical_name", Text),
    Column("ghost", Integer, default=0, server_default="0"),
    Column("multiple_border", Integer, default=0, server_default="0"),
    Column("coordinates", Text),
    Column("created", Text, nullable=False),
    Column("modified", Text, nullable=False),
)

unit_adjacency = Table(
    "unit_adjacency",
    metadata,
    Column("unit_id", Text, ForeignKey("units.id"), nullable=False),
    Column("neighbor_id", Text, nullable=False),
    UniqueConstraint("unit_id", "neighbor_id"),
)

unit_enclosing = Table(
    "unit_enclosing",
    metadata,
    Column("unit_id", Text, ForeignKey("units.id"), nullable=False),
    Column("enclosing_id", Text, nullable=False),
    UniqueConstraint("unit_id", "enclosing_id"),
)

unit_elections = Table(
    "unit_elections",
    metadata,
    Column("unit_id", Text, ForeignKey("units.id"), nullable=False),
    Column("election", Text, nullable=False),
    Column("votes", Integer, nullable=False, default=0, server_default="0"),
    UniqueConstraint("unit_id", "election"),
)

groups = Table(
    "groups",
    metadata,
    Column("id", Text, primary_key=True),
    Column("parent_id", Text),
    Column("created", Text, nullable=False),
    Column("modified", Text, nullable=False),
)

group_totals = Table(
    "group_totals",
    metadata,
    Column("group_id", Text, ForeignKey("groups.id"), nullable=False),
    Column("category", Text, nullable=False),
    Column("count", Integer, nullable=False, default=0, server_default="0"),
    UniqueConstraint("group_id", "category"),
)

# Every child table keyed by unit_id, in deletion order.
UNIT_CHILD_TABLES = (unit_adjacency, unit_enclosing, unit_elections)

# ---------------------------------------------------------------------------
# Indexes for frequently filtered columns
# ---------------------------------------------------------------------------

Index("ix_units_group", units.c.group_id)
Index("ix_unit_adjacency_unit", unit_adjacency.c.unit_id)
Index("ix_unit_adjacency_neighbor", unit_adjacency.c.neighbor_id)
Index("ix_unit_enclosing_unit", unit_enclosing.c.unit_id)
