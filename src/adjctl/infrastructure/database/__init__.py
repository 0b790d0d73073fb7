"""SQLite database engine and schema via SQLAlchemy Core."""

from adjctl.infrastructure.database.engine import create_db_engine, init_database
from adjctl.infrastructure.database.schema import (
    group_totals,
    groups,
    metadata,
    unit_adjacency,
    unit_elections,
    unit_enclosing,
    units,
)

__all__ = [
    "create_db_engine",
    "group_totals",
    "groups",
    "init_database",
    "metadata",
    "unit_adjacency",
    "unit_elections",
    "unit_enclosing",
    "units",
]
