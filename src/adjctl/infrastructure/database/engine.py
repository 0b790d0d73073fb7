"""Database engine setup for SQLite with WAL mode.

SQLite is the persistence layer behind the store adapters. The DB is
stored at ``{root}/.adjctl/{filename}`` (``adjctl.db`` by default).

SQLAlchemy Core only. Every adapter call is a short read or a single
`engine.begin()` write; there are no sessions.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

from adjctl.infrastructure.database.schema import metadata

DEFAULT_DB_FILENAME = "adjctl.db"


def create_db_engine(db_path: Path) -> Engine:
    """Create a SQLite engine with WAL mode and foreign keys enabled."""
    engine = create_engine(f"sqlite:///{db_path}", echo=False)

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn: Any, _: Any) -> None:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


def init_database(root: Path, filename: str = DEFAULT_DB_FILENAME) -> Engine:
    """Initialize the adjctl database at ``{root}/.adjctl/{filename}``.

    Creates the ``.adjctl/`` directory and all tables from
    :data:`schema.metadata`.

    Idempotent; safe to call on an existing database.

    Returns the engine ready for use.
    """
    adjctl_dir = root / ".adjctl"
    adjctl_dir.mkdir(parents=True, exist_ok=True)

    engine = create_db_engine(adjctl_dir / filename)
    metadata.create_all(engine)
    return engine
