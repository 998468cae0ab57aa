"""
auth/schema.py -- Engine construction and Alembic schema evolution for auth tables.

The users / roles / user_roles tables are owned by the Alembic revisions in
auth/migrations/versions/. Nothing calls metadata.create_all(): the store
runs upgrade_schema() on startup so every revision, including the
terms_accepted_version column, is applied before any query touches it.

Alembic is driven programmatically on a connection we already hold
(config.attributes["connection"]) rather than through alembic.ini. That
lets tests and the store reuse their own engine, including named
shared-memory SQLite URIs that a second engine would not see.

A failing revision raises out of upgrade_schema()/downgrade_schema(). The
surrounding engine.begin() block rolls the transaction back; there is no
partial-success state to recover from here.

Layer rule: no imports from api/ or web/.
"""

from __future__ import annotations

import logging
from pathlib import Path

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from sqlalchemy import create_engine, event, inspect
from sqlalchemy.engine import Engine

logger = logging.getLogger("edonis.db")

MIGRATIONS_DIR = Path(__file__).parent / "migrations"


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def create_db_engine(db_url: str) -> Engine:
    """Create an engine with the SQLite tweaks the store relies on."""
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    return engine


# ---------------------------------------------------------------------------
# Alembic
# ---------------------------------------------------------------------------


def _alembic_config(connection) -> Config:
    cfg = Config()
    cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    cfg.attributes["connection"] = connection
    return cfg


def upgrade_schema(engine: Engine, revision: str = "head") -> None:
    """Apply every pending revision up to and including `revision`."""
    with engine.begin() as conn:
        command.upgrade(_alembic_config(conn), revision)
    logger.info("Schema upgraded to %s", revision)


def downgrade_schema(engine: Engine, revision: str) -> None:
    """Revert revisions down to `revision` ("base" reverts everything)."""
    with engine.begin() as conn:
        command.downgrade(_alembic_config(conn), revision)
    logger.info("Schema downgraded to %s", revision)


def current_revision(engine: Engine) -> str | None:
    """Return the revision stamped in alembic_version, or None on an empty DB."""
    with engine.connect() as conn:
        return MigrationContext.configure(conn).get_current_revision()


def column_names(engine: Engine, table: str) -> set[str]:
    return {col["name"] for col in inspect(engine).get_columns(table)}
