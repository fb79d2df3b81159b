"""Idempotent schema helpers for the key-value table."""

from __future__ import annotations

import logging

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine

from .session import Base

LOGGER = logging.getLogger(__name__)


def _column_names(engine: Engine, table: str) -> set[str]:
    """Return the names of the columns currently present on ``table``."""

    return {column["name"] for column in inspect(engine).get_columns(table)}


def _add_column(engine: Engine, table: str, col_def: str) -> None:
    """ALTER TABLE ADD COLUMN helper."""
    with engine.begin() as conn:
        conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {col_def}"))


def run_migrations(engine: Engine) -> None:
    """Create missing tables and backfill columns added after the first release."""

    # Registers KeyValueEntry with the metadata before create_all runs.
    from ..models import kv as _kv  # noqa: F401

    Base.metadata.create_all(bind=engine)

    # Stores created before change tracking lack ``updated_at``.
    if "updated_at" not in _column_names(engine, "kv_entries"):
        LOGGER.info("migration.add_column", extra={"extra_data": {"table": "kv_entries", "column": "updated_at"}})
        _add_column(engine, "kv_entries", "updated_at TEXT")
