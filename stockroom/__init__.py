"""Top-level wiring for the Stockroom inventory engine.

``open_store`` brings together configuration, logging, the SQLAlchemy engine
and the key-value adapter so a caller (a UI layer, a script, a test) gets a
ready ``KeyValueStore`` in one call. Everything else is reached through the
``crud`` repositories and the ``services`` lifecycle modules, each taking the
store, the acting user and (optionally) the inventory settings explicitly.
"""

from __future__ import annotations

from .core.config import get_settings
from .core.logging import configure_logging
from .crud.storage import KeyValueStore, initialize_data
from .db.migrate import run_migrations
from .db.session import build_engine, build_session_factory

__all__ = ["KeyValueStore", "open_store"]


def open_store(db_url: str | None = None, *, configure_logs: bool = False) -> KeyValueStore:
    """Create the engine, apply migrations and return a seeded store."""

    settings = get_settings()
    if configure_logs:
        configure_logging(settings.LOG_LEVEL)
    engine = build_engine(db_url or settings.database_url)
    run_migrations(engine)
    session = build_session_factory(engine)()
    store = KeyValueStore(session)
    initialize_data(store)
    return store
