"""Key-value store adapter.

Every collection the engine owns is a JSON document stored under a string key
(see ``core.keys``). This module is the only place that touches the
``kv_entries`` table: repositories read and write through ``KeyValueStore``.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core import keys
from ..core.errors import StorageUnavailable
from ..core.events import ChangeNotifier
from ..core.timeutil import to_iso, utcnow
from ..models.kv import KeyValueEntry

LOGGER = logging.getLogger(__name__)

PROBE_KEY = "__test__"

UNAVAILABLE_MESSAGE = "Storage is unavailable or full; nothing was saved."


class KeyValueStore:
    """String-keyed persistent store backed by one SQLAlchemy session."""

    def __init__(self, db: Session, events: ChangeNotifier | None = None) -> None:
        self.db = db
        self.events = events or ChangeNotifier()

    def get(self, key: str) -> str | None:
        try:
            entry = self.db.get(KeyValueEntry, key)
        except SQLAlchemyError:
            LOGGER.exception("storage.read_failed", extra={"extra_data": {"key": key}})
            self.db.rollback()
            return None
        return entry.value if entry else None

    def set(self, key: str, value: str) -> bool:
        """Write ``value`` under ``key``; failures are logged and reported as False."""

        try:
            entry = self.db.get(KeyValueEntry, key)
            stamp = to_iso(utcnow())
            if entry is None:
                self.db.add(KeyValueEntry(key=key, value=value, updated_at=stamp))
            else:
                entry.value = value
                entry.updated_at = stamp
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            LOGGER.warning("storage.write_failed", extra={"extra_data": {"key": key}}, exc_info=True)
            return False
        return True

    def remove(self, key: str) -> None:
        try:
            entry = self.db.get(KeyValueEntry, key)
            if entry is not None:
                self.db.delete(entry)
                self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            LOGGER.warning("storage.remove_failed", extra={"extra_data": {"key": key}}, exc_info=True)

    def is_available(self) -> bool:
        """Probe the store with a throwaway write."""

        if not self.set(PROBE_KEY, PROBE_KEY):
            return False
        self.remove(PROBE_KEY)
        return True

    def require_available(self) -> None:
        if not self.is_available():
            raise StorageUnavailable(UNAVAILABLE_MESSAGE)

    def clear_all(self) -> None:
        for key in keys.APPLICATION_KEYS:
            self.remove(key)

    def get_json(self, key: str, default: Any) -> Any:
        """Decode the JSON stored under ``key``; missing or corrupt data yields ``default``."""

        raw = self.get(key)
        if not raw:
            return default
        try:
            return json.loads(raw)
        except ValueError:
            LOGGER.error("storage.corrupt_value", extra={"extra_data": {"key": key}})
            return default

    def set_json(self, key: str, value: Any) -> bool:
        return self.set(key, json.dumps(value))

    def save_json(self, key: str, value: Any) -> None:
        """Like ``set_json`` but raises ``StorageUnavailable`` when the write fails."""

        if not self.set_json(key, value):
            raise StorageUnavailable(UNAVAILABLE_MESSAGE, details={"key": key})


def initialize_data(store: KeyValueStore) -> bool:
    """Seed empty catalog collections so readers always find a list."""

    if not store.is_available():
        LOGGER.warning("storage.unavailable")
        return False
    for key in (keys.CATEGORIES, keys.SUPPLIERS, keys.INVENTORY):
        if store.get(key) is None:
            store.set_json(key, [])
    return True
