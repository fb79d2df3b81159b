"""Whole-store export/import and reset."""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict

from ..core import keys
from ..core.errors import ValidationFailed, reports_failures
from ..core.events import NOTIFICATIONS_CHANGED
from ..crud.collection import load_collection
from ..crud.history import list_history
from ..crud.items import list_items
from ..crud.notifications import list_notifications
from ..crud.settings import get_settings
from ..crud.storage import KeyValueStore
from ..schemas.borrow import BorrowRecord
from ..schemas.catalog import Category, Supplier
from ..schemas.history import HistoryRecord
from ..schemas.item import Item
from ..schemas.notification import NotificationRecord
from ..schemas.settings import InventorySettings

LOGGER = logging.getLogger(__name__)


class BackupDocument(BaseModel):
    """Every collection plus settings.

    ``notifications`` may be absent: documents exported before notifications
    were part of the backup carry only the other six fields.
    """

    model_config = ConfigDict(extra="ignore")

    inventory: list[Item]
    categories: list[Category]
    suppliers: list[Supplier]
    borrows: list[BorrowRecord]
    history: list[HistoryRecord]
    notifications: Optional[list[NotificationRecord]] = None
    settings: InventorySettings


# Document field -> storage key.
DOCUMENT_KEYS = {
    "inventory": keys.INVENTORY,
    "categories": keys.CATEGORIES,
    "suppliers": keys.SUPPLIERS,
    "borrows": keys.BORROWS,
    "history": keys.HISTORY,
    "notifications": keys.NOTIFICATIONS,
    "settings": keys.SETTINGS,
}


def export_data(store: KeyValueStore) -> dict[str, Any]:
    """Snapshot every collection as stored (name snapshots are not re-joined)."""

    collections = {
        "inventory": list_items(store, resolve_names=False),
        "categories": load_collection(store, keys.CATEGORIES, Category),
        "suppliers": load_collection(store, keys.SUPPLIERS, Supplier),
        "borrows": load_collection(store, keys.BORROWS, BorrowRecord),
        "history": list_history(store),
        "notifications": list_notifications(store),
    }
    document: dict[str, Any] = {
        field: [record.to_storage() for record in records]
        for field, records in collections.items()
    }
    document["settings"] = get_settings(store).to_storage()
    return document


def export_json(store: KeyValueStore) -> str:
    return json.dumps(export_data(store), indent=2, ensure_ascii=False)


@reports_failures
def import_data(store: KeyValueStore, document: str | Mapping[str, Any]) -> dict[str, int]:
    """Replace every collection with the contents of ``document``.

    The whole document is validated before the first key is written, so an
    invalid file leaves the store untouched. A missing ``notifications`` field
    keeps the stored notifications. Returns record counts per imported field.
    """

    store.require_available()
    if isinstance(document, str):
        try:
            document = json.loads(document)
        except ValueError as exc:
            raise ValidationFailed("Invalid file format: not a JSON document") from exc
    if not isinstance(document, Mapping):
        raise ValidationFailed("Invalid file format: expected a JSON object")

    parsed = BackupDocument.model_validate(document)
    counts: dict[str, int] = {}
    for field, key in DOCUMENT_KEYS.items():
        value = getattr(parsed, field)
        if value is None:
            continue
        if isinstance(value, list):
            store.save_json(key, [record.to_storage() for record in value])
            counts[field] = len(value)
        else:
            store.save_json(key, value.to_storage())
    store.events.publish(NOTIFICATIONS_CHANGED)
    LOGGER.info("backup.imported", extra={"extra_data": counts})
    return counts


@reports_failures
def clear_all_data(store: KeyValueStore) -> None:
    store.require_available()
    store.clear_all()
    store.events.publish(NOTIFICATIONS_CHANGED)
    LOGGER.info("backup.cleared")
