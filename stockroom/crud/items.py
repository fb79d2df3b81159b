"""Item CRUD with write-time status and name snapshots.

``status``, ``categoryName`` and ``supplierName`` are copied onto the stored
item every time it is saved. They go stale when the threshold changes or a
category/supplier is renamed or deleted; ``list_items`` re-joins the names
at read time and ``refresh_item_snapshots`` rewrites the stored copies.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping

from ..core import keys
from ..core.errors import NotFound, reports_failures
from ..core.timeutil import resolve_now, to_iso
from ..schemas.base import field_keyed
from ..schemas.history import EntityType, HistoryAction
from ..schemas.item import Item, ItemCreate, ItemStatus
from ..schemas.settings import InventorySettings
from .categories import list_categories
from .collection import (
    find_record,
    load_collection,
    new_id,
    replace_record,
    save_collection,
    without_record,
)
from .history import record_history
from .settings import get_settings
from .storage import KeyValueStore
from .suppliers import list_suppliers


def derive_status(quantity: int, threshold: int) -> ItemStatus:
    """Map a quantity onto its stock band; ``quantity == threshold`` is still low."""

    if quantity <= 0:
        return ItemStatus.OUT_OF_STOCK
    if quantity <= threshold:
        return ItemStatus.LOW_STOCK
    return ItemStatus.IN_STOCK


class _NameLookup:
    """Category/supplier names keyed by id, loaded once per call."""

    def __init__(self, store: KeyValueStore) -> None:
        self.categories = {c.id: c.name for c in list_categories(store)}
        self.suppliers = {s.id: s.name for s in list_suppliers(store)}

    def category(self, category_id: str) -> str:
        return self.categories.get(category_id, keys.FALLBACK_NAME)

    def supplier(self, supplier_id: str) -> str:
        return self.suppliers.get(supplier_id, keys.FALLBACK_NAME)


def list_items(store: KeyValueStore, *, resolve_names: bool = True) -> list[Item]:
    """Return all items; with ``resolve_names`` the display names reflect current lookups."""

    items = load_collection(store, keys.INVENTORY, Item)
    if not resolve_names:
        return items
    names = _NameLookup(store)
    return [
        item.model_copy(
            update={
                "category_name": names.category(item.category_id),
                "supplier_name": names.supplier(item.supplier_id),
            }
        )
        for item in items
    ]


def get_item(store: KeyValueStore, item_id: str) -> Item | None:
    return find_record(load_collection(store, keys.INVENTORY, Item), item_id)


def _snapshot(
    item_id: str,
    data: ItemCreate,
    *,
    names: _NameLookup,
    settings: InventorySettings,
    created_at: str,
    updated_at: str,
) -> Item:
    return Item(
        id=item_id,
        **data.model_dump(),
        category_name=names.category(data.category_id),
        supplier_name=names.supplier(data.supplier_id),
        status=derive_status(data.quantity, settings.low_stock_threshold),
        created_at=created_at,
        updated_at=updated_at,
    )


@reports_failures
def create_item(
    store: KeyValueStore,
    payload: Mapping[str, Any],
    *,
    actor: str,
    settings: InventorySettings | None = None,
    now: datetime | None = None,
) -> Item:
    store.require_available()
    data = ItemCreate.model_validate(payload)
    settings = settings or get_settings(store)
    stamp = to_iso(resolve_now(now))
    item = _snapshot(
        new_id(),
        data,
        names=_NameLookup(store),
        settings=settings,
        created_at=stamp,
        updated_at=stamp,
    )
    items = load_collection(store, keys.INVENTORY, Item)
    items.append(item)
    save_collection(store, keys.INVENTORY, items)
    record_history(
        store,
        action=HistoryAction.ADD,
        entity_type=EntityType.ITEM,
        entity_id=item.id,
        entity_name=item.name,
        details=f"Added item with quantity: {item.quantity}",
        performed_by=actor,
        now=now,
    )
    return item


def save_item_changes(
    store: KeyValueStore,
    item_id: str,
    payload: Mapping[str, Any],
    *,
    actor: str,
    settings: InventorySettings | None = None,
    now: datetime | None = None,
    details: str = "Updated item details",
) -> Item:
    """Merge ``payload`` over the stored item, re-derive snapshots and save.

    Raises ``NotFound`` or ``ValidationError``; the lending engine calls this
    directly so its quantity changes share the item update path.
    """

    items = load_collection(store, keys.INVENTORY, Item)
    current = find_record(items, item_id)
    if current is None:
        raise NotFound("Item not found")
    editable = current.model_dump(include=set(ItemCreate.model_fields))
    data = ItemCreate.model_validate({**editable, **field_keyed(ItemCreate, payload)})
    settings = settings or get_settings(store)
    item = _snapshot(
        current.id,
        data,
        names=_NameLookup(store),
        settings=settings,
        created_at=current.created_at,
        updated_at=to_iso(resolve_now(now)),
    )
    save_collection(store, keys.INVENTORY, replace_record(items, item))
    record_history(
        store,
        action=HistoryAction.UPDATE,
        entity_type=EntityType.ITEM,
        entity_id=item.id,
        entity_name=item.name,
        details=details,
        performed_by=actor,
        now=now,
    )
    return item


@reports_failures
def update_item(
    store: KeyValueStore,
    item_id: str,
    payload: Mapping[str, Any],
    *,
    actor: str,
    settings: InventorySettings | None = None,
    now: datetime | None = None,
) -> Item:
    store.require_available()
    return save_item_changes(store, item_id, payload, actor=actor, settings=settings, now=now)


@reports_failures
def delete_item(
    store: KeyValueStore,
    item_id: str,
    *,
    actor: str,
    now: datetime | None = None,
) -> Item:
    store.require_available()
    items = load_collection(store, keys.INVENTORY, Item)
    item = find_record(items, item_id)
    if item is None:
        raise NotFound("Item not found")
    save_collection(store, keys.INVENTORY, without_record(items, item_id))
    record_history(
        store,
        action=HistoryAction.DELETE,
        entity_type=EntityType.ITEM,
        entity_id=item.id,
        entity_name=item.name,
        details="Deleted item",
        performed_by=actor,
        now=now,
    )
    return item


def refresh_item_snapshots(
    store: KeyValueStore,
    *,
    actor: str,
    settings: InventorySettings | None = None,
    now: datetime | None = None,
) -> list[Item]:
    """Rewrite stale status/name snapshots; returns the items that changed."""

    settings = settings or get_settings(store)
    names = _NameLookup(store)
    stamp = to_iso(resolve_now(now))
    items = load_collection(store, keys.INVENTORY, Item)
    changed: list[Item] = []
    refreshed: list[Item] = []
    for item in items:
        fresh = {
            "status": derive_status(item.quantity, settings.low_stock_threshold),
            "category_name": names.category(item.category_id),
            "supplier_name": names.supplier(item.supplier_id),
        }
        if all(getattr(item, field) == value for field, value in fresh.items()):
            refreshed.append(item)
            continue
        updated = item.model_copy(update={**fresh, "updated_at": stamp})
        refreshed.append(updated)
        changed.append(updated)
    if not changed:
        return []
    save_collection(store, keys.INVENTORY, refreshed)
    for item in changed:
        record_history(
            store,
            action=HistoryAction.UPDATE,
            entity_type=EntityType.ITEM,
            entity_id=item.id,
            entity_name=item.name,
            details="Refreshed stock status and display names",
            performed_by=actor,
            now=now,
        )
    return changed


@reports_failures
def resync_item_snapshots(
    store: KeyValueStore,
    *,
    actor: str,
    settings: InventorySettings | None = None,
    now: datetime | None = None,
) -> list[Item]:
    store.require_available()
    return refresh_item_snapshots(store, actor=actor, settings=settings, now=now)
