"""Borrow/return lifecycle for equipment loans.

STATE MACHINE (per borrow record):

    borrowed -> overdue -> returned
    borrowed ----------->  returned

``returned`` is terminal. The move to ``overdue`` belongs to the sweep in
``services.overdue``; this module only opens and closes loans.

Stock bookkeeping is symmetric: opening a loan takes ``quantityBorrowed``
units off the item and closing it puts the same number back, both through
the item repository so the stock status is re-derived and an item update is
logged alongside the borrow/return entry.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Mapping

from ..core import keys
from ..core.errors import (
    AlreadyReturned,
    InsufficientStock,
    NotAuthorized,
    NotFound,
    StorageUnavailable,
    reports_failures,
)
from ..core.timeutil import resolve_now, to_iso
from ..crud.collection import find_record, load_collection, new_id, replace_record, save_collection
from ..crud.history import record_history
from ..crud.items import derive_status, get_item, save_item_changes
from ..crud.notifications import record_notification
from ..crud.settings import get_settings
from ..crud.storage import KeyValueStore
from ..schemas.borrow import BorrowRecord, BorrowRequest, BorrowStatus
from ..schemas.history import EntityType, HistoryAction
from ..schemas.item import STATUS_SEVERITY, Item, ItemStatus
from ..schemas.notification import NotificationType
from ..schemas.settings import InventorySettings

LOGGER = logging.getLogger(__name__)


def list_borrows(store: KeyValueStore) -> list[BorrowRecord]:
    return load_collection(store, keys.BORROWS, BorrowRecord)


def get_borrow(store: KeyValueStore, borrow_id: str) -> BorrowRecord | None:
    return find_record(list_borrows(store), borrow_id)


def list_active_borrows(store: KeyValueStore) -> list[BorrowRecord]:
    return [borrow for borrow in list_borrows(store) if borrow.is_active]


def list_overdue_borrows(store: KeyValueStore) -> list[BorrowRecord]:
    return [borrow for borrow in list_borrows(store) if borrow.status == BorrowStatus.OVERDUE]


def borrows_for_item(store: KeyValueStore, item_id: str) -> list[BorrowRecord]:
    return [borrow for borrow in list_borrows(store) if borrow.item_id == item_id]


def _notify_if_stock_dropped(
    store: KeyValueStore,
    previous: ItemStatus,
    after: Item,
    *,
    actor: str,
    now: datetime,
) -> None:
    if STATUS_SEVERITY[after.status] <= STATUS_SEVERITY[previous]:
        return
    record_notification(
        store,
        type=NotificationType.LOW_STOCK,
        title="Low Stock Alert",
        message=f"{after.name} is {after.status.value.lower()} ({after.quantity} units left)",
        entity_id=after.id,
        entity_type=EntityType.ITEM.value,
        created_by=actor,
        now=now,
    )


@reports_failures
def create_borrow(
    store: KeyValueStore,
    request: Mapping[str, Any],
    *,
    actor: str,
    settings: InventorySettings | None = None,
    now: datetime | None = None,
) -> BorrowRecord:
    """Open a loan against an item.

    Rejected with nothing written when a required field is missing, the item
    does not exist, or fewer units are in stock than requested.
    """

    store.require_available()
    data = BorrowRequest.model_validate(request)
    item = get_item(store, data.item_id)
    if item is None:
        raise NotFound("Selected item not found", details={"item_id": data.item_id})
    if data.quantity_borrowed > item.quantity:
        raise InsufficientStock(
            "Not enough items in stock",
            details={"available": item.quantity, "requested": data.quantity_borrowed},
        )

    now = resolve_now(now)
    stamp = to_iso(now)
    settings = settings or get_settings(store)
    borrow = BorrowRecord(
        id=new_id(),
        item_id=item.id,
        item_name=item.name,
        borrower_name=data.borrower_name,
        borrower_email=data.borrower_email,
        borrower_phone=data.borrower_phone,
        quantity_borrowed=data.quantity_borrowed,
        borrow_date=data.borrow_date or stamp,
        expected_return_date=data.expected_return_date,
        status=BorrowStatus.BORROWED,
        borrowed_by=actor,
        notes=data.notes,
        created_at=stamp,
        updated_at=stamp,
    )
    borrows = list_borrows(store)
    save_collection(store, keys.BORROWS, [*borrows, borrow])

    try:
        updated = save_item_changes(
            store,
            item.id,
            {"quantity": item.quantity - borrow.quantity_borrowed},
            actor=actor,
            settings=settings,
            now=now,
        )
    except StorageUnavailable:
        stored = get_item(store, item.id)
        if stored is not None and stored.quantity == item.quantity:
            # Stock unchanged; drop the loan again.
            save_collection(store, keys.BORROWS, borrows)
            LOGGER.warning(
                "borrow.rolled_back",
                extra={"extra_data": {"borrow_id": borrow.id, "item_id": item.id}},
            )
        raise
    record_history(
        store,
        action=HistoryAction.BORROW,
        entity_type=EntityType.ITEM,
        entity_id=item.id,
        entity_name=item.name,
        details=f"Borrowed {borrow.quantity_borrowed} units by {borrow.borrower_name}",
        performed_by=actor,
        now=now,
    )
    record_notification(
        store,
        type=NotificationType.BORROW,
        title="Item Borrowed",
        message=f"{borrow.borrower_name} borrowed {borrow.quantity_borrowed} units of {item.name}",
        entity_id=borrow.id,
        entity_type=EntityType.BORROW.value,
        created_by=actor,
        now=now,
    )
    _notify_if_stock_dropped(
        store,
        derive_status(item.quantity, settings.low_stock_threshold),
        updated,
        actor=actor,
        now=now,
    )
    LOGGER.info(
        "borrow.created",
        extra={"extra_data": {"borrow_id": borrow.id, "item_id": item.id, "actor": actor}},
    )
    return borrow


@reports_failures
def return_borrow(
    store: KeyValueStore,
    borrow_id: str,
    *,
    actor: str,
    notes: str | None = None,
    settings: InventorySettings | None = None,
    now: datetime | None = None,
) -> BorrowRecord:
    """Close a loan and put its units back on the shelf.

    Only the user recorded as ``borrowedBy`` may close it. If the item was
    deleted in the meantime the loan still closes but no stock is restored.
    """

    store.require_available()
    borrows = list_borrows(store)
    borrow = find_record(borrows, borrow_id)
    if borrow is None:
        raise NotFound("Borrow record not found")
    if borrow.status == BorrowStatus.RETURNED:
        raise AlreadyReturned("Item has already been returned")
    if borrow.borrowed_by != actor:
        raise NotAuthorized(
            "Only the person who borrowed this item can return it",
            details={"borrowed_by": borrow.borrowed_by},
        )

    now = resolve_now(now)
    stamp = to_iso(now)
    returned = borrow.model_copy(
        update={
            "status": BorrowStatus.RETURNED,
            "actual_return_date": stamp,
            "returned_by": actor,
            "notes": notes or borrow.notes,
            "updated_at": stamp,
        }
    )
    save_collection(store, keys.BORROWS, replace_record(borrows, returned))

    item = get_item(store, borrow.item_id)
    item_name = item.name if item else borrow.item_name
    if item is not None:
        save_item_changes(
            store,
            item.id,
            {"quantity": item.quantity + borrow.quantity_borrowed},
            actor=actor,
            settings=settings,
            now=now,
        )
    else:
        LOGGER.warning(
            "borrow.item_missing",
            extra={"extra_data": {"borrow_id": borrow.id, "item_id": borrow.item_id}},
        )
    record_history(
        store,
        action=HistoryAction.RETURN,
        entity_type=EntityType.ITEM,
        entity_id=borrow.item_id,
        entity_name=item_name,
        details=f"Returned {borrow.quantity_borrowed} units by {borrow.borrower_name}",
        performed_by=actor,
        now=now,
    )
    record_notification(
        store,
        type=NotificationType.RETURN,
        title="Item Returned",
        message=f"{borrow.borrower_name} returned {borrow.quantity_borrowed} units of {item_name}",
        entity_id=borrow.id,
        entity_type=EntityType.BORROW.value,
        created_by=actor,
        now=now,
    )
    LOGGER.info(
        "borrow.returned",
        extra={"extra_data": {"borrow_id": borrow.id, "item_id": borrow.item_id, "actor": actor}},
    )
    return returned
