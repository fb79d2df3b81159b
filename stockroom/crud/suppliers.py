from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping

from ..core import keys
from ..core.errors import NotFound, reports_failures
from ..schemas.base import field_keyed
from ..schemas.catalog import Supplier, SupplierCreate
from ..schemas.history import EntityType, HistoryAction
from .collection import (
    find_record,
    load_collection,
    new_id,
    replace_record,
    save_collection,
    without_record,
)
from .history import record_history
from .storage import KeyValueStore


def list_suppliers(store: KeyValueStore) -> list[Supplier]:
    return load_collection(store, keys.SUPPLIERS, Supplier)


def get_supplier(store: KeyValueStore, supplier_id: str) -> Supplier | None:
    return find_record(list_suppliers(store), supplier_id)


def get_supplier_name(store: KeyValueStore, supplier_id: str | None) -> str:
    supplier = get_supplier(store, supplier_id) if supplier_id else None
    return supplier.name if supplier else keys.FALLBACK_NAME


@reports_failures
def create_supplier(
    store: KeyValueStore,
    payload: Mapping[str, Any],
    *,
    actor: str,
    now: datetime | None = None,
) -> Supplier:
    store.require_available()
    data = SupplierCreate.model_validate(payload)
    supplier = Supplier(id=new_id(), **data.model_dump())
    suppliers = list_suppliers(store)
    suppliers.append(supplier)
    save_collection(store, keys.SUPPLIERS, suppliers)
    record_history(
        store,
        action=HistoryAction.ADD,
        entity_type=EntityType.SUPPLIER,
        entity_id=supplier.id,
        entity_name=supplier.name,
        details=f'Supplier "{supplier.name}" created',
        performed_by=actor,
        now=now,
    )
    return supplier


@reports_failures
def update_supplier(
    store: KeyValueStore,
    supplier_id: str,
    payload: Mapping[str, Any],
    *,
    actor: str,
    now: datetime | None = None,
) -> Supplier:
    store.require_available()
    suppliers = list_suppliers(store)
    current = find_record(suppliers, supplier_id)
    if current is None:
        raise NotFound("Supplier not found")
    merged = {**current.model_dump(exclude={"id"}), **field_keyed(SupplierCreate, payload)}
    data = SupplierCreate.model_validate(merged)
    supplier = Supplier(id=current.id, **data.model_dump())
    save_collection(store, keys.SUPPLIERS, replace_record(suppliers, supplier))
    record_history(
        store,
        action=HistoryAction.UPDATE,
        entity_type=EntityType.SUPPLIER,
        entity_id=supplier.id,
        entity_name=supplier.name,
        details=f'Supplier "{supplier.name}" updated',
        performed_by=actor,
        now=now,
    )
    return supplier


@reports_failures
def delete_supplier(
    store: KeyValueStore,
    supplier_id: str,
    *,
    actor: str,
    now: datetime | None = None,
) -> Supplier:
    store.require_available()
    suppliers = list_suppliers(store)
    supplier = find_record(suppliers, supplier_id)
    if supplier is None:
        raise NotFound("Supplier not found")
    save_collection(store, keys.SUPPLIERS, without_record(suppliers, supplier_id))
    record_history(
        store,
        action=HistoryAction.DELETE,
        entity_type=EntityType.SUPPLIER,
        entity_id=supplier.id,
        entity_name=supplier.name,
        details=f'Supplier "{supplier.name}" deleted',
        performed_by=actor,
        now=now,
    )
    return supplier
