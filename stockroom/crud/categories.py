"""Category CRUD; deletes never cascade to the items that reference them."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping

from ..core import keys
from ..core.errors import NotFound, reports_failures
from ..schemas.base import field_keyed
from ..schemas.catalog import Category, CategoryCreate
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


def list_categories(store: KeyValueStore) -> list[Category]:
    return load_collection(store, keys.CATEGORIES, Category)


def get_category(store: KeyValueStore, category_id: str) -> Category | None:
    return find_record(list_categories(store), category_id)


def get_category_name(store: KeyValueStore, category_id: str | None) -> str:
    category = get_category(store, category_id) if category_id else None
    return category.name if category else keys.FALLBACK_NAME


@reports_failures
def create_category(
    store: KeyValueStore,
    payload: Mapping[str, Any],
    *,
    actor: str,
    now: datetime | None = None,
) -> Category:
    store.require_available()
    data = CategoryCreate.model_validate(payload)
    category = Category(id=new_id(), **data.model_dump())
    categories = list_categories(store)
    categories.append(category)
    save_collection(store, keys.CATEGORIES, categories)
    record_history(
        store,
        action=HistoryAction.ADD,
        entity_type=EntityType.CATEGORY,
        entity_id=category.id,
        entity_name=category.name,
        details=f'Category "{category.name}" created',
        performed_by=actor,
        now=now,
    )
    return category


@reports_failures
def update_category(
    store: KeyValueStore,
    category_id: str,
    payload: Mapping[str, Any],
    *,
    actor: str,
    now: datetime | None = None,
) -> Category:
    store.require_available()
    categories = list_categories(store)
    current = find_record(categories, category_id)
    if current is None:
        raise NotFound("Category not found")
    merged = {**current.model_dump(exclude={"id"}), **field_keyed(CategoryCreate, payload)}
    data = CategoryCreate.model_validate(merged)
    category = Category(id=current.id, **data.model_dump())
    save_collection(store, keys.CATEGORIES, replace_record(categories, category))
    record_history(
        store,
        action=HistoryAction.UPDATE,
        entity_type=EntityType.CATEGORY,
        entity_id=category.id,
        entity_name=category.name,
        details=f'Category "{category.name}" updated',
        performed_by=actor,
        now=now,
    )
    return category


@reports_failures
def delete_category(
    store: KeyValueStore,
    category_id: str,
    *,
    actor: str,
    now: datetime | None = None,
) -> Category:
    store.require_available()
    categories = list_categories(store)
    category = find_record(categories, category_id)
    if category is None:
        raise NotFound("Category not found")
    save_collection(store, keys.CATEGORIES, without_record(categories, category_id))
    record_history(
        store,
        action=HistoryAction.DELETE,
        entity_type=EntityType.CATEGORY,
        entity_id=category.id,
        entity_name=category.name,
        details=f'Category "{category.name}" deleted',
        performed_by=actor,
        now=now,
    )
    return category
