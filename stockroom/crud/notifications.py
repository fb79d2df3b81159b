"""Notification list: newest first, read/unread tracking, change broadcast."""

from __future__ import annotations

from datetime import datetime

from ..core import keys
from ..core.config import get_settings
from ..core.errors import NotFound, reports_failures
from ..core.events import NOTIFICATIONS_CHANGED
from ..core.timeutil import resolve_now, to_iso
from ..schemas.notification import NotificationRecord, NotificationType
from .collection import find_record, load_collection, new_id, save_collection, without_record
from .storage import KeyValueStore


def list_notifications(store: KeyValueStore) -> list[NotificationRecord]:
    return load_collection(store, keys.NOTIFICATIONS, NotificationRecord)


def _save(store: KeyValueStore, notifications: list[NotificationRecord]) -> None:
    save_collection(store, keys.NOTIFICATIONS, notifications)
    store.events.publish(NOTIFICATIONS_CHANGED)


def record_notification(
    store: KeyValueStore,
    *,
    type: NotificationType,
    title: str,
    message: str,
    entity_id: str,
    entity_type: str,
    created_by: str,
    now: datetime | None = None,
) -> NotificationRecord:
    notification = NotificationRecord(
        id=new_id(),
        type=type,
        title=title,
        message=message,
        is_read=False,
        entity_id=entity_id,
        entity_type=entity_type,
        created_by=created_by,
        timestamp=to_iso(resolve_now(now)),
    )
    notifications = list_notifications(store)
    notifications.insert(0, notification)
    _save(store, notifications)
    return notification


@reports_failures
def add_notification(
    store: KeyValueStore,
    *,
    type: NotificationType,
    title: str,
    message: str,
    entity_id: str,
    entity_type: str,
    created_by: str,
    now: datetime | None = None,
) -> NotificationRecord:
    store.require_available()
    return record_notification(
        store,
        type=type,
        title=title,
        message=message,
        entity_id=entity_id,
        entity_type=entity_type,
        created_by=created_by,
        now=now,
    )


def has_notification(store: KeyValueStore, type: NotificationType, entity_id: str) -> bool:
    return any(
        n.type == type and n.entity_id == entity_id for n in list_notifications(store)
    )


@reports_failures
def mark_notification_read(store: KeyValueStore, notification_id: str) -> NotificationRecord:
    store.require_available()
    notifications = list_notifications(store)
    notification = find_record(notifications, notification_id)
    if notification is None:
        raise NotFound("Notification not found")
    notification.is_read = True
    _save(store, notifications)
    return notification


@reports_failures
def mark_all_notifications_read(store: KeyValueStore) -> int:
    """Flag everything as read; returns how many were unread before."""

    store.require_available()
    notifications = list_notifications(store)
    changed = sum(1 for n in notifications if not n.is_read)
    for notification in notifications:
        notification.is_read = True
    _save(store, notifications)
    return changed


@reports_failures
def delete_notification(store: KeyValueStore, notification_id: str) -> NotificationRecord:
    store.require_available()
    notifications = list_notifications(store)
    notification = find_record(notifications, notification_id)
    if notification is None:
        raise NotFound("Notification not found")
    _save(store, without_record(notifications, notification_id))
    return notification


def unread_count(store: KeyValueStore) -> int:
    return sum(1 for n in list_notifications(store) if not n.is_read)


def recent_notifications(store: KeyValueStore, limit: int | None = None) -> list[NotificationRecord]:
    if limit is None:
        limit = get_settings().RECENT_NOTIFICATIONS_LIMIT
    return list_notifications(store)[:max(limit, 0)]
