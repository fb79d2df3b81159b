from __future__ import annotations

from enum import Enum

from .base import StoredRecord


class NotificationType(str, Enum):
    BORROW = "borrow"
    RETURN = "return"
    OVERDUE = "overdue"
    LOW_STOCK = "low_stock"


class NotificationRecord(StoredRecord):
    id: str
    type: NotificationType
    title: str = ""
    message: str = ""
    is_read: bool = False
    entity_id: str = ""
    entity_type: str = ""
    created_by: str = ""
    timestamp: str = ""
