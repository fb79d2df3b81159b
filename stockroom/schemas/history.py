from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from .base import StoredRecord


class HistoryAction(str, Enum):
    ADD = "add"
    UPDATE = "update"
    DELETE = "delete"
    BORROW = "borrow"
    RETURN = "return"


class EntityType(str, Enum):
    ITEM = "item"
    CATEGORY = "category"
    SUPPLIER = "supplier"
    BORROW = "borrow"


class HistoryRecord(StoredRecord):
    id: str
    action: HistoryAction
    entity_type: EntityType
    entity_id: str
    entity_name: str = ""
    details: str = ""
    performed_by: str = ""
    timestamp: str = ""


class HistoryFilter(BaseModel):
    """Criteria for ``filter_history``; unset fields match everything."""

    action: Optional[HistoryAction] = None
    entity_type: Optional[EntityType] = None
    performed_by: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    search: Optional[str] = None
