from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import Field

from .base import InputModel, StoredRecord


class ItemStatus(str, Enum):
    IN_STOCK = "In Stock"
    LOW_STOCK = "Low Stock"
    OUT_OF_STOCK = "Out of Stock"


# Worse bands sort higher; used to detect a drop into low stock.
STATUS_SEVERITY = {
    ItemStatus.IN_STOCK: 0,
    ItemStatus.LOW_STOCK: 1,
    ItemStatus.OUT_OF_STOCK: 2,
}


class ItemCreate(InputModel):
    name: str = Field(min_length=1)
    category_id: str = ""
    quantity: int = Field(ge=0)
    location: str = ""
    supplier_id: str = ""
    purchase_date: str = ""
    price: float = Field(default=0, ge=0)


class Item(StoredRecord):
    """An inventory item.

    ``category_name``/``supplier_name`` are snapshots taken when the item was
    last saved and ``status`` reflects the threshold in force at that moment.
    """

    id: str
    name: str = ""
    category_id: str = ""
    category_name: Optional[str] = None
    quantity: int = 0
    location: str = ""
    supplier_id: str = ""
    supplier_name: Optional[str] = None
    purchase_date: str = ""
    price: float = 0
    status: ItemStatus = ItemStatus.IN_STOCK
    created_at: str = Field(default="", alias="created_at")
    updated_at: str = Field(default="", alias="updated_at")
