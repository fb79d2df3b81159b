from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import Field, field_validator

from ..core.timeutil import parse_iso
from .base import InputModel, StoredRecord


class BorrowStatus(str, Enum):
    BORROWED = "borrowed"
    RETURNED = "returned"
    OVERDUE = "overdue"


# Loans that still hold stock.
ACTIVE_STATUSES = (BorrowStatus.BORROWED, BorrowStatus.OVERDUE)


class BorrowRequest(InputModel):
    item_id: str = Field(min_length=1)
    borrower_name: str = Field(min_length=1)
    borrower_email: str = ""
    borrower_phone: Optional[str] = None
    quantity_borrowed: int = Field(gt=0)
    borrow_date: Optional[str] = None
    expected_return_date: str = Field(min_length=1)
    notes: Optional[str] = None

    @field_validator("borrow_date", "expected_return_date")
    @classmethod
    def validate_date(cls, value: Optional[str]) -> Optional[str]:
        if value:
            parse_iso(value)
        return value


class BorrowRecord(StoredRecord):
    id: str
    item_id: str
    item_name: str = ""
    borrower_name: str = ""
    borrower_email: str = ""
    borrower_phone: Optional[str] = None
    quantity_borrowed: int = 0
    borrow_date: str = ""
    expected_return_date: str = ""
    actual_return_date: Optional[str] = None
    status: BorrowStatus = BorrowStatus.BORROWED
    borrowed_by: str = ""
    returned_by: Optional[str] = None
    notes: Optional[str] = None
    created_at: str = Field(default="", alias="created_at")
    updated_at: str = Field(default="", alias="updated_at")

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES
