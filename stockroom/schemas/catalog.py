"""Categories and suppliers: the two lookup collections items point at."""

from __future__ import annotations

from typing import Optional

from pydantic import Field

from .base import InputModel, StoredRecord


class CategoryCreate(InputModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None


class Category(StoredRecord):
    id: str
    name: str = ""
    description: Optional[str] = None


class SupplierCreate(InputModel):
    name: str = Field(min_length=1)
    contact: str = ""
    email: str = ""
    phone: Optional[str] = None


class Supplier(StoredRecord):
    id: str
    name: str = ""
    contact: str = ""
    email: str = ""
    phone: Optional[str] = None
