from __future__ import annotations

from typing import Optional

from pydantic import Field

from .base import StoredRecord


class InventorySettings(StoredRecord):
    """Global inventory preferences stored under the ``settings`` key."""

    low_stock_threshold: int = Field(default=5, ge=1)
    currency: str = "PHP"


class CurrentUser(StoredRecord):
    """Session snapshot written by the login layer; read-only here."""

    username: str
    role: str = "guest"
    logged_at: Optional[int] = None
