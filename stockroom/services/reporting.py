from __future__ import annotations

from collections import defaultdict
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict

from ..crud.items import list_items
from ..crud.settings import currency_symbol, get_settings
from ..crud.storage import KeyValueStore
from ..schemas.borrow import BorrowStatus
from ..schemas.item import ItemStatus
from ..schemas.settings import InventorySettings
from .lending import list_borrows

TWOPLACES = Decimal("0.01")


def _to_decimal(value: Any) -> Decimal:
    """Best-effort conversion of stored prices to Decimal for currency math."""

    if isinstance(value, Decimal):
        return value
    if value is None:
        return Decimal("0")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return Decimal("0")


def _quantize_currency(value: Decimal) -> Decimal:
    return value.quantize(TWOPLACES, rounding=ROUND_HALF_UP) if value else Decimal("0.00")


def calculate_inventory_metrics(
    store: KeyValueStore,
    settings: InventorySettings | None = None,
) -> Dict[str, Any]:
    """Aggregate the figures shown on the reports page and dashboard.

    Status counts use each item's stored status; the low-stock list is
    computed live against the current threshold so it is never stale.
    """

    settings = settings or get_settings(store)
    items = list_items(store)
    borrows = list_borrows(store)

    total_value = Decimal("0")
    by_category: Dict[str, Decimal] = defaultdict(lambda: Decimal("0"))
    status_counts = {status.value: 0 for status in ItemStatus}
    for item in items:
        value = _to_decimal(item.price) * item.quantity
        total_value += value
        by_category[item.category_name or ""] += value
        status_counts[item.status.value] += 1

    low_stock = sorted(
        (item for item in items if item.quantity <= settings.low_stock_threshold),
        key=lambda item: (item.quantity, item.name.lower()),
    )

    return {
        "item_count": len(items),
        "total_units": sum(max(item.quantity, 0) for item in items),
        "total_value": _quantize_currency(total_value),
        "value_by_category": {
            name: _quantize_currency(value) for name, value in sorted(by_category.items())
        },
        "status_counts": status_counts,
        "low_stock_items": low_stock,
        "active_borrows": sum(1 for borrow in borrows if borrow.is_active),
        "overdue_borrows": sum(1 for borrow in borrows if borrow.status == BorrowStatus.OVERDUE),
        "currency": settings.currency,
        "currency_symbol": currency_symbol(settings.currency),
    }
