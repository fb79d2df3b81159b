import os
import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))

from stockroom.crud.categories import create_category
from stockroom.crud.items import create_item
from stockroom.crud.storage import KeyValueStore
from stockroom.db.migrate import run_migrations
from stockroom.schemas.settings import InventorySettings
from stockroom.services.lending import create_borrow
from stockroom.services.overdue import sweep_overdue
from stockroom.services.reporting import calculate_inventory_metrics

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
SETTINGS = InventorySettings(low_stock_threshold=5, currency="USD")


@pytest.fixture()
def store():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False})
    run_migrations(engine)
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = TestingSessionLocal()
    try:
        yield KeyValueStore(session)
    finally:
        session.close()


@pytest.fixture()
def stocked(store):
    balls = create_category(store, {"name": "Balls"}, actor="admin").value
    rows = [
        {"name": "Basketball", "quantity": 10, "price": 25.5, "categoryId": balls.id},
        {"name": "Cones", "quantity": 3, "price": 2},
        {"name": "Net", "quantity": 0, "price": 0.1, "categoryId": balls.id},
    ]
    items = {}
    for row in rows:
        items[row["name"]] = create_item(store, row, actor="admin", settings=SETTINGS, now=NOW).value
    create_borrow(
        store,
        {
            "itemId": items["Basketball"].id,
            "borrowerName": "Dana",
            "quantityBorrowed": 2,
            "expectedReturnDate": "2024-06-03",
        },
        actor="coach",
        settings=SETTINGS,
        now=NOW,
    )
    return store


def test_inventory_metrics(stocked):
    metrics = calculate_inventory_metrics(stocked, SETTINGS)

    assert metrics["item_count"] == 3
    assert metrics["total_units"] == 11
    assert metrics["total_value"] == Decimal("210.00")
    assert metrics["value_by_category"] == {"Balls": Decimal("204.00"), "Other": Decimal("6.00")}
    assert metrics["status_counts"] == {"In Stock": 1, "Low Stock": 1, "Out of Stock": 1}
    assert [item.name for item in metrics["low_stock_items"]] == ["Net", "Cones"]
    assert metrics["active_borrows"] == 1
    assert metrics["overdue_borrows"] == 0
    assert metrics["currency_symbol"] == "$"


def test_low_stock_list_uses_current_threshold(stocked):
    metrics = calculate_inventory_metrics(stocked, InventorySettings(low_stock_threshold=8, currency="PHP"))

    assert [item.name for item in metrics["low_stock_items"]] == ["Net", "Cones", "Basketball"]
    # Stored statuses are snapshots and keep their old bands.
    assert metrics["status_counts"]["In Stock"] == 1
    assert metrics["currency_symbol"] == "₱"


def test_overdue_loans_are_counted(stocked):
    sweep_overdue(stocked, now=NOW + timedelta(days=5))

    metrics = calculate_inventory_metrics(stocked, SETTINGS)

    assert metrics["overdue_borrows"] == 1
    assert metrics["active_borrows"] == 1


def test_empty_store_metrics(store):
    metrics = calculate_inventory_metrics(store)

    assert metrics["item_count"] == 0
    assert metrics["total_value"] == Decimal("0.00")
    assert metrics["low_stock_items"] == []
    assert metrics["currency"] == "PHP"
