import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))

from stockroom.crud.items import create_item
from stockroom.crud.notifications import delete_notification, list_notifications
from stockroom.crud.storage import KeyValueStore
from stockroom.db.migrate import run_migrations
from stockroom.schemas.borrow import BorrowStatus
from stockroom.schemas.settings import InventorySettings
from stockroom.services.backup import export_data
from stockroom.services.lending import create_borrow, get_borrow, list_overdue_borrows, return_borrow
from stockroom.services.overdue import days_past_due, is_borrow_overdue, overdue_status_text, sweep_overdue

NOW = datetime(2024, 6, 10, 9, 30, tzinfo=timezone.utc)
SETTINGS = InventorySettings(low_stock_threshold=2, currency="USD")


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
def item(store):
    return create_item(
        store,
        {"name": "Tennis racket", "quantity": 20},
        actor="admin",
        settings=SETTINGS,
        now=NOW - timedelta(days=30),
    ).value


def _loan(store, item, expected, borrower="Sam"):
    result = create_borrow(
        store,
        {
            "itemId": item.id,
            "borrowerName": borrower,
            "quantityBorrowed": 1,
            "expectedReturnDate": expected,
        },
        actor="coach",
        settings=SETTINGS,
        now=NOW - timedelta(days=14),
    )
    assert result.ok, result.message
    return result.value


def _overdue_notifications(store, borrow_id):
    return [
        n for n in list_notifications(store)
        if n.type.value == "overdue" and n.entity_id == borrow_id
    ]


def test_sweep_promotes_late_loans_once(store, item):
    loan = _loan(store, item, "2024-06-09")

    first = sweep_overdue(store, now=NOW)

    assert first.ok
    assert first.value.transitioned == [loan.id]
    assert first.value.notified == [loan.id]
    assert get_borrow(store, loan.id).status == BorrowStatus.OVERDUE
    alerts = _overdue_notifications(store, loan.id)
    assert len(alerts) == 1
    assert alerts[0].message == "Tennis racket borrowed by Sam is 1 day(s) overdue"
    assert alerts[0].created_by == "System"

    second = sweep_overdue(store, now=NOW)

    assert second.value.transitioned == []
    assert second.value.notified == []
    assert get_borrow(store, loan.id).status == BorrowStatus.OVERDUE
    assert len(_overdue_notifications(store, loan.id)) == 1


def test_repeated_sweeps_match_a_single_sweep(store, item):
    _loan(store, item, "2024-06-01")
    _loan(store, item, "2024-06-05", borrower="Lee")
    _loan(store, item, "2024-07-01", borrower="Kim")

    sweep_overdue(store, now=NOW)
    once = export_data(store)
    for _ in range(3):
        sweep_overdue(store, now=NOW)

    assert export_data(store) == once
    assert len(list_overdue_borrows(store)) == 2


def test_sweep_skips_returned_and_future_loans(store, item):
    returned = _loan(store, item, "2024-06-01")
    return_borrow(store, returned.id, actor="coach", now=NOW - timedelta(days=12))
    future = _loan(store, item, "2024-06-11", borrower="Kim")

    report = sweep_overdue(store, now=NOW).value

    assert report.transitioned == []
    assert report.notified == []
    assert get_borrow(store, returned.id).status == BorrowStatus.RETURNED
    assert get_borrow(store, future.id).status == BorrowStatus.BORROWED


def test_sweep_realerts_overdue_loan_whose_alert_was_deleted(store, item):
    loan = _loan(store, item, "2024-06-07")
    sweep_overdue(store, now=NOW)
    alert = _overdue_notifications(store, loan.id)[0]
    assert alert.message.endswith("is 3 day(s) overdue")
    delete_notification(store, alert.id)

    report = sweep_overdue(store, now=NOW + timedelta(days=1)).value

    assert report.transitioned == []
    assert report.notified == [loan.id]
    assert _overdue_notifications(store, loan.id)[0].message.endswith("is 4 day(s) overdue")


def test_overdue_helpers(store, item):
    loan = _loan(store, item, "2024-06-07T09:30:00Z")

    assert is_borrow_overdue(loan, NOW)
    assert days_past_due(loan, NOW) == 3
    assert days_past_due(loan, NOW - timedelta(days=5)) == 0
    assert overdue_status_text(loan, NOW) == "Overdue • 3d"
    assert overdue_status_text(loan, datetime(2024, 6, 7, 10, 0, tzinfo=timezone.utc)) == "Overdue"
    assert overdue_status_text(loan, datetime(2024, 6, 1, tzinfo=timezone.utc)) == "borrowed"
