import csv
import io
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

from stockroom.crud.history import (
    append_history,
    clear_history,
    filter_history,
    history_for_entity,
    history_to_csv,
    list_history,
    prune_history,
)
from stockroom.crud.storage import KeyValueStore
from stockroom.db.migrate import run_migrations
from stockroom.schemas.history import EntityType, HistoryAction, HistoryFilter

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


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
def seeded(store):
    rows = [
        (HistoryAction.ADD, EntityType.ITEM, "i1", "Basketball", "Added item with quantity: 4", "admin", 0),
        (HistoryAction.ADD, EntityType.CATEGORY, "c1", "Balls", 'Category "Balls" created', "Admin", 1),
        (HistoryAction.BORROW, EntityType.ITEM, "i1", "Basketball", "Borrowed 2 units by Dana", "coach", 2),
        (HistoryAction.DELETE, EntityType.SUPPLIER, "s1", "Acme", 'Supplier "Acme" deleted', "staff", 3),
    ]
    for action, entity_type, entity_id, name, details, actor, days in rows:
        append_history(
            store,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            entity_name=name,
            details=details,
            performed_by=actor,
            now=NOW + timedelta(days=days),
        )
    return store


def test_history_is_newest_first(seeded):
    records = list_history(seeded)
    assert [r.entity_id for r in records] == ["s1", "i1", "c1", "i1"]
    assert records[0].timestamp == "2024-06-04T12:00:00.000Z"
    assert [r.action for r in history_for_entity(seeded, "i1")] == [HistoryAction.BORROW, HistoryAction.ADD]


def test_missing_performer_is_recorded_as_unknown(store):
    result = append_history(
        store,
        action=HistoryAction.UPDATE,
        entity_type=EntityType.ITEM,
        entity_id="i9",
        entity_name="Cone",
        details="Updated item details",
        performed_by="",
    )
    assert result.ok
    assert result.value.performed_by == "Unknown"


@pytest.mark.parametrize(
    "criteria, expected",
    [
        (HistoryFilter(action=HistoryAction.ADD), ["c1", "i1"]),
        (HistoryFilter(entity_type=EntityType.ITEM), ["i1", "i1"]),
        (HistoryFilter(performed_by="ADMIN"), ["c1", "i1"]),
        (HistoryFilter(search="dana"), ["i1"]),
        (HistoryFilter(search="acme"), ["s1"]),
        (
            HistoryFilter(date_from=datetime(2024, 6, 2, 12, 0), date_to=datetime(2024, 6, 3, 12, 0)),
            ["i1", "c1"],
        ),
        (HistoryFilter(action=HistoryAction.ADD, performed_by="staff"), []),
    ],
)
def test_filter_history(seeded, criteria, expected):
    matched = filter_history(list_history(seeded), criteria)
    assert [r.entity_id for r in matched] == expected


def test_history_to_csv(seeded):
    assert history_to_csv([]) == ""

    text = history_to_csv(list_history(seeded))
    rows = list(csv.DictReader(io.StringIO(text)))

    assert list(rows[0].keys()) == [
        "id",
        "action",
        "entityType",
        "entityId",
        "entityName",
        "details",
        "performedBy",
        "timestamp",
    ]
    assert rows[0]["details"] == 'Supplier "Acme" deleted'
    assert len(rows) == 4


def test_prune_and_clear_are_explicit(seeded):
    assert prune_history(seeded, keep=10).value == 0
    assert prune_history(seeded, keep=-1).code == "validation_error"

    result = prune_history(seeded, keep=2)
    assert result.value == 2
    assert [r.entity_id for r in list_history(seeded)] == ["s1", "i1"]

    assert clear_history(seeded).value == 2
    assert list_history(seeded) == []
