import os
import sys
from pathlib import Path

import pytest
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))

from stockroom.core import keys
from stockroom.core.events import ChangeNotifier
from stockroom.crud.categories import list_categories
from stockroom.crud.items import list_items
from stockroom.crud.storage import KeyValueStore, initialize_data
from stockroom.db.migrate import run_migrations


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


def test_set_get_remove(store):
    assert store.get("missing") is None

    assert store.set("greeting", "hello") is True
    assert store.get("greeting") == "hello"

    assert store.set("greeting", "bye") is True
    assert store.get("greeting") == "bye"

    store.remove("greeting")
    assert store.get("greeting") is None


def test_availability_check_leaves_no_trace(store):
    assert store.is_available() is True
    assert store.get("__test__") is None


def test_corrupt_json_reads_as_default(store):
    store.set(keys.INVENTORY, "{not json")
    assert store.get_json(keys.INVENTORY, []) == []
    assert list_items(store) == []


def test_non_list_collection_reads_empty(store):
    store.set_json(keys.CATEGORIES, {"id": "c1", "name": "Balls"})
    assert list_categories(store) == []


def test_invalid_records_are_skipped(store):
    store.set_json(
        keys.CATEGORIES,
        [{"id": "c1", "name": "Balls"}, {"name": "no id"}, "garbage"],
    )
    categories = list_categories(store)
    assert [c.id for c in categories] == ["c1"]


def test_initialize_data_seeds_empty_collections(store):
    store.set_json(keys.CATEGORIES, [{"id": "c1", "name": "Kept"}])

    assert initialize_data(store) is True

    assert store.get_json(keys.INVENTORY, None) == []
    assert store.get_json(keys.SUPPLIERS, None) == []
    assert [c.name for c in list_categories(store)] == ["Kept"]


def test_clear_all_keeps_session_user(store):
    for key in keys.APPLICATION_KEYS:
        store.set_json(key, [])
    store.set_json(keys.CURRENT_USER, {"username": "admin", "role": "admin"})

    store.clear_all()

    for key in keys.APPLICATION_KEYS:
        assert store.get(key) is None
    assert store.get_json(keys.CURRENT_USER, None)["username"] == "admin"


def test_run_migrations_backfills_updated_at():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False})
    with engine.begin() as conn:
        conn.execute(text("CREATE TABLE kv_entries (key TEXT PRIMARY KEY, value TEXT NOT NULL)"))

    run_migrations(engine)
    run_migrations(engine)

    columns = {column["name"] for column in inspect(engine).get_columns("kv_entries")}
    assert columns == {"key", "value", "updated_at"}


def test_change_notifier_isolates_failing_listeners():
    notifier = ChangeNotifier()
    seen = []

    def broken(event):
        raise RuntimeError("boom")

    notifier.subscribe("changed", broken)
    unsubscribe = notifier.subscribe("changed", seen.append)

    notifier.publish("changed")
    assert seen == ["changed"]

    unsubscribe()
    notifier.publish("changed")
    assert seen == ["changed"]
