"""Audit history: an append-only, newest-first log of every mutation."""

from __future__ import annotations

import csv
import io
from datetime import datetime
from typing import Iterable, Sequence

from ..core import keys
from ..core.errors import ValidationFailed, reports_failures
from ..core.timeutil import parse_iso, resolve_now, to_iso
from ..schemas.history import EntityType, HistoryAction, HistoryFilter, HistoryRecord
from .collection import load_collection, new_id, save_collection
from .storage import KeyValueStore


def list_history(store: KeyValueStore) -> list[HistoryRecord]:
    """Return the full log, newest first."""

    return load_collection(store, keys.HISTORY, HistoryRecord)


def history_for_entity(store: KeyValueStore, entity_id: str) -> list[HistoryRecord]:
    return [record for record in list_history(store) if record.entity_id == entity_id]


def record_history(
    store: KeyValueStore,
    *,
    action: HistoryAction,
    entity_type: EntityType,
    entity_id: str,
    entity_name: str,
    details: str,
    performed_by: str,
    now: datetime | None = None,
) -> HistoryRecord:
    """Prepend one record and persist the log.

    Raises ``StorageUnavailable`` if the write fails; repositories call this
    after their own availability check.
    """

    record = HistoryRecord(
        id=new_id(),
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        entity_name=entity_name,
        details=details,
        performed_by=performed_by or "Unknown",
        timestamp=to_iso(resolve_now(now)),
    )
    history = list_history(store)
    history.insert(0, record)
    save_collection(store, keys.HISTORY, history)
    return record


@reports_failures
def append_history(
    store: KeyValueStore,
    *,
    action: HistoryAction,
    entity_type: EntityType,
    entity_id: str,
    entity_name: str,
    details: str,
    performed_by: str,
    now: datetime | None = None,
) -> HistoryRecord:
    store.require_available()
    return record_history(
        store,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        entity_name=entity_name,
        details=details,
        performed_by=performed_by,
        now=now,
    )


def _record_time(record: HistoryRecord) -> datetime | None:
    try:
        return parse_iso(record.timestamp)
    except ValueError:
        return None


def filter_history(records: Iterable[HistoryRecord], criteria: HistoryFilter) -> list[HistoryRecord]:
    """Project ``records`` down to those matching every set criterion.

    ``performed_by`` and ``search`` are case-insensitive substring matches;
    the date bounds are inclusive.
    """

    date_from = resolve_now(criteria.date_from) if criteria.date_from else None
    date_to = resolve_now(criteria.date_to) if criteria.date_to else None
    performer = (criteria.performed_by or "").lower()
    term = (criteria.search or "").lower()

    matched = []
    for record in records:
        if criteria.action and record.action != criteria.action:
            continue
        if criteria.entity_type and record.entity_type != criteria.entity_type:
            continue
        if performer and performer not in record.performed_by.lower():
            continue
        if date_from or date_to:
            stamp = _record_time(record)
            if stamp is None:
                continue
            if date_from and stamp < date_from:
                continue
            if date_to and stamp > date_to:
                continue
        if term and term not in record.entity_name.lower() and term not in record.details.lower():
            continue
        matched.append(record)
    return matched


def history_to_csv(records: Sequence[HistoryRecord]) -> str:
    """Render records as CSV with a header row; no records gives an empty string."""

    if not records:
        return ""
    rows = [record.to_storage() for record in records]
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(rows[0].keys()), lineterminator="\n")
    writer.writeheader()
    writer.writerows(rows)
    return buffer.getvalue()


@reports_failures
def prune_history(store: KeyValueStore, keep: int) -> int:
    """Keep only the newest ``keep`` records; returns how many were dropped."""

    if keep < 0:
        raise ValidationFailed("keep must be zero or greater")
    store.require_available()
    history = list_history(store)
    if len(history) <= keep:
        return 0
    save_collection(store, keys.HISTORY, history[:keep])
    return len(history) - keep


@reports_failures
def clear_history(store: KeyValueStore) -> int:
    store.require_available()
    count = len(list_history(store))
    save_collection(store, keys.HISTORY, [])
    return count
