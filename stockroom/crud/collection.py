"""Generic load/save helpers for the JSON arrays kept under each key."""

from __future__ import annotations

import logging
from typing import Iterable, Sequence, TypeVar
from uuid import uuid4

from pydantic import ValidationError

from ..schemas.base import StoredRecord
from .storage import KeyValueStore

LOGGER = logging.getLogger(__name__)

R = TypeVar("R", bound=StoredRecord)


def new_id() -> str:
    return str(uuid4())


def load_collection(store: KeyValueStore, key: str, model: type[R]) -> list[R]:
    """Return every parseable record stored under ``key``.

    A missing or non-list value reads as an empty collection. Individual
    records that no longer validate are skipped with a warning.
    """

    raw = store.get_json(key, [])
    if not isinstance(raw, list):
        LOGGER.error("collection.not_a_list", extra={"extra_data": {"key": key}})
        return []
    records: list[R] = []
    for position, entry in enumerate(raw):
        try:
            records.append(model.model_validate(entry))
        except ValidationError:
            LOGGER.warning(
                "collection.record_skipped",
                extra={"extra_data": {"key": key, "position": position}},
            )
    return records


def save_collection(store: KeyValueStore, key: str, records: Iterable[StoredRecord]) -> None:
    store.save_json(key, [record.to_storage() for record in records])


def find_record(records: Sequence[R], record_id: str) -> R | None:
    return next((record for record in records if record.id == record_id), None)


def replace_record(records: Sequence[R], updated: R) -> list[R]:
    return [updated if record.id == updated.id else record for record in records]


def without_record(records: Sequence[R], record_id: str) -> list[R]:
    return [record for record in records if record.id != record_id]
