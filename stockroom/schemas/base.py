"""Shared pydantic configuration for stored records and input payloads.

Stored JSON uses camelCase keys (``categoryId``, ``isRead``) so documents
exported by earlier releases load unchanged. Python code works with the
snake_case attribute names; ``populate_by_name`` accepts either spelling.
"""

from __future__ import annotations

from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class StoredRecord(BaseModel):
    """A record as it lives in the store: lenient, unknown keys dropped."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_storage(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class InputModel(BaseModel):
    """A caller-supplied payload: validated strictly before anything is written."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )


def field_keyed(model_cls: type[BaseModel], payload: Mapping[str, Any]) -> dict[str, Any]:
    """Rewrite alias keys in ``payload`` to attribute names of ``model_cls``."""

    by_alias = {
        (info.alias or name): name for name, info in model_cls.model_fields.items()
    }
    result: dict[str, Any] = {}
    for key, value in payload.items():
        name = key if key in model_cls.model_fields else by_alias.get(key)
        if name is not None:
            result[name] = value
    return result
