"""Inventory preferences: low-stock threshold and display currency."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from pydantic import ValidationError

from ..core import keys
from ..core.config import get_settings as get_app_settings
from ..core.errors import reports_failures
from ..schemas.base import field_keyed
from ..schemas.settings import CurrentUser, InventorySettings
from .storage import KeyValueStore

LOGGER = logging.getLogger(__name__)

CURRENCY_SYMBOLS = {
    "PHP": "₱",
    "USD": "$",
    "EUR": "€",
    "CAD": "$",
    "GBP": "£",
    "AUD": "$",
}


def default_settings() -> InventorySettings:
    app = get_app_settings()
    return InventorySettings(
        low_stock_threshold=app.DEFAULT_LOW_STOCK_THRESHOLD,
        currency=app.DEFAULT_CURRENCY,
    )


def get_settings(store: KeyValueStore) -> InventorySettings:
    """Read stored settings, falling back to the configured defaults."""

    defaults = default_settings()
    raw = store.get_json(keys.SETTINGS, None)
    if not isinstance(raw, Mapping):
        return defaults
    merged = {**defaults.model_dump(), **field_keyed(InventorySettings, raw)}
    try:
        return InventorySettings.model_validate(merged)
    except ValidationError:
        LOGGER.error("settings.invalid_stored_value")
        return defaults


@reports_failures
def save_settings(
    store: KeyValueStore,
    payload: Mapping[str, Any],
    *,
    actor: str,
    resync: bool = False,
) -> InventorySettings:
    """Validate and store new settings.

    With ``resync`` set, item status and name snapshots are refreshed against
    the new threshold in the same call.
    """

    store.require_available()
    merged = {**get_settings(store).model_dump(), **field_keyed(InventorySettings, payload)}
    settings = InventorySettings.model_validate(merged)
    store.save_json(keys.SETTINGS, settings.to_storage())
    LOGGER.info(
        "settings.saved",
        extra={"extra_data": {"actor": actor, "threshold": settings.low_stock_threshold}},
    )
    if resync:
        # Imported here because the item repository depends on this module.
        from .items import refresh_item_snapshots

        refresh_item_snapshots(store, actor=actor, settings=settings)
    return settings


def currency_symbol(code: str | None) -> str:
    if not code:
        return CURRENCY_SYMBOLS["PHP"]
    return CURRENCY_SYMBOLS.get(code.upper(), code)


def get_current_user(store: KeyValueStore) -> CurrentUser | None:
    """Return the session user recorded by the login layer, if any."""

    raw = store.get_json(keys.CURRENT_USER, None)
    if not isinstance(raw, Mapping):
        return None
    try:
        return CurrentUser.model_validate(raw)
    except ValidationError:
        return None
