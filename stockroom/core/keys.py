"""Storage keys shared by every repository."""

from __future__ import annotations

INVENTORY = "inventory"
CATEGORIES = "categories"
SUPPLIERS = "suppliers"
SETTINGS = "settings"
BORROWS = "borrows"
HISTORY = "history"
NOTIFICATIONS = "notifications"
CURRENT_USER = "currentUser"

# Keys owned by the application; ``clear_all`` removes exactly these.
APPLICATION_KEYS = (
    INVENTORY,
    CATEGORIES,
    SUPPLIERS,
    SETTINGS,
    BORROWS,
    HISTORY,
    NOTIFICATIONS,
)

# Placeholder shown when a category/supplier reference no longer resolves.
FALLBACK_NAME = "Other"
