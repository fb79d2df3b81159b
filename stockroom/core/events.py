"""Tiny observer registry used to tell listeners that stored data changed."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Callable

LOGGER = logging.getLogger(__name__)

NOTIFICATIONS_CHANGED = "notifications:changed"

Listener = Callable[[str], None]


class ChangeNotifier:
    """Publish named change events to subscribed callbacks.

    Publishing is fire-and-forget: a failing listener is logged and the
    remaining listeners still run.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = defaultdict(list)

    def subscribe(self, event: str, callback: Listener) -> Callable[[], None]:
        self._listeners[event].append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners[event]:
                self._listeners[event].remove(callback)

        return unsubscribe

    def publish(self, event: str) -> None:
        for callback in list(self._listeners.get(event, ())):
            try:
                callback(event)
            except Exception:
                LOGGER.exception("listener.failed", extra={"extra_data": {"event": event}})
