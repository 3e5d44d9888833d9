"""Simple in-process event bus for permission and execution notifications."""

from __future__ import annotations

import threading
from collections import defaultdict
from collections.abc import Callable
from typing import Any

EventHandler = Callable[[dict[str, Any]], None]

PERMISSION_REQUESTED = "permission.requested"
PERMISSION_RESOLVED = "permission.resolved"


class EventBus:
    """Dispatches events to subscribers by event name."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, event_name: str, handler: EventHandler) -> Callable[[], None]:
        """Register a callback and return a function that removes it."""
        with self._lock:
            self._handlers[event_name].append(handler)

        def _unsubscribe() -> None:
            with self._lock:
                if handler in self._handlers.get(event_name, []):
                    self._handlers[event_name].remove(handler)

        return _unsubscribe

    def emit(self, event_name: str, payload: dict[str, Any]) -> None:
        """Emit an event to all subscribers."""
        with self._lock:
            handlers = list(self._handlers.get(event_name, []))
        for handler in handlers:
            handler(payload)
