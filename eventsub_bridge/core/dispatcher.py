"""Routes verified EventSub notifications to in-process consumers."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from typing import Any

LOGGER = logging.getLogger("Bridge.Dispatcher")

WILDCARD = "*"

EventHandler = Callable[[str, dict[str, Any]], None]


class EventDispatcher:
    """Handlers are keyed by event type; ``*`` receives everything.

    A failing handler is logged and never affects the webhook response or the
    other handlers.
    """

    def __init__(self) -> None:
        self._handlers: defaultdict[str, list[EventHandler]] = defaultdict(list)

    def add_listener(self, handler: EventHandler, event_type: str = WILDCARD) -> None:
        self._handlers[event_type].append(handler)

    def remove_listener(self, handler: EventHandler, event_type: str = WILDCARD) -> None:
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def dispatch(self, event_type: str, event: dict[str, Any]) -> int:
        """Call every matching handler; returns how many ran without error."""
        handlers = [*self._handlers.get(event_type, []), *self._handlers.get(WILDCARD, [])]
        if not handlers:
            LOGGER.debug(f"No handler for event type: {event_type}")
            return 0

        delivered = 0
        for handler in handlers:
            try:
                handler(event_type, event)
                delivered += 1
            except Exception as e:
                LOGGER.exception(f"Handler {handler!r} failed for {event_type}: {e}")
        return delivered
