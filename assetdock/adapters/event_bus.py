"""In-memory event bus adapter.

Implements EventPublisherPort for single-process deployments. Handlers run
synchronously in subscription order; a failing handler is logged and does
not stop delivery to the others.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any

from assetdock.core.ports.events import EventHandler

logger = logging.getLogger(__name__)


class InMemoryEventBus:
    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)

    def subscribe(self, event_name: str, handler: EventHandler) -> None:
        self._handlers[event_name].append(handler)

    def publish(self, event: Any) -> None:
        name = getattr(event, "name", type(event).__name__)
        for handler in list(self._handlers.get(name, [])):
            try:
                handler(event)
            except Exception:
                logger.exception("Event handler %r failed for %s", handler, name)

    def clear(self) -> None:
        """Drop all subscriptions - useful for testing."""
        self._handlers.clear()
