"""Event publisher port (observer pattern for asset lifecycle notifications)."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol

EventHandler = Callable[[Any], None]


class EventPublisherPort(Protocol):
    def publish(self, event: Any) -> None:
        """Deliver an event to every subscriber of its name."""
        ...

    def subscribe(self, event_name: str, handler: EventHandler) -> None:
        ...
