"""In-memory session store adapter.

Holds per-session temporary values with their own expiry, which is what the
session security token provider needs. For production, consider a Redis or
database backed implementation.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any


class InMemorySessionStore:
    """In-memory session storage - suitable for single-process deployments."""

    def __init__(self) -> None:
        # session_id -> key -> (value, expires_at)
        self._sessions: dict[str, dict[str, tuple[Any, datetime]]] = {}

    def set_temp(
        self, session_id: str, key: str, value: Any, ttl_seconds: int, now: datetime
    ) -> None:
        """Store a value that disappears ttl_seconds after now."""
        expires_at = now + timedelta(seconds=ttl_seconds)
        self._sessions.setdefault(session_id, {})[key] = (value, expires_at)

    def get_temp(self, session_id: str, key: str, now: datetime) -> Any | None:
        entry = self._sessions.get(session_id, {}).get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if now >= expires_at:
            self.remove(session_id, key)
            return None
        return value

    def remove(self, session_id: str, key: str) -> None:
        self._sessions.get(session_id, {}).pop(key, None)

    def clear(self) -> None:
        """Clear all sessions - useful for testing."""
        self._sessions.clear()
