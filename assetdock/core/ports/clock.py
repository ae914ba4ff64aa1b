"""Clock port. Injected wherever timestamps or expiry are computed."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol


class ClockPort(Protocol):
    def now_utc(self) -> datetime:
        """Current timezone-aware UTC time."""
        ...
