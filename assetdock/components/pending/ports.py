"""
Pending component port definitions.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Protocol

from .models import PendingAsset


class PendingStoragePort(Protocol):
    """Staging area for pending assets."""

    @property
    def default_ttl_seconds(self) -> int:
        ...

    def generate_pending_id(self) -> str:
        """Fresh id with at least 128 bits of entropy, unused in storage."""
        ...

    def store(self, pending: PendingAsset, pending_id: str) -> None:
        """Persist payload and metadata under pending_id."""
        ...

    def fetch_by_id(self, pending_id: str) -> PendingAsset | None:
        """Load metadata without expiry checks. None if unknown."""
        ...

    def delete_by_id(self, pending_id: str) -> bool:
        """Remove payload and metadata. Returns False if nothing was there."""
        ...

    def iter_pending(self) -> Iterator[tuple[str, PendingAsset | None]]:
        """Every staged id with its metadata (None when unreadable)."""
        ...


class PendingSecurityTokenPort(Protocol):
    """Issues and checks the token bound to one pending id."""

    def generate_token(self, pending_id: str) -> str:
        ...

    def retrieve_token(self, pending_id: str) -> str | None:
        ...

    def validate_token(self, pending: PendingAsset, provided: str | None = None) -> bool:
        """Constant-time comparison. Never raises."""
        ...

    def delete_token(self, pending_id: str) -> None:
        ...
