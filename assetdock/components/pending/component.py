"""
Pending component - staging of uploads that are not yet assets.

Invariants:
- Ids carry 128 bits of entropy and never collide with a staged entry
- An entry is expired once now > created_at + ttl; expired entries read
  as not found and are removed best-effort (errors logged, never raised)
- With a token provider wired, reads and deletes require a valid token

Key behaviors:
- store() stamps timestamps and TTL, issues the token, then persists
- delete_by_id() is idempotent and reports whether anything was removed
- clean_expired_pending_assets() sweeps the whole staging area
- promote() turns a pending entry into an Asset and removes the entry
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from assetdock.core.errors import InvalidArgumentError, PendingAssetError

from .models import PendingAsset

if TYPE_CHECKING:
    from assetdock.components.adder import AssetService
    from assetdock.core.entities import Asset, AssetOwner
    from assetdock.core.ports.clock import ClockPort

    from .ports import PendingSecurityTokenPort, PendingStoragePort

logger = logging.getLogger(__name__)


class PendingAssetManager:
    def __init__(
        self,
        storage: PendingStoragePort,
        clock: ClockPort,
        token_provider: PendingSecurityTokenPort | None = None,
    ) -> None:
        self._storage = storage
        self._clock = clock
        self._tokens = token_provider

    @property
    def token_provider(self) -> PendingSecurityTokenPort | None:
        return self._tokens

    def store(self, pending: PendingAsset, ttl_seconds: int | None = None) -> str:
        """Stage a pending asset. Returns its id; the token is on pending.security_token."""
        if ttl_seconds is not None and ttl_seconds <= 0:
            raise InvalidArgumentError(f"Pending TTL must be positive, got {ttl_seconds}")

        pending_id = pending.id or self._storage.generate_pending_id()
        now = self._clock.now_utc()
        pending.id = pending_id
        pending.created_at = now
        pending.updated_at = now
        pending.ttl = ttl_seconds or pending.ttl or self._storage.default_ttl_seconds

        if self._tokens is not None:
            pending.security_token = self._tokens.generate_token(pending_id)

        self._storage.store(pending, pending_id)
        logger.info("Stored pending asset %s (ttl %ds)", pending_id, pending.ttl)
        return pending_id

    def fetch_by_id(self, pending_id: str, token: str | None = None) -> PendingAsset | None:
        pending = self._storage.fetch_by_id(pending_id)
        if pending is None:
            return None

        if self.is_expired(pending):
            logger.info("Pending asset %s expired", pending_id)
            self._discard(pending_id)
            return None

        if self._tokens is not None and not self._tokens.validate_token(pending, token):
            logger.info("Security token rejected for pending asset %s", pending_id)
            return None

        return pending

    def delete_by_id(self, pending_id: str, token: str | None = None) -> bool:
        if self.fetch_by_id(pending_id, token) is None:
            return False
        return self._remove(pending_id)

    def clean_expired_pending_assets(self) -> int:
        removed = 0
        for pending_id, pending in self._storage.iter_pending():
            if pending is None:
                # Unreadable entries are left for manual inspection
                continue
            if self.is_expired(pending) and self._discard(pending_id):
                removed += 1
        if removed:
            logger.info("Removed %d expired pending asset(s)", removed)
        return removed

    def promote(
        self,
        pending_id: str,
        service: AssetService,
        owner: AssetOwner,
        collection_ref: str,
        *definition_args: Any,
        token: str | None = None,
    ) -> Asset:
        """Admit a pending asset into a collection, then remove the staged entry."""
        pending = self.fetch_by_id(pending_id, token)
        if pending is None:
            raise PendingAssetError(f"Pending asset {pending_id} not found")

        asset = service.add_asset(owner, pending).preserving_original().add(
            collection_ref, *definition_args
        )
        self._remove(pending_id)
        logger.info("Promoted pending asset %s to asset %s", pending_id, asset.id)
        return asset

    def is_expired(self, pending: PendingAsset) -> bool:
        return pending.is_expired(self._clock.now_utc(), self._storage.default_ttl_seconds)

    # --- Helper Functions ---

    def _remove(self, pending_id: str) -> bool:
        if self._tokens is not None:
            self._tokens.delete_token(pending_id)
        return self._storage.delete_by_id(pending_id)

    def _discard(self, pending_id: str) -> bool:
        """Best-effort removal of an expired entry."""
        try:
            return self._remove(pending_id)
        except Exception:
            logger.exception("Failed to remove expired pending asset %s", pending_id)
            return False
