"""
Asset persistence port.

Any backend must honor the durable row shape: id, entity_type, entity_id,
collection, name, file_name, mime_type, size, path, order, properties
(serialized JSON), created_at, updated_at, deleted_at.

Key requirements:
- create() assigns the id and returns the stored asset
- list_scope() orders by (created_at, id) ascending, oldest first
- update_properties() touches only properties and updated_at
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from assetdock.core.entities import Asset, AssetProperties


class AssetRepoPort(Protocol):
    """Repository interface for asset rows."""

    def create(self, asset: Asset) -> Asset:
        """Insert a new row. Returns the asset with its id assigned."""
        ...

    def get_by_id(self, asset_id: int, *, with_deleted: bool = False) -> Asset | None:
        """Get asset by id. Soft-deleted rows are hidden unless with_deleted."""
        ...

    def update_properties(
        self, asset_id: int, properties: AssetProperties, updated_at: datetime
    ) -> bool:
        """Re-save only the properties column. Returns False if the row is gone."""
        ...

    def soft_delete(self, asset_ids: list[int], deleted_at: datetime) -> int:
        """Mark rows deleted. Returns count of rows newly marked."""
        ...

    def list_scope(
        self,
        entity_type: str,
        entity_id: int,
        collection: str,
        *,
        include_deleted: bool = False,
    ) -> list[Asset]:
        """List assets in an (entity_type, entity_id, collection) scope, oldest first."""
        ...

    def list_soft_deleted(self, limit: int) -> list[Asset]:
        """Return up to limit soft-deleted assets, oldest deletion first."""
        ...

    def purge(self, asset_id: int) -> bool:
        """Permanently delete a row. Returns False if it did not exist."""
        ...
