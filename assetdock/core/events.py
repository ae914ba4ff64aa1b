"""
Asset lifecycle events.

Events that refer to an asset by id are built in two phases: construct with
the id, then call ``resolve(repo)`` explicitly to load the current row.
Nothing is fetched implicitly on attribute access.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar

from assetdock.core.errors import AssetNotFoundError

if TYPE_CHECKING:
    from assetdock.core.entities import Asset, AssetOwner, AssetVariant
    from assetdock.core.ports.db import AssetRepoPort


@dataclass(frozen=True)
class AssetCreated:
    """Published after an asset is persisted and its scope evicted."""

    name: ClassVar[str] = "asset.created"

    asset: Asset
    owner: AssetOwner


@dataclass(frozen=True)
class AssetUpdated:
    name: ClassVar[str] = "asset.updated"

    asset_id: int

    def resolve(self, repo: AssetRepoPort) -> Asset:
        asset = repo.get_by_id(self.asset_id)
        if asset is None:
            raise AssetNotFoundError(self.asset_id)
        return asset


@dataclass(frozen=True)
class AssetDeleted:
    """Published when an asset is soft-deleted (eviction or explicit delete)."""

    name: ClassVar[str] = "asset.deleted"

    asset_id: int
    reason: str = "deleted"

    def resolve(self, repo: AssetRepoPort) -> Asset:
        asset = repo.get_by_id(self.asset_id, with_deleted=True)
        if asset is None:
            raise AssetNotFoundError(self.asset_id)
        return asset


@dataclass(frozen=True)
class VariantCreated:
    name: ClassVar[str] = "variant.created"

    asset_id: int
    variant: AssetVariant
