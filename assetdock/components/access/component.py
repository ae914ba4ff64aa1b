"""
Access component - resolving assets for download.

Finds the asset, applies the collection's authorization check, resolves an
optional variant and confirms the file exists before anything is served.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from fastapi.responses import FileResponse

from assetdock.components.pending.models import guess_mime_type
from assetdock.core.errors import AccessDeniedError, AssetNotFoundError, InvalidArgumentError

if TYPE_CHECKING:
    from assetdock.components.collections import CollectionDefinition, CollectionRegistry
    from assetdock.core.entities import Asset
    from assetdock.core.ports.db import AssetRepoPort
    from assetdock.core.ports.storage import FileStoragePort

    from .temp_url import TempUrlTokenService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssetDownload:
    asset_id: int
    variant: str | None
    path: Path
    file_name: str
    mime_type: str
    size: int


class AssetAccessService:
    def __init__(
        self,
        repo: AssetRepoPort,
        registry: CollectionRegistry,
        storage: FileStoragePort,
        temp_urls: TempUrlTokenService | None = None,
    ) -> None:
        self._repo = repo
        self._registry = registry
        self._storage = storage
        self._temp_urls = temp_urls

    def find_asset(self, asset_id: int) -> Asset:
        asset = self._repo.get_by_id(asset_id)
        if asset is None:
            raise AssetNotFoundError(asset_id)
        return asset

    def get_collection(self, asset: Asset) -> CollectionDefinition:
        info = asset.properties.basic_info
        return self._registry.resolve(info.collection_ref, *info.collection_args)

    def has_access_permission(self, asset: Asset) -> bool:
        collection = self.get_collection(asset)
        if not collection.is_authorizable():
            return True
        return collection.check_authorization(asset)

    def resolve_download(
        self,
        asset_id: int,
        variant: str | None = None,
        *,
        check_permission: bool = True,
    ) -> AssetDownload:
        asset = self.find_asset(asset_id)
        if check_permission and not self.has_access_permission(asset):
            logger.info("Access denied to asset %s", asset_id)
            raise AccessDeniedError(asset_id)

        if variant is None:
            path, file_name, mime_type = asset.path, asset.file_name, asset.mime_type
        else:
            found = asset.get_variant(variant)
            if found is None or not found.processed:
                raise AssetNotFoundError(asset_id)
            path, file_name = found.path, found.file_name
            mime_type = guess_mime_type(file_name)

        absolute = self._storage.absolute_path(path)
        if not absolute.is_file():
            logger.error("File for asset %s is missing at %s", asset_id, path)
            raise AssetNotFoundError(asset_id)

        return AssetDownload(
            asset_id=asset_id,
            variant=variant,
            path=absolute,
            file_name=file_name,
            mime_type=mime_type,
            size=absolute.stat().st_size,
        )

    def create_temporary_url_token(
        self, asset_id: int, variant: str | None = None, expires_in: int | None = None
    ) -> str:
        if self._temp_urls is None:
            raise InvalidArgumentError("Temporary URLs are not configured")
        self.find_asset(asset_id)
        return self._temp_urls.issue(asset_id, variant, expires_in)

    def resolve_temporary_download(self, token: str) -> AssetDownload:
        """Resolve a signed temporary token; the token replaces the permission check."""
        if self._temp_urls is None:
            raise InvalidArgumentError("Temporary URLs are not configured")
        claims = self._temp_urls.verify(token)
        return self.resolve_download(claims.asset_id, claims.variant, check_permission=False)

    def file_response(self, download: AssetDownload, *, inline: bool = False) -> FileResponse:
        return FileResponse(
            download.path,
            media_type=download.mime_type,
            filename=download.file_name,
            content_disposition_type="inline" if inline else "attachment",
        )
