"""
GarbageCollector - permanent removal of soft-deleted assets.

Invariants:
- Per asset: every variant file, then the original, then the row
- Variant files include renditions never recorded in properties: the
  variants directory of the admission goes as a whole
- A file deletion error is logged and never blocks purging the row
- One asset's failure never stops the rest of the batch
- A row that cannot be purged stays soft-deleted for the next run
"""

from __future__ import annotations

import logging
from pathlib import PurePosixPath
from typing import TYPE_CHECKING

from assetdock.components.paths import VARIANTS_DIRECTORY
from assetdock.core.errors import AssetError, DatabaseError
from assetdock.core.ports.storage import StorageError

from .builder import path_context_for
from .models import GarbageReport

if TYPE_CHECKING:
    from assetdock.components.collections import CollectionRegistry
    from assetdock.core.entities import Asset
    from assetdock.core.ports.db import AssetRepoPort
    from assetdock.core.ports.storage import FileStoragePort

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 1000


class GarbageCollector:
    def __init__(
        self,
        repo: AssetRepoPort,
        storage: FileStoragePort,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        registry: CollectionRegistry | None = None,
    ) -> None:
        self._repo = repo
        self._storage = storage
        self._batch_size = batch_size
        self._registry = registry

    def collect(self) -> GarbageReport:
        """Purge up to one batch of soft-deleted assets."""
        report = GarbageReport()

        for asset in self._repo.list_soft_deleted(self._batch_size):
            if asset.id is None:
                continue
            report.file_errors += self._delete_files(asset)
            try:
                self._repo.purge(asset.id)
            except DatabaseError:
                report.row_errors += 1
                logger.exception("Failed to purge asset row %s; will retry next run", asset.id)
                continue
            report.purged.append(asset.id)
            logger.info("Garbage collected asset %s (%s)", asset.id, asset.path)

        return report

    def _delete_files(self, asset: Asset) -> int:
        errors = 0
        recorded = [variant.path for variant in asset.properties.variants()]

        for path in recorded:
            errors += self._delete(path, asset)

        # Unrecorded renditions (an aborted run) share the admission's variants directory
        for directory in self._variant_directories(asset, recorded):
            try:
                self._storage.delete_directory(directory)
            except (OSError, StorageError):
                errors += 1
                logger.exception(
                    "Failed to delete variants directory %s of asset %s", directory, asset.id
                )

        errors += self._delete(asset.path, asset)

        # Only empty directories are pruned; shared layouts keep their siblings
        directory = PurePosixPath(asset.path).parent
        for candidate in (directory / VARIANTS_DIRECTORY, directory):
            try:
                self._storage.delete_empty_directory(str(candidate))
            except (OSError, StorageError):
                logger.warning("Could not prune directory %s", candidate)

        return errors

    def _delete(self, path: str, asset: Asset) -> int:
        try:
            self._storage.delete(path)
        except (OSError, StorageError):
            logger.exception("Failed to delete %s of asset %s", path, asset.id)
            return 1
        return 0

    def _variant_directories(self, asset: Asset, recorded: list[str]) -> list[str]:
        """Variants directories owned by this admission alone."""
        upload_key = asset.properties.storage_info.upload_key
        if not upload_key:
            return []

        candidates = {str(PurePosixPath(path).parent) for path in recorded}
        candidates.add(str(PurePosixPath(asset.path).parent / VARIANTS_DIRECTORY))
        generated = self._generated_variant_directory(asset)
        if generated is not None:
            candidates.add(generated)

        return sorted(c for c in candidates if upload_key in PurePosixPath(c).parts)

    def _generated_variant_directory(self, asset: Asset) -> str | None:
        if self._registry is None:
            return None
        info = asset.properties.basic_info
        try:
            collection = self._registry.resolve(info.collection_ref, *info.collection_args)
        except (AssetError, TypeError, ValueError) as e:
            logger.warning(
                "Cannot resolve collection %r for asset %s: %s", info.collection_ref, asset.id, e
            )
            return None
        return collection.get_path_generator().get_path_for_variants(
            path_context_for(asset), collection
        )
