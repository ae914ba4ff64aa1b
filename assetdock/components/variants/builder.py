"""
VariantBuilder - mutable helper handed to each variant transform.

The builder knows where the variant must live. A transform reads the source
file, writes the rendition through write() or to target_path(), and returns
the variant from write()/finish(). Returning None declines the variant.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from assetdock.components.paths import (
    PathContext,
    ensure_directory,
    join_path,
    variant_file_name,
)
from assetdock.core.entities import AssetVariant, StoredPaths
from assetdock.core.errors import FileVariantError

if TYPE_CHECKING:
    from assetdock.components.collections import CollectionDefinition, VariantRegistration
    from assetdock.core.entities import Asset
    from assetdock.core.ports.storage import FileStoragePort


def path_context_for(asset: Asset) -> PathContext:
    """Rebuild the admission-time path context stored on an asset."""
    return PathContext(
        entity_type=asset.properties.basic_info.entity_type_name,
        entity_id=asset.entity_id,
        collection_ref=asset.properties.basic_info.collection_ref,
        upload_key=asset.properties.storage_info.upload_key,
    )


class VariantBuilder:
    def __init__(
        self,
        asset: Asset,
        registration: VariantRegistration,
        collection: CollectionDefinition,
        storage: FileStoragePort,
    ) -> None:
        self.asset = asset
        self.name = registration.name
        self.extension = registration.extension or asset.extension
        self._collection = collection
        self._storage = storage

        context = path_context_for(asset)
        generator = collection.get_path_generator()
        file_name = variant_file_name(asset.file_name, registration.name, registration.extension)

        self.directory = generator.get_path_for_variants(context, collection)
        self.path = join_path(self.directory, file_name)
        self.paths = StoredPaths(
            storage_base_directory_path=generator.get_store_directory_for_variants(
                context, collection
            ),
            file_relative_path=join_path(
                generator.get_file_relative_path_for_variants(context, collection), file_name
            ),
        )

    @property
    def source_path(self) -> Path:
        """Absolute path of the original file."""
        return self._storage.absolute_path(self.asset.path)

    def read_source(self) -> bytes:
        return self.source_path.read_bytes()

    def target_path(self) -> Path:
        """Absolute path to write to, for tools that want a filename."""
        ensure_directory(
            self._storage, self._collection.get_path_generator(), self._collection, self.directory
        )
        return self._storage.absolute_path(self.path)

    def write(self, data: bytes) -> AssetVariant:
        ensure_directory(
            self._storage, self._collection.get_path_generator(), self._collection, self.directory
        )
        self._storage.write_bytes(self.path, data)
        return self.finish()

    def finish(self) -> AssetVariant:
        """Describe the written file. Fails if nothing was written."""
        if not self._storage.exists(self.path):
            raise FileVariantError(self.name, self.asset.id, "variant file was not written")
        return AssetVariant(
            name=self.name,
            path=self.path,
            size=self._storage.size(self.path),
            processed=True,
            paths=self.paths,
        )
