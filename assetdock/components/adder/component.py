"""
Adder component - admission of files into asset collections.

Validates a candidate file against the target collection, stores it at the
path chosen by the collection's path generator, persists the Asset row and
evicts whatever the collection's retention cap no longer allows.

Invariants:
- Validation runs in a fixed order and the first failure wins:
  readable file, size, extension, MIME type, file-name sanitizer
- A validation failure leaves no file and no row behind
- A copy or persistence failure removes the files already written
- The newly admitted asset is never the one evicted

Key behaviors:
- single-file collections soft-delete the previous occupant
- keep-latest-N collections soft-delete the oldest excess by (created_at, id)
- Variants are dispatched after persistence (queued or inline)
- AssetCreated is published with the asset and its owner
"""

from __future__ import annotations

import logging
import os
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, Any

from assetdock.components.paths import (
    PathContext,
    ensure_directory,
    generate_upload_key,
    join_path,
)
from assetdock.components.pending.models import PendingAsset, guess_mime_type
from assetdock.core.entities import (
    Asset,
    AssetOwner,
    AssetProperties,
    BasicInfo,
    StorageInfo,
    scope_hash,
)
from assetdock.core.errors import (
    CannotCopyFileError,
    DatabaseError,
    FileTooLargeError,
    InvalidArgumentError,
    InvalidFileError,
    InvalidFileExtensionError,
    InvalidMimeTypeError,
)
from assetdock.core.events import AssetCreated, AssetDeleted
from assetdock.core.ports.storage import StorageError

from .sanitizer import FileNameSanitizer, sanitize_file_name

if TYPE_CHECKING:
    from assetdock.components.collections import CollectionDefinition, CollectionRegistry
    from assetdock.components.variants import VariantDispatcher
    from assetdock.core.ports.clock import ClockPort
    from assetdock.core.ports.db import AssetRepoPort
    from assetdock.core.ports.events import EventPublisherPort
    from assetdock.core.ports.storage import FileStoragePort

logger = logging.getLogger(__name__)


class AssetService:
    """
    Entry point for asset admission and deletion.

    Holds the collaborators every AssetAdder needs.
    """

    def __init__(
        self,
        repo: AssetRepoPort,
        storage: FileStoragePort,
        registry: CollectionRegistry,
        clock: ClockPort,
        events: EventPublisherPort | None = None,
        variants: VariantDispatcher | None = None,
        sanitizer: FileNameSanitizer = sanitize_file_name,
    ) -> None:
        self.repo = repo
        self.storage = storage
        self.registry = registry
        self.clock = clock
        self.events = events
        self.variants = variants
        self.sanitizer = sanitizer

    def add_asset(self, owner: AssetOwner, source: str | Path | PendingAsset) -> AssetAdder:
        """Start building an admission for owner."""
        return AssetAdder(self, owner, source)

    def get_assets(self, owner: AssetOwner, collection_ref: str) -> list[Asset]:
        """Non-deleted assets of owner in a collection, oldest first."""
        return self.repo.list_scope(
            scope_hash(owner.asset_owner_type()),
            owner.asset_owner_id(),
            scope_hash(collection_ref),
        )

    def delete_asset(self, asset_id: int) -> bool:
        """Soft-delete an asset. Files are reclaimed by garbage collection."""
        deleted = self.repo.soft_delete([asset_id], self.clock.now_utc()) > 0
        if deleted:
            logger.info("Soft-deleted asset %s", asset_id)
            self.publish(AssetDeleted(asset_id=asset_id, reason="deleted"))
        return deleted

    def regenerate_variants(self, asset_id: int) -> str | None:
        """Dispatch the variants job again for an existing asset."""
        asset = self.repo.get_by_id(asset_id)
        if asset is None or self.variants is None:
            return None
        info = asset.properties.basic_info
        return self.variants.dispatch(asset, info.collection_ref, info.collection_args)

    def evict(self, asset: Asset, collection: CollectionDefinition) -> list[int]:
        """Soft-delete the oldest assets beyond the collection's cap."""
        max_items = collection.get_max_items()
        if max_items is None:
            return []

        others = [
            a
            for a in self.repo.list_scope(asset.entity_type, asset.entity_id, asset.collection)
            if a.id != asset.id
        ]
        # list_scope is ordered by (created_at, id) so the oldest come first
        excess = len(others) - (max_items - 1)
        if excess <= 0:
            return []

        victims = [a.id for a in others[:excess] if a.id is not None]
        self.repo.soft_delete(victims, self.clock.now_utc())
        for victim in victims:
            self.publish(AssetDeleted(asset_id=victim, reason="evicted"))
        logger.info(
            "Evicted %d asset(s) from collection %s after admitting %s",
            len(victims),
            collection.name,
            asset.id,
        )
        return victims

    def publish(self, event: Any) -> None:
        if self.events is not None:
            self.events.publish(event)


class AssetAdder:
    """
    Builder for one admission.

    Configure with the chained setters, then call add(collection_ref).
    """

    def __init__(
        self,
        service: AssetService,
        owner: AssetOwner,
        source: str | Path | PendingAsset,
    ) -> None:
        if not isinstance(owner, AssetOwner):
            raise InvalidArgumentError(f"{type(owner).__name__} does not implement AssetOwner")
        self._service = service
        self._owner = owner
        self._name: str | None = None
        self._file_name: str | None = None
        self._mime_type: str | None = None
        self._preserve_original = False
        self._order = 0
        self._custom_properties: dict[str, Any] = {}
        self._sanitizer = service.sanitizer

        if isinstance(source, PendingAsset):
            self._source = self._pending_source(source)
        else:
            self._source = Path(source)

    def _pending_source(self, pending: PendingAsset) -> Path:
        if pending.file_path is None:
            raise InvalidFileError(pending.file_name or pending.id)
        self._name = pending.name or None
        self._file_name = pending.file_name or None
        self._mime_type = pending.mime_type or None
        self._preserve_original = pending.preserve_original
        self._order = pending.order
        self._custom_properties = dict(pending.custom_properties)
        return pending.file_path

    # --- Builder ---

    def using_name(self, name: str) -> AssetAdder:
        self._name = name
        return self

    def using_file_name(self, file_name: str) -> AssetAdder:
        self._file_name = file_name
        return self

    def using_mime_type(self, mime_type: str) -> AssetAdder:
        self._mime_type = mime_type
        return self

    def preserving_original(self, preserve: bool = True) -> AssetAdder:
        self._preserve_original = preserve
        return self

    def set_order(self, order: int) -> AssetAdder:
        if order < 0:
            raise InvalidArgumentError(f"Order must be non-negative, got {order}")
        self._order = order
        return self

    def with_custom_properties(self, properties: dict[str, Any]) -> AssetAdder:
        self._custom_properties.update(properties)
        return self

    def with_custom_property(self, key: str, value: Any) -> AssetAdder:
        self._custom_properties[key] = value
        return self

    def sanitizing_file_name_with(self, sanitizer: FileNameSanitizer) -> AssetAdder:
        self._sanitizer = sanitizer
        return self

    # --- Commit ---

    def add(self, collection_ref: str, *definition_args: Any) -> Asset:
        """Validate, store and persist the file in the named collection."""
        service = self._service
        collection = service.registry.resolve(collection_ref, *definition_args)

        requested_name = self._file_name or self._source.name
        size, mime_type = self._validate(collection, requested_name)
        file_name = self._sanitizer(requested_name)

        owner_type = self._owner.asset_owner_type()
        owner_id = self._owner.asset_owner_id()
        context = PathContext(
            entity_type=owner_type,
            entity_id=owner_id,
            collection_ref=collection_ref,
            upload_key=generate_upload_key(),
        )
        generator = collection.get_path_generator()
        directory = generator.get_path(context, collection)
        target = join_path(directory, file_name)

        self._copy(collection, directory, target)

        now = service.clock.now_utc()
        asset = Asset(
            entity_type=scope_hash(owner_type),
            entity_id=owner_id,
            collection=scope_hash(collection_ref),
            name=self._name or PurePosixPath(file_name).stem,
            file_name=file_name,
            mime_type=mime_type,
            size=size,
            path=target,
            order=self._order,
            properties=AssetProperties(
                user_custom=dict(self._custom_properties),
                basic_info=BasicInfo(
                    entity_type_name=owner_type,
                    collection_ref=collection_ref,
                    collection_args=list(definition_args),
                ),
                storage_info=StorageInfo(
                    storage_base_directory_path=generator.get_store_directory(context, collection),
                    file_relative_path=join_path(
                        generator.get_file_relative_path(context, collection), file_name
                    ),
                    upload_key=context.upload_key,
                ),
            ),
            created_at=now,
            updated_at=now,
        )

        try:
            asset = service.repo.create(asset)
        except DatabaseError:
            self._discard(target, directory)
            raise
        except Exception as e:
            self._discard(target, directory)
            raise DatabaseError(str(e)) from e

        logger.info(
            "Stored asset %s (%s, %d bytes) in collection %s",
            asset.id,
            file_name,
            size,
            collection_ref,
        )

        service.evict(asset, collection)

        if not self._preserve_original:
            self._remove_source()

        service.publish(AssetCreated(asset=asset, owner=self._owner))

        if collection.get_variants():
            if service.variants is None:
                logger.warning("Collection %s has variants but no dispatcher", collection_ref)
            else:
                service.variants.dispatch(asset, collection_ref, list(definition_args))

        return asset

    # --- Helper Functions ---

    def _validate(self, collection: CollectionDefinition, file_name: str) -> tuple[int, str]:
        source = self._source
        if not source.is_file() or not os.access(source, os.R_OK):
            raise InvalidFileError(str(source))

        size = source.stat().st_size
        max_size = collection.get_max_file_size()
        if max_size and size > max_size:
            raise FileTooLargeError(size, max_size)

        extension = PurePosixPath(file_name).suffix.lstrip(".").lower()
        allowed_extensions = collection.get_allowed_extensions()
        if allowed_extensions and extension not in allowed_extensions:
            raise InvalidFileExtensionError(extension, allowed_extensions)

        mime_type = (self._mime_type or guess_mime_type(file_name)).lower()
        allowed_mime_types = collection.get_allowed_mime_types()
        if allowed_mime_types and mime_type not in allowed_mime_types:
            raise InvalidMimeTypeError(mime_type, allowed_mime_types)

        return size, mime_type

    def _copy(self, collection: CollectionDefinition, directory: str, target: str) -> None:
        storage = self._service.storage
        try:
            ensure_directory(storage, collection.get_path_generator(), collection, directory)
            storage.copy_in(self._source, target)
        except (OSError, StorageError) as e:
            self._discard(target, directory)
            raise CannotCopyFileError(str(self._source), target) from e

    def _discard(self, target: str, directory: str) -> None:
        """Remove a partially written upload. Errors are only logged."""
        storage = self._service.storage
        try:
            storage.delete(target)
            storage.delete_empty_directory(directory)
        except (OSError, StorageError):
            logger.exception("Failed to roll back upload %s", target)

    def _remove_source(self) -> None:
        try:
            self._source.unlink()
        except OSError:
            logger.warning("Could not remove source file %s after admission", self._source)
