"""
Path generation - deterministic storage locations for originals and variants.

Default layout:
    <public|private>/assets/<entity-type hash>/<entity id>/<collection hash>/<upload key>
    <public|private>/assets/<entity-type hash>/<entity id>/<collection hash>/<upload key>/variants

Invariants:
- Pure: no clock, randomness or filesystem access in path computation
- Partitioning by entity-type hash, entity id and collection hash keeps
  unrelated owners and same-named collections apart
- Private collections never share a store directory with public ones
"""

from __future__ import annotations

import logging
import os
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING
from uuid import uuid4

from assetdock.core.entities import Visibility, scope_hash

from .ports import PathContext

if TYPE_CHECKING:
    from assetdock.components.collections import CollectionDefinition
    from assetdock.core.ports.storage import FileStoragePort

    from .ports import PathGenerator

logger = logging.getLogger(__name__)

VARIANTS_DIRECTORY = "variants"
PRIVATE_DIRECTORY_MODE = 0o700


# --- Helper Functions ---


def join_path(*segments: str) -> str:
    """Join storage path segments with forward slashes, dropping empty ones."""
    parts = [s.strip("/") for s in segments if s and s.strip("/")]
    return str(PurePosixPath(*parts)) if parts else ""


def generate_upload_key() -> str:
    return uuid4().hex


def variant_file_name(original_file_name: str, variant_name: str, extension: str | None) -> str:
    """<stem>-<variant>.<ext>, ext inherited from the original unless overridden."""
    original = PurePosixPath(original_file_name)
    ext = (extension or original.suffix.lstrip(".")).lower()
    name = f"{original.stem}-{variant_name}"
    return f"{name}.{ext}" if ext else name


def ensure_directory(
    storage: FileStoragePort,
    generator: PathGenerator,
    collection: CollectionDefinition,
    path: str,
) -> None:
    """Create a storage directory, firing the generator hook when it is new."""
    if storage.ensure_directory(path):
        generator.on_created_directory(storage.absolute_path(path), collection)


# --- Generators ---


class BasePathGenerator:
    """
    Derives the combined and variant paths from two primitives.

    Subclasses implement get_store_directory and get_file_relative_path.
    """

    def get_store_directory(self, context: PathContext, collection: CollectionDefinition) -> str:
        raise NotImplementedError

    def get_file_relative_path(
        self, context: PathContext, collection: CollectionDefinition
    ) -> str:
        raise NotImplementedError

    def get_path(self, context: PathContext, collection: CollectionDefinition) -> str:
        return join_path(
            self.get_store_directory(context, collection),
            self.get_file_relative_path(context, collection),
        )

    def get_store_directory_for_variants(
        self, context: PathContext, collection: CollectionDefinition
    ) -> str:
        return self.get_store_directory(context, collection)

    def get_file_relative_path_for_variants(
        self, context: PathContext, collection: CollectionDefinition
    ) -> str:
        return join_path(self.get_file_relative_path(context, collection), VARIANTS_DIRECTORY)

    def get_path_for_variants(self, context: PathContext, collection: CollectionDefinition) -> str:
        return join_path(
            self.get_store_directory_for_variants(context, collection),
            self.get_file_relative_path_for_variants(context, collection),
        )

    def on_created_directory(self, path: Path, collection: CollectionDefinition) -> None:
        return None


class DefaultPathGenerator(BasePathGenerator):
    """Partitions by entity-type hash / entity id / collection hash / upload key."""

    def __init__(
        self,
        public_dir: str = "public",
        private_dir: str = "private",
        *,
        private_mode: int = PRIVATE_DIRECTORY_MODE,
    ) -> None:
        self.public_dir = public_dir
        self.private_dir = private_dir
        self.private_mode = private_mode

    def get_store_directory(self, context: PathContext, collection: CollectionDefinition) -> str:
        if collection.get_visibility() == Visibility.PRIVATE:
            return self.private_dir
        return self.public_dir

    def get_file_relative_path(
        self, context: PathContext, collection: CollectionDefinition
    ) -> str:
        return join_path(
            "assets",
            scope_hash(context.entity_type),
            str(context.entity_id),
            scope_hash(context.collection_ref),
            context.upload_key,
        )

    def on_created_directory(self, path: Path, collection: CollectionDefinition) -> None:
        if collection.get_visibility() != Visibility.PRIVATE:
            return
        os.chmod(path, self.private_mode)
        logger.debug("Restricted private directory %s to mode %o", path, self.private_mode)
