"""
Path generation contract.

A PathGenerator turns (collection policy, asset context) into storage-relative
directories for an original file and for its variants. Implementations must be
deterministic: the same context always maps to the same directory.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from assetdock.components.collections import CollectionDefinition


@dataclass(frozen=True)
class PathContext:
    """Everything a generator may use to place a file.

    ``upload_key`` identifies one admitted file. It is generated once at
    admission and stored on the asset, so regeneration reuses it.
    """

    entity_type: str  # Owner type identifier (unhashed)
    entity_id: int
    collection_ref: str  # Collection identifier (unhashed)
    upload_key: str


class PathGenerator(Protocol):
    def get_store_directory(self, context: PathContext, collection: CollectionDefinition) -> str:
        """Storage base directory (first path component)."""
        ...

    def get_file_relative_path(
        self, context: PathContext, collection: CollectionDefinition
    ) -> str:
        """Directory of the original, relative to the store directory."""
        ...

    def get_path(self, context: PathContext, collection: CollectionDefinition) -> str:
        """Storage-relative directory for the original file."""
        ...

    def get_store_directory_for_variants(
        self, context: PathContext, collection: CollectionDefinition
    ) -> str:
        ...

    def get_file_relative_path_for_variants(
        self, context: PathContext, collection: CollectionDefinition
    ) -> str:
        ...

    def get_path_for_variants(self, context: PathContext, collection: CollectionDefinition) -> str:
        """Storage-relative directory for variant files."""
        ...

    def on_created_directory(self, path: Path, collection: CollectionDefinition) -> None:
        """Called with the absolute path of each directory the adder creates."""
        ...
