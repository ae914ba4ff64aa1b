"""
Domain entities for assetdock.

- Asset: persisted record describing one stored file, scoped to an owner
  record and a named collection
- AssetVariant: derived rendition embedded in Asset.properties
- AssetProperties: structured JSON metadata carried by every Asset
- AssetOwner: capability interface implemented by records that own assets

Invariants:
- Asset.path is storage-relative and includes the file name
- Variants are keyed by name inside properties; re-adding replaces
- entity_type and collection are stable hashes, never raw identifiers
"""

from __future__ import annotations

import hashlib
from datetime import datetime
from enum import Enum
from pathlib import PurePosixPath
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, Field


def scope_hash(identifier: str) -> str:
    """Stable 32-char hash used for entity types and collection identifiers."""
    return hashlib.sha256(identifier.encode("utf-8")).hexdigest()[:32]


class Visibility(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"


@runtime_checkable
class AssetOwner(Protocol):
    """Record that can own assets.

    The type identifier must be stable across deployments; it is hashed
    into Asset.entity_type and into the default storage path.
    """

    def asset_owner_type(self) -> str: ...

    def asset_owner_id(self) -> int: ...


# --- Embedded metadata ---


class StoredPaths(BaseModel):
    """Two-part location kept so a file can be relocated or regenerated."""

    storage_base_directory_path: str
    file_relative_path: str


class AssetVariant(BaseModel):
    """Derived rendition of an asset file (e.g. a thumbnail)."""

    name: str
    path: str  # Storage-relative, includes the file name
    size: int = 0
    processed: bool = False
    paths: StoredPaths

    @property
    def file_name(self) -> str:
        return PurePosixPath(self.path).name

    @property
    def extension(self) -> str:
        return PurePosixPath(self.path).suffix.lstrip(".").lower()


class StorageInfo(BaseModel):
    storage_base_directory_path: str = ""
    file_relative_path: str = ""
    upload_key: str = ""


class BasicInfo(BaseModel):
    entity_type_name: str = ""
    collection_ref: str = ""
    collection_args: list[Any] = Field(default_factory=list)


class AssetProperties(BaseModel):
    """Structured metadata stored in the properties column."""

    user_custom: dict[str, Any] = Field(default_factory=dict)
    asset_variants: dict[str, AssetVariant] = Field(default_factory=dict)
    basic_info: BasicInfo = Field(default_factory=BasicInfo)
    storage_info: StorageInfo = Field(default_factory=StorageInfo)

    def put_variant(self, variant: AssetVariant) -> None:
        # Keyed by name so a regenerated variant replaces the previous entry
        self.asset_variants[variant.name] = variant

    def get_variant(self, name: str) -> AssetVariant | None:
        return self.asset_variants.get(name)

    def variants(self) -> list[AssetVariant]:
        return list(self.asset_variants.values())


# --- Asset ---


class Asset(BaseModel):
    """
    Persisted asset record.

    Lifecycle: active -> (variants appended) -> soft-deleted -> purged.
    """

    id: int | None = None
    entity_type: str
    entity_id: int
    collection: str
    name: str
    file_name: str
    mime_type: str
    size: int
    path: str
    order: int = Field(default=0, ge=0)
    properties: AssetProperties = Field(default_factory=AssetProperties)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None

    @property
    def extension(self) -> str:
        return PurePosixPath(self.file_name).suffix.lstrip(".").lower()

    @property
    def stem(self) -> str:
        return PurePosixPath(self.file_name).stem

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def get_variant(self, name: str) -> AssetVariant | None:
        return self.properties.get_variant(name)

    def get_custom_property(self, key: str, default: Any = None) -> Any:
        return self.properties.user_custom.get(key, default)
