from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import pytest

from assetdock.adapters.event_bus import InMemoryEventBus
from assetdock.adapters.local_storage import LocalFileStorage
from assetdock.components.adder import AssetService
from assetdock.components.collections import CollectionDefinition, CollectionRegistry
from assetdock.core.entities import Asset, AssetProperties
from assetdock.core.errors import DatabaseError

EPOCH = datetime(2026, 1, 1, 12, 0, 0, tzinfo=UTC)


class FixedClock:
    """Clock port double that only moves when told to."""

    def __init__(self, now: datetime = EPOCH) -> None:
        self.now = now

    def now_utc(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@dataclass
class Post:
    """Owner record used across tests."""

    id: int
    owner_type: str = "blog.post"

    def asset_owner_type(self) -> str:
        return self.owner_type

    def asset_owner_id(self) -> int:
        return self.id


class MockAssetRepo:
    """In-memory AssetRepoPort."""

    def __init__(self) -> None:
        self.assets: dict[int, Asset] = {}
        self._next_id = 1
        self.fail_on_create = False
        self.fail_purge_ids: set[int] = set()
        self.property_updates: list[int] = []

    def create(self, asset: Asset) -> Asset:
        if self.fail_on_create:
            raise DatabaseError("disk I/O error")
        stored = asset.model_copy(deep=True, update={"id": self._next_id})
        self._next_id += 1
        self.assets[stored.id] = stored
        return stored.model_copy(deep=True)

    def get_by_id(self, asset_id: int, *, with_deleted: bool = False) -> Asset | None:
        asset = self.assets.get(asset_id)
        if asset is None or (asset.is_deleted and not with_deleted):
            return None
        return asset.model_copy(deep=True)

    def update_properties(
        self, asset_id: int, properties: AssetProperties, updated_at: datetime
    ) -> bool:
        asset = self.assets.get(asset_id)
        if asset is None:
            return False
        asset.properties = properties.model_copy(deep=True)
        asset.updated_at = updated_at
        self.property_updates.append(asset_id)
        return True

    def soft_delete(self, asset_ids: list[int], deleted_at: datetime) -> int:
        count = 0
        for asset_id in asset_ids:
            asset = self.assets.get(asset_id)
            if asset is not None and asset.deleted_at is None:
                asset.deleted_at = deleted_at
                count += 1
        return count

    def list_scope(
        self,
        entity_type: str,
        entity_id: int,
        collection: str,
        *,
        include_deleted: bool = False,
    ) -> list[Asset]:
        found = [
            a.model_copy(deep=True)
            for a in self.assets.values()
            if a.entity_type == entity_type
            and a.entity_id == entity_id
            and a.collection == collection
            and (include_deleted or a.deleted_at is None)
        ]
        return sorted(found, key=lambda a: (a.created_at, a.id))

    def list_soft_deleted(self, limit: int) -> list[Asset]:
        deleted = [a for a in self.assets.values() if a.deleted_at is not None]
        deleted.sort(key=lambda a: (a.deleted_at, a.id))
        return [a.model_copy(deep=True) for a in deleted[:limit]]

    def purge(self, asset_id: int) -> bool:
        if asset_id in self.fail_purge_ids:
            raise DatabaseError("database is locked")
        return self.assets.pop(asset_id, None) is not None


class RecordingEventBus(InMemoryEventBus):
    def __init__(self) -> None:
        super().__init__()
        self.published: list[Any] = []

    def publish(self, event: Any) -> None:
        self.published.append(event)
        super().publish(event)

    def of(self, name: str) -> list[Any]:
        return [e for e in self.published if e.name == name]


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def repo() -> MockAssetRepo:
    return MockAssetRepo()


@pytest.fixture
def storage(tmp_path: Path) -> LocalFileStorage:
    return LocalFileStorage(tmp_path / "storage")


@pytest.fixture
def events() -> RecordingEventBus:
    return RecordingEventBus()


@pytest.fixture
def registry() -> CollectionRegistry:
    registry = CollectionRegistry()
    registry.register("documents", lambda: CollectionDefinition().allowed_extensions("pdf", "txt"))
    registry.register("avatar", lambda: CollectionDefinition().single_file_collection())
    registry.register("gallery", lambda: CollectionDefinition().only_keep_latest(2))
    return registry


@pytest.fixture
def service(repo, storage, registry, clock, events) -> AssetService:
    return AssetService(repo, storage, registry, clock, events)


@pytest.fixture
def make_file(tmp_path: Path) -> Callable[..., Path]:
    """Write an upload candidate outside storage."""
    uploads = tmp_path / "uploads"
    uploads.mkdir()

    def _make(name: str = "report.txt", content: bytes = b"hello world") -> Path:
        path = uploads / name
        path.write_bytes(content)
        return path

    return _make


@pytest.fixture
def owner() -> Post:
    return Post(1)


@pytest.fixture
def make_owner() -> Callable[..., Post]:
    return Post
