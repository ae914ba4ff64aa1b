from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from assetdock.adapters.clock import SystemClock
from assetdock.adapters.dev_jobs import DevJobQueue, DevJobScheduler, DevJobWorker
from assetdock.adapters.event_bus import InMemoryEventBus
from assetdock.adapters.local_storage import LocalFileStorage
from assetdock.adapters.session_store import InMemorySessionStore
from assetdock.adapters.sqlite import SQLiteAssetRepo, SQLiteJobQueue, SQLiteMigrator
from assetdock.components.access import AssetAccessService, TempUrlTokenService
from assetdock.components.adder import AssetService
from assetdock.components.collections import CollectionRegistry
from assetdock.components.paths import DefaultPathGenerator
from assetdock.components.pending import (
    CookiePendingSecurityToken,
    FileSystemPendingStorage,
    PendingAssetManager,
    RequestPendingSecurityToken,
    SessionPendingSecurityToken,
)
from assetdock.components.variants import GarbageCollector, VariantDispatcher, VariantsProcess
from assetdock.rules.models import AssetRules

if TYPE_CHECKING:
    from fastapi import Request, Response

    from assetdock.components.pending import PendingSecurityTokenPort
    from assetdock.core.ports.clock import ClockPort
    from assetdock.core.ports.db import AssetRepoPort
    from assetdock.core.ports.storage import FileStoragePort


@dataclass
class AssetContext:
    rules: AssetRules
    clock: ClockPort
    repo: AssetRepoPort
    storage: FileStoragePort
    registry: CollectionRegistry
    events: InMemoryEventBus
    queue: DevJobQueue | SQLiteJobQueue
    worker: DevJobWorker
    variants_process: VariantsProcess
    garbage_collector: GarbageCollector
    pending_storage: FileSystemPendingStorage
    pending_manager: PendingAssetManager  # Maintenance use: no token provider
    asset_service: AssetService
    access_service: AssetAccessService
    session_store: InMemorySessionStore

    @classmethod
    def create(
        cls,
        rules: AssetRules,
        db_path: str,
        *,
        clock: ClockPort | None = None,
        registry: CollectionRegistry | None = None,
        repo: AssetRepoPort | None = None,
        queue: DevJobQueue | SQLiteJobQueue | None = None,
    ) -> AssetContext:
        clock = clock or SystemClock()

        # Adapters
        repo = repo or SQLiteAssetRepo(db_path)
        storage = LocalFileStorage(Path(rules.storage.root))
        events = InMemoryEventBus()
        queue = queue or SQLiteJobQueue(db_path, clock)
        session_store = InMemorySessionStore()

        # Collections
        if registry is None:
            registry = CollectionRegistry(
                DefaultPathGenerator(rules.storage.public_dir, rules.storage.private_dir)
            )
        registry.register_from_rules(rules.collections)

        # Pending
        pending_storage = FileSystemPendingStorage(
            storage,
            rules.storage.pending_dir,
            default_ttl_seconds=rules.pending.default_ttl_seconds,
            id_generation_attempts=rules.pending.id_generation_attempts,
        )
        pending_manager = PendingAssetManager(pending_storage, clock)

        # Variants
        garbage_collector = GarbageCollector(
            repo, storage, batch_size=rules.variants.gc_batch_size, registry=registry
        )
        variants_process = VariantsProcess(
            repo,
            registry,
            storage,
            clock,
            events=events,
            garbage_collector=garbage_collector,
            pending_manager=pending_manager,
            persist_partial_variants=rules.variants.persist_partial_variants,
        )
        worker = DevJobWorker(
            queue,
            rules.variants.queue_name,
            max_attempts=rules.variants.max_attempts,
            retry_after_seconds=rules.variants.retry_after_seconds,
            clock=clock,
        )
        worker.register(rules.variants.handler_name, variants_process.handle)
        dispatcher = VariantDispatcher(rules.variants, queue=queue, process=variants_process)

        # Services
        asset_service = AssetService(repo, storage, registry, clock, events, dispatcher)
        temp_urls = TempUrlTokenService(
            rules.temp_urls.secret_key,
            clock,
            algorithm=rules.temp_urls.algorithm,
            default_ttl_seconds=rules.temp_urls.default_ttl_seconds,
        )
        access_service = AssetAccessService(repo, registry, storage, temp_urls)

        return cls(
            rules=rules,
            clock=clock,
            repo=repo,
            storage=storage,
            registry=registry,
            events=events,
            queue=queue,
            worker=worker,
            variants_process=variants_process,
            garbage_collector=garbage_collector,
            pending_storage=pending_storage,
            pending_manager=pending_manager,
            asset_service=asset_service,
            access_service=access_service,
            session_store=session_store,
        )

    def migrate(self, db_path: str) -> list[str]:
        return SQLiteMigrator(db_path).run_migrations()

    def scheduler(self, poll_interval_seconds: float = 5.0) -> DevJobScheduler:
        return DevJobScheduler(self.worker, poll_interval_seconds)

    def token_provider(
        self,
        *,
        session_id: str | None = None,
        request: Request | None = None,
        response: Response | None = None,
    ) -> PendingSecurityTokenPort | None:
        """Build the configured provider for one request."""
        cfg = self.rules.pending.token
        if cfg.provider == "session":
            if session_id is None:
                return None
            return SessionPendingSecurityToken(
                self.session_store, session_id, self.clock, cfg.ttl_seconds, cfg.length_bytes
            )
        if cfg.provider == "cookie":
            return CookiePendingSecurityToken(
                request, response, cfg.cookie_name, cfg.ttl_seconds, cfg.length_bytes
            )
        if cfg.provider == "request":
            return RequestPendingSecurityToken(
                request, cfg.header_name, cfg.request_key, cfg.ttl_seconds, cfg.length_bytes
            )
        return None

    def pending_for_request(
        self,
        *,
        session_id: str | None = None,
        request: Request | None = None,
        response: Response | None = None,
    ) -> PendingAssetManager:
        """Request-scoped manager that enforces the configured token provider."""
        provider = self.token_provider(session_id=session_id, request=request, response=response)
        return PendingAssetManager(self.pending_storage, self.clock, provider)
