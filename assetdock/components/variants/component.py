"""
Variants component - asynchronous variant processing.

One job invocation runs this state machine:

    Start -> LoadAsset -> RunVariants -> PersistMetadata -> CollectGarbage -> Done

Invariants:
- A missing asset fails the job with AssetNotFoundError, which is not retried
- Variants are stored by name: re-running replaces, never duplicates
- The first failing transform aborts the rest of the run (FileVariantError)
- Only the properties column is written back
- Garbage collection errors never fail the job

Key behaviors:
- Retries re-run the whole state machine from LoadAsset
- persist_partial_variants decides whether variants produced before a
  failure are saved (default: discarded, files included)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from assetdock.core.entities import AssetVariant
from assetdock.core.errors import AssetNotFoundError, FileVariantError
from assetdock.core.events import AssetUpdated, VariantCreated
from assetdock.core.ports.storage import StorageError

from .builder import VariantBuilder
from .models import GarbageReport, VariantsJobPayload, VariantsRunResult, VariantsState

if TYPE_CHECKING:
    from assetdock.components.collections import (
        CollectionDefinition,
        CollectionRegistry,
        VariantRegistration,
    )
    from assetdock.components.pending import PendingAssetManager
    from assetdock.core.entities import Asset
    from assetdock.core.ports.clock import ClockPort
    from assetdock.core.ports.db import AssetRepoPort
    from assetdock.core.ports.events import EventPublisherPort
    from assetdock.core.ports.jobs import JobQueuePort
    from assetdock.core.ports.storage import FileStoragePort
    from assetdock.rules.models import VariantRules

    from .garbage import GarbageCollector

logger = logging.getLogger(__name__)


class VariantsProcess:
    """Runs one variants job payload."""

    def __init__(
        self,
        repo: AssetRepoPort,
        registry: CollectionRegistry,
        storage: FileStoragePort,
        clock: ClockPort,
        *,
        events: EventPublisherPort | None = None,
        garbage_collector: GarbageCollector | None = None,
        pending_manager: PendingAssetManager | None = None,
        persist_partial_variants: bool = False,
    ) -> None:
        self._repo = repo
        self._registry = registry
        self._storage = storage
        self._clock = clock
        self._events = events
        self._garbage_collector = garbage_collector
        self._pending_manager = pending_manager
        self._persist_partial = persist_partial_variants

    def handle(self, payload: dict[str, Any]) -> VariantsRunResult:
        """Queue handler entry point."""
        return self.run(VariantsJobPayload.model_validate(payload))

    def run(
        self, payload: VariantsJobPayload, *, collect_garbage: bool = True
    ) -> VariantsRunResult:
        result = VariantsRunResult(asset_id=payload.asset_id, state=VariantsState.START)

        result.state = VariantsState.LOAD_ASSET
        asset = self._repo.get_by_id(payload.asset_id)
        if asset is None:
            # Legitimate when the asset was purged before the job ran
            logger.info("Asset %s no longer exists; variants job dropped", payload.asset_id)
            raise AssetNotFoundError(payload.asset_id)
        collection = self._registry.resolve(payload.definition_ref, *payload.definition_args)

        result.state = VariantsState.RUN_VARIANTS
        produced = self._run_variants(asset, collection, result)

        result.state = VariantsState.PERSIST_METADATA
        self._persist(asset, produced)

        if collect_garbage:
            result.state = VariantsState.COLLECT_GARBAGE
            result.garbage = self._collect_garbage()

        result.state = VariantsState.DONE
        logger.info(
            "Variants job for asset %s done: %d produced, %d declined",
            asset.id,
            len(result.produced),
            len(result.declined),
        )
        return result

    # --- States ---

    def _run_variants(
        self, asset: Asset, collection: CollectionDefinition, result: VariantsRunResult
    ) -> list[AssetVariant]:
        produced: list[AssetVariant] = []
        recorded = {variant.path for variant in asset.properties.variants()}

        for registration in collection.get_variants():
            builder = VariantBuilder(asset, registration, collection, self._storage)
            try:
                variant = self._invoke(asset, registration, builder)
            except FileVariantError:
                orphans = [builder.path]
                if self._persist_partial and produced:
                    self._persist(asset, produced)
                else:
                    orphans.extend(v.path for v in produced)
                self._discard(asset, orphans, recorded)
                raise

            if variant is None:
                logger.info("Variant %s declined for asset %s", registration.name, asset.id)
                result.declined.append(registration.name)
                continue

            asset.properties.put_variant(variant)
            produced.append(variant)
            result.produced.append(variant.name)

        return produced

    def _invoke(
        self, asset: Asset, registration: VariantRegistration, builder: VariantBuilder
    ) -> AssetVariant | None:
        try:
            variant = registration.transform(builder)
        except FileVariantError:
            raise
        except Exception as e:
            raise FileVariantError(registration.name, asset.id, str(e)) from e

        if variant is None:
            return None
        if not isinstance(variant, AssetVariant):
            raise FileVariantError(
                registration.name, asset.id, f"transform returned {type(variant).__name__}"
            )
        if not self._storage.exists(variant.path):
            raise FileVariantError(registration.name, asset.id, "variant file was not written")
        if variant.name != registration.name:
            variant = variant.model_copy(update={"name": registration.name})
        return variant

    def _persist(self, asset: Asset, produced: list[AssetVariant]) -> None:
        if asset.id is None:
            raise AssetNotFoundError(None)
        if not self._repo.update_properties(asset.id, asset.properties, self._clock.now_utc()):
            raise AssetNotFoundError(asset.id)

        if self._events is not None:
            self._events.publish(AssetUpdated(asset_id=asset.id))
            for variant in produced:
                self._events.publish(VariantCreated(asset_id=asset.id, variant=variant))

    def _discard(self, asset: Asset, paths: list[str], recorded: set[str]) -> None:
        """Remove files an aborted run wrote that properties will never reference."""
        for path in dict.fromkeys(paths):
            if path in recorded:
                continue
            try:
                if self._storage.delete(path):
                    logger.info("Discarded unpersisted variant %s of asset %s", path, asset.id)
            except (OSError, StorageError):
                logger.exception("Failed to discard variant %s of asset %s", path, asset.id)

    def _collect_garbage(self) -> GarbageReport:
        report = GarbageReport()
        if self._garbage_collector is not None:
            try:
                report = self._garbage_collector.collect()
            except Exception:
                logger.exception("Garbage collection failed")

        if self._pending_manager is not None:
            try:
                report.pending_removed = self._pending_manager.clean_expired_pending_assets()
            except Exception:
                logger.exception("Expired pending asset cleanup failed")

        return report


class VariantDispatcher:
    """
    Sends admitted assets to variant processing.

    Queued by default; inline when the rules disable the queue or no queue
    is wired.
    """

    def __init__(
        self,
        rules: VariantRules,
        *,
        queue: JobQueuePort | None = None,
        process: VariantsProcess | None = None,
    ) -> None:
        self._rules = rules
        self._queue = queue
        self._process = process

    def dispatch(self, asset: Asset, definition_ref: str, definition_args: list[Any]) -> str | None:
        """Returns the job id when queued, None when run inline."""
        if asset.id is None:
            raise AssetNotFoundError(None)
        payload = VariantsJobPayload(
            asset_id=asset.id,
            definition_ref=definition_ref,
            definition_args=list(definition_args),
        )

        if self._rules.run_on_queue and self._queue is not None:
            try:
                return self._queue.enqueue(
                    self._rules.queue_name,
                    self._rules.handler_name,
                    payload.model_dump(mode="json"),
                    dedup_key=f"asset:{asset.id}",
                )
            except Exception as e:
                raise FileVariantError("*", asset.id, f"could not enqueue variants job: {e}") from e

        if self._process is None:
            logger.warning("No variants process wired; asset %s left without variants", asset.id)
            return None
        self._process.run(payload, collect_garbage=False)
        return None
