"""
End-to-end asset lifecycle through the wired AssetContext.

Admission -> queued variants job -> worker -> soft delete -> garbage
collection, plus pending uploads promoted into collections.
"""

import pytest
from fastapi import Request, Response

from assetdock.app_shell.context import AssetContext
from assetdock.components.collections import CollectionDefinition, CollectionRegistry
from assetdock.components.pending import (
    CookiePendingSecurityToken,
    PendingAsset,
    RequestPendingSecurityToken,
    SessionPendingSecurityToken,
)
from assetdock.rules.models import AssetRules


def thumbnail(builder):
    return builder.write(builder.read_source()[:5])


@pytest.fixture
def ctx(tmp_path, clock) -> AssetContext:
    rules = AssetRules.model_validate(
        {
            "storage": {"root": str(tmp_path / "storage")},
            "collections": {"attachments": {"visibility": "private", "keep_latest": 2}},
        }
    )
    registry = CollectionRegistry()
    registry.register(
        "photos", lambda: CollectionDefinition().add_variant("thumb", thumbnail)
    )
    db_path = str(tmp_path / "assetdock.db")
    context = AssetContext.create(rules, db_path, clock=clock, registry=registry)
    context.migrate(db_path)
    return context


class TestVariantLifecycle:
    def test_admission_queues_variants_for_worker(self, ctx, owner, make_file):
        created = []
        ctx.events.subscribe("variant.created", created.append)

        asset = ctx.asset_service.add_asset(owner, make_file("beach.jpg", b"waves and sand")).add(
            "photos"
        )

        # Queued, not yet processed
        assert ctx.repo.get_by_id(asset.id).get_variant("thumb") is None

        result = ctx.worker.run_due_jobs()

        assert result.succeeded == 1
        thumb = ctx.repo.get_by_id(asset.id).get_variant("thumb")
        assert thumb.file_name == "beach-thumb.jpg"
        assert ctx.storage.absolute_path(thumb.path).read_bytes() == b"waves"
        assert [e.variant.name for e in created] == ["thumb"]

    def test_job_for_purged_asset_fails_without_retry(self, ctx, owner, make_file):
        asset = ctx.asset_service.add_asset(owner, make_file("beach.jpg")).add("photos")
        ctx.asset_service.delete_asset(asset.id)
        ctx.garbage_collector.collect()

        result = ctx.worker.run_due_jobs()

        assert result.failed == 1
        assert result.retried == 0

    def test_delete_then_collect(self, ctx, owner, make_file):
        asset = ctx.asset_service.add_asset(owner, make_file("beach.jpg")).add("photos")
        ctx.worker.run_due_jobs()
        thumb_path = ctx.repo.get_by_id(asset.id).get_variant("thumb").path

        ctx.asset_service.delete_asset(asset.id)
        report = ctx.garbage_collector.collect()

        assert report.purged == [asset.id]
        assert not ctx.storage.exists(asset.path)
        assert not ctx.storage.exists(thumb_path)
        assert ctx.repo.get_by_id(asset.id, with_deleted=True) is None

    def test_rules_collection_keep_latest(self, ctx, clock, owner, make_file):
        ids = []
        for i in range(3):
            asset = ctx.asset_service.add_asset(owner, make_file(f"f{i}.pdf")).add("attachments")
            ids.append(asset.id)
            clock.advance(1)

        remaining = ctx.asset_service.get_assets(owner, "attachments")
        assert [a.id for a in remaining] == ids[1:]
        assert all(a.path.startswith("private/") for a in remaining)

    def test_temporary_url_for_private_asset(self, ctx, owner, make_file):
        asset = ctx.asset_service.add_asset(owner, make_file("deed.pdf", b"%PDF")).add(
            "attachments"
        )

        token = ctx.access_service.create_temporary_url_token(asset.id)
        download = ctx.access_service.resolve_temporary_download(token)

        assert download.path.read_bytes() == b"%PDF"


class TestPendingLifecycle:
    def test_session_upload_promoted(self, ctx, owner, make_file):
        manager = ctx.pending_for_request(session_id="browser-1")
        pending_id = manager.store(PendingAsset.from_file(make_file("draft.pdf", b"v1")))

        asset = manager.promote(pending_id, ctx.asset_service, owner, "attachments")

        assert asset.file_name == "draft.pdf"
        assert manager.fetch_by_id(pending_id) is None
        assert ctx.pending_storage.fetch_by_id(pending_id) is None

    def test_other_session_cannot_promote(self, ctx, owner, make_file):
        mine = ctx.pending_for_request(session_id="browser-1")
        pending_id = mine.store(PendingAsset.from_file(make_file("draft.pdf")))

        theirs = ctx.pending_for_request(session_id="browser-2")
        assert theirs.fetch_by_id(pending_id) is None

    def test_expired_uploads_swept_by_variants_job(self, ctx, clock, owner, make_file):
        ctx.pending_manager.store(PendingAsset.from_file(make_file("old.pdf")), ttl_seconds=60)
        clock.advance(61)

        ctx.asset_service.add_asset(owner, make_file("beach.jpg")).add("photos")
        ctx.worker.run_due_jobs()

        assert list(ctx.pending_storage.iter_pending()) == []


class TestTokenProviderSelection:
    def request(self) -> Request:
        return Request(
            {"type": "http", "method": "POST", "path": "/", "headers": [], "query_string": b""}
        )

    def test_session_default(self, ctx):
        assert isinstance(ctx.token_provider(session_id="s"), SessionPendingSecurityToken)
        assert ctx.token_provider() is None

    def test_cookie(self, ctx):
        ctx.rules.pending.token.provider = "cookie"
        provider = ctx.token_provider(request=self.request(), response=Response())
        assert isinstance(provider, CookiePendingSecurityToken)

    def test_request(self, ctx):
        ctx.rules.pending.token.provider = "request"
        assert isinstance(ctx.token_provider(request=self.request()), RequestPendingSecurityToken)

    def test_none(self, ctx):
        ctx.rules.pending.token.provider = "none"
        assert ctx.token_provider(session_id="s") is None


def test_rules_collections_registered(ctx):
    assert ctx.registry.resolve("attachments").get_max_items() == 2
    assert ctx.registry.resolve("attachments").is_private()
