"""
Unit tests for the adder component.

Covers validation order, rollback on failure, retention caps and the
events published on admission.
"""

from pathlib import Path

import pytest

from assetdock.components.collections import CollectionDefinition
from assetdock.components.pending import PendingAsset
from assetdock.core.entities import scope_hash
from assetdock.core.errors import (
    CannotCopyFileError,
    DatabaseError,
    FileNameNotAllowedError,
    FileTooLargeError,
    InvalidArgumentError,
    InvalidFileError,
    InvalidFileExtensionError,
    InvalidMimeTypeError,
)

# --- Helpers ---


def stored_files(storage) -> list[Path]:
    return [p for p in storage.base_path.rglob("*") if p.is_file()]


# --- Admission ---


class TestAddAsset:
    def test_stores_file_and_row(self, service, repo, storage, owner, make_file):
        source = make_file("report.txt", b"quarterly numbers")

        asset = service.add_asset(owner, source).add("documents")

        assert asset.id == 1
        assert asset.file_name == "report.txt"
        assert asset.name == "report"
        assert asset.mime_type == "text/plain"
        assert asset.size == len(b"quarterly numbers")
        assert asset.entity_type == scope_hash("blog.post")
        assert asset.entity_id == owner.id
        assert asset.collection == scope_hash("documents")
        assert storage.exists(asset.path)
        assert storage.absolute_path(asset.path).read_bytes() == b"quarterly numbers"
        assert repo.get_by_id(asset.id) is not None

    def test_path_is_partitioned_by_owner_and_collection(self, service, owner, make_file):
        asset = service.add_asset(owner, make_file()).add("documents")

        expected_prefix = "/".join(
            ["public", "assets", scope_hash("blog.post"), "1", scope_hash("documents")]
        )
        assert asset.path.startswith(expected_prefix + "/")
        assert asset.path.endswith("/report.txt")

    def test_properties_record_collection_and_storage(self, service, owner, make_file):
        asset = service.add_asset(owner, make_file()).add("documents")

        info = asset.properties.basic_info
        assert info.entity_type_name == "blog.post"
        assert info.collection_ref == "documents"
        assert info.collection_args == []

        storage_info = asset.properties.storage_info
        assert storage_info.storage_base_directory_path == "public"
        assert asset.path == f"public/{storage_info.file_relative_path}"
        assert storage_info.upload_key in asset.path

    def test_source_removed_by_default(self, service, owner, make_file):
        source = make_file()
        service.add_asset(owner, source).add("documents")
        assert not source.exists()

    def test_preserving_original_keeps_source(self, service, owner, make_file):
        source = make_file()
        service.add_asset(owner, source).preserving_original().add("documents")
        assert source.exists()

    def test_builder_options_applied(self, service, owner, make_file):
        asset = (
            service.add_asset(owner, make_file("draft.txt"))
            .using_name("Final draft")
            .using_file_name("final.txt")
            .set_order(3)
            .with_custom_properties({"alt": "cover"})
            .with_custom_property("author", "sam")
            .add("documents")
        )

        assert asset.name == "Final draft"
        assert asset.file_name == "final.txt"
        assert asset.order == 3
        assert asset.get_custom_property("alt") == "cover"
        assert asset.get_custom_property("author") == "sam"
        assert asset.get_custom_property("missing", "x") == "x"

    def test_negative_order_rejected(self, service, owner, make_file):
        with pytest.raises(InvalidArgumentError):
            service.add_asset(owner, make_file()).set_order(-1)

    def test_owner_must_implement_capability(self, service, make_file):
        with pytest.raises(InvalidArgumentError):
            service.add_asset(object(), make_file())

    def test_unregistered_collection(self, service, owner, make_file):
        with pytest.raises(InvalidArgumentError):
            service.add_asset(owner, make_file()).add("nope")

    def test_publishes_asset_created(self, service, events, owner, make_file):
        asset = service.add_asset(owner, make_file()).add("documents")

        created = events.of("asset.created")
        assert len(created) == 1
        assert created[0].asset.id == asset.id
        assert created[0].owner is owner

    def test_from_pending_asset(self, service, owner, make_file):
        pending = PendingAsset.from_file(
            make_file("scan.txt"), name="Signed scan", custom_properties={"pages": 2}
        )

        asset = service.add_asset(owner, pending).add("documents")

        assert asset.name == "Signed scan"
        assert asset.file_name == "scan.txt"
        assert asset.get_custom_property("pages") == 2


# --- Validation ---


class TestValidation:
    """First failure wins and nothing is left behind."""

    def test_missing_file(self, service, storage, repo, owner, tmp_path):
        with pytest.raises(InvalidFileError):
            service.add_asset(owner, tmp_path / "ghost.txt").add("documents")
        assert stored_files(storage) == []
        assert repo.assets == {}

    def test_directory_is_not_a_file(self, service, owner, tmp_path):
        with pytest.raises(InvalidFileError):
            service.add_asset(owner, tmp_path).add("documents")

    def test_size_checked_before_extension(self, service, registry, owner, make_file):
        registry.register(
            "tiny", lambda: CollectionDefinition().set_max_file_size(5).allowed_extensions("pdf")
        )
        with pytest.raises(FileTooLargeError) as exc_info:
            service.add_asset(owner, make_file("big.txt", b"0123456789")).add("tiny")

        assert exc_info.value.file_size == 10
        assert exc_info.value.max_file_size == 5

    def test_file_at_max_size_accepted(self, service, registry, owner, make_file):
        registry.register("tiny", lambda: CollectionDefinition().set_max_file_size(5))
        asset = service.add_asset(owner, make_file("ok.txt", b"12345")).add("tiny")
        assert asset.size == 5

    def test_extension_not_allowed(self, service, storage, repo, owner, make_file):
        source = make_file("notes.md")
        with pytest.raises(InvalidFileExtensionError) as exc_info:
            service.add_asset(owner, source).add("documents")

        assert exc_info.value.extension == "md"
        assert exc_info.value.allowed == frozenset({"pdf", "txt"})
        assert source.exists()
        assert stored_files(storage) == []
        assert repo.assets == {}

    def test_extension_match_is_case_insensitive(self, service, owner, make_file):
        asset = service.add_asset(owner, make_file("REPORT.TXT")).add("documents")
        assert asset.extension == "txt"

    def test_extension_checked_before_mime(self, service, registry, owner, make_file):
        registry.register(
            "strict",
            lambda: CollectionDefinition().allowed_extensions("png").allowed_mime_types("image/png"),
        )
        with pytest.raises(InvalidFileExtensionError):
            service.add_asset(owner, make_file("notes.txt")).add("strict")

    def test_mime_type_not_allowed(self, service, registry, owner, make_file):
        registry.register("images", lambda: CollectionDefinition().allowed_mime_types("image/png"))
        with pytest.raises(InvalidMimeTypeError) as exc_info:
            service.add_asset(owner, make_file("notes.txt")).add("images")
        assert exc_info.value.mime_type == "text/plain"

    def test_explicit_mime_type_is_validated(self, service, registry, owner, make_file):
        registry.register("images", lambda: CollectionDefinition().allowed_mime_types("image/png"))
        asset = (
            service.add_asset(owner, make_file("blob.bin"))
            .using_mime_type("IMAGE/PNG")
            .add("images")
        )
        assert asset.mime_type == "image/png"

    def test_blocked_file_name(self, service, storage, owner, make_file):
        source = make_file("shell.php")
        with pytest.raises(FileNameNotAllowedError):
            service.add_asset(owner, source).add("avatar")
        assert source.exists()
        assert stored_files(storage) == []

    def test_file_name_is_sanitized(self, service, owner, make_file):
        asset = service.add_asset(owner, make_file("my report#1.txt")).add("documents")
        assert asset.file_name == "my-report-1.txt"
        assert asset.path.endswith("/my-report-1.txt")

    def test_custom_sanitizer(self, service, owner, make_file):
        asset = (
            service.add_asset(owner, make_file("Report.txt"))
            .sanitizing_file_name_with(str.lower)
            .add("documents")
        )
        assert asset.file_name == "report.txt"


# --- Rollback ---


class TestRollback:
    def test_database_error_removes_stored_file(self, service, repo, storage, owner, make_file):
        repo.fail_on_create = True
        source = make_file()

        with pytest.raises(DatabaseError):
            service.add_asset(owner, source).add("documents")

        assert stored_files(storage) == []
        assert source.exists()

    def test_unexpected_repo_error_wrapped(self, service, repo, storage, owner, make_file, monkeypatch):
        def boom(asset):
            raise RuntimeError("connection reset")

        monkeypatch.setattr(repo, "create", boom)

        with pytest.raises(DatabaseError) as exc_info:
            service.add_asset(owner, make_file()).add("documents")

        assert "connection reset" in exc_info.value.detail
        assert exc_info.value.public_message != exc_info.value.message
        assert stored_files(storage) == []

    def test_copy_failure(self, service, repo, storage, owner, make_file, monkeypatch):
        def fail_copy(source, path):
            raise OSError("No space left on device")

        monkeypatch.setattr(storage, "copy_in", fail_copy)

        with pytest.raises(CannotCopyFileError):
            service.add_asset(owner, make_file()).add("documents")

        assert repo.assets == {}
        assert stored_files(storage) == []


# --- Retention ---


class TestRetention:
    def test_single_file_collection_replaces_previous(
        self, service, repo, events, clock, owner, make_file
    ):
        first = service.add_asset(owner, make_file("a.png")).add("avatar")
        clock.advance(1)
        second = service.add_asset(owner, make_file("b.png")).add("avatar")

        remaining = service.get_assets(owner, "avatar")
        assert [a.id for a in remaining] == [second.id]
        assert repo.get_by_id(first.id) is None
        assert repo.get_by_id(first.id, with_deleted=True).is_deleted

        deleted = events.of("asset.deleted")
        assert [(e.asset_id, e.reason) for e in deleted] == [(first.id, "evicted")]

    def test_keep_latest_evicts_oldest(self, service, clock, owner, make_file):
        ids = []
        for i in range(4):
            ids.append(service.add_asset(owner, make_file(f"p{i}.jpg")).add("gallery").id)
            clock.advance(1)

        remaining = [a.id for a in service.get_assets(owner, "gallery")]
        assert remaining == ids[-2:]

    def test_eviction_tie_broken_by_id(self, service, owner, make_file):
        # Fixed clock: every admission shares created_at
        ids = [
            service.add_asset(owner, make_file(f"p{i}.jpg")).add("gallery").id for i in range(3)
        ]

        remaining = [a.id for a in service.get_assets(owner, "gallery")]
        assert remaining == ids[1:]

    def test_eviction_scoped_to_owner(self, service, make_owner, make_file):
        alice, bob = make_owner(1), make_owner(2)
        service.add_asset(alice, make_file("a.png")).add("avatar")
        service.add_asset(bob, make_file("b.png")).add("avatar")

        assert len(service.get_assets(alice, "avatar")) == 1
        assert len(service.get_assets(bob, "avatar")) == 1

    def test_eviction_scoped_to_owner_type(self, service, make_owner, make_file):
        post = make_owner(1)
        page = make_owner(1, "cms.page")
        service.add_asset(post, make_file("a.png")).add("avatar")
        service.add_asset(page, make_file("b.png")).add("avatar")

        assert len(service.get_assets(post, "avatar")) == 1
        assert len(service.get_assets(page, "avatar")) == 1

    def test_unbounded_collection_keeps_everything(self, service, owner, make_file):
        for i in range(3):
            service.add_asset(owner, make_file(f"f{i}.txt")).add("documents")
        assert len(service.get_assets(owner, "documents")) == 3

    def test_evicted_files_stay_until_garbage_collection(
        self, service, storage, owner, make_file
    ):
        first = service.add_asset(owner, make_file("a.png")).add("avatar")
        service.add_asset(owner, make_file("b.png")).add("avatar")
        assert storage.exists(first.path)


# --- Deletion ---


class TestDeleteAsset:
    def test_soft_deletes_and_publishes(self, service, repo, events, owner, make_file):
        asset = service.add_asset(owner, make_file()).add("documents")

        assert service.delete_asset(asset.id) is True
        assert repo.get_by_id(asset.id) is None
        assert events.of("asset.deleted")[0].reason == "deleted"

    def test_delete_twice(self, service, owner, make_file):
        asset = service.add_asset(owner, make_file()).add("documents")
        service.delete_asset(asset.id)
        assert service.delete_asset(asset.id) is False

    def test_regenerate_without_dispatcher(self, service, owner, make_file):
        asset = service.add_asset(owner, make_file()).add("documents")
        assert service.regenerate_variants(asset.id) is None
