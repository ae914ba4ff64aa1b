"""
Filesystem pending storage.

Layout under the pending directory:
    <id>/file            staged payload
    <id>/metadata.json   PendingAsset fields (without the local file path)
"""

from __future__ import annotations

import json
import logging
import re
import secrets
from collections.abc import Iterator
from typing import TYPE_CHECKING

from pydantic import ValidationError

from assetdock.components.paths import join_path
from assetdock.core.errors import InvalidFileError, PendingAssetError

from .models import PendingAsset

if TYPE_CHECKING:
    from assetdock.core.ports.storage import FileStoragePort

logger = logging.getLogger(__name__)

PENDING_ID_PATTERN = re.compile(r"^[A-Za-z0-9_\-]{1,64}$")
PAYLOAD_FILE = "file"
METADATA_FILE = "metadata.json"
ID_BYTES = 16  # 128 bits


def is_valid_pending_id(pending_id: str) -> bool:
    return bool(pending_id) and PENDING_ID_PATTERN.match(pending_id) is not None


class FileSystemPendingStorage:
    def __init__(
        self,
        storage: FileStoragePort,
        directory: str = "assets_pending",
        *,
        default_ttl_seconds: int = 86400,
        id_generation_attempts: int = 5,
    ) -> None:
        self._storage = storage
        self._directory = directory
        self._default_ttl = default_ttl_seconds
        self._id_attempts = id_generation_attempts

    @property
    def default_ttl_seconds(self) -> int:
        return self._default_ttl

    def _entry(self, pending_id: str, *parts: str) -> str:
        return join_path(self._directory, pending_id, *parts)

    def generate_pending_id(self) -> str:
        for _ in range(self._id_attempts):
            pending_id = secrets.token_hex(ID_BYTES)
            if not self._storage.exists(self._entry(pending_id)):
                return pending_id
        raise PendingAssetError(
            f"Could not generate a unique pending id after {self._id_attempts} attempts"
        )

    def store(self, pending: PendingAsset, pending_id: str) -> None:
        if not is_valid_pending_id(pending_id):
            raise PendingAssetError(f"Invalid pending id {pending_id!r}")
        if pending.file_path is None or not pending.file_path.is_file():
            raise InvalidFileError(str(pending.file_path))

        source = pending.file_path
        payload_path = self._entry(pending_id, PAYLOAD_FILE)
        self._storage.ensure_directory(self._entry(pending_id))
        try:
            pending.size = self._storage.copy_in(source, payload_path)
            self._storage.write_bytes(
                self._entry(pending_id, METADATA_FILE),
                pending.model_dump_json().encode("utf-8"),
            )
        except OSError as e:
            self._storage.delete_directory(self._entry(pending_id))
            raise PendingAssetError(f"Could not stage pending asset {pending_id}: {e}") from e

        if pending.owns_file:
            source.unlink(missing_ok=True)
        pending.file_path = self._storage.absolute_path(payload_path)

    def fetch_by_id(self, pending_id: str) -> PendingAsset | None:
        if not is_valid_pending_id(pending_id):
            return None
        metadata_path = self._entry(pending_id, METADATA_FILE)
        if not self._storage.exists(metadata_path):
            return None
        return self._load(pending_id)

    def delete_by_id(self, pending_id: str) -> bool:
        if not is_valid_pending_id(pending_id):
            return False
        return self._storage.delete_directory(self._entry(pending_id))

    def iter_pending(self) -> Iterator[tuple[str, PendingAsset | None]]:
        root = self._storage.absolute_path(self._directory)
        if not root.is_dir():
            return
        for entry in sorted(root.iterdir()):
            if entry.is_dir() and is_valid_pending_id(entry.name):
                yield entry.name, self._load(entry.name)

    def _load(self, pending_id: str) -> PendingAsset | None:
        metadata_path = self._storage.absolute_path(self._entry(pending_id, METADATA_FILE))
        try:
            data = json.loads(metadata_path.read_text(encoding="utf-8"))
            pending = PendingAsset.model_validate(data)
        except (OSError, ValueError, ValidationError):
            logger.warning("Unreadable metadata for pending asset %s", pending_id)
            return None
        pending.id = pending_id
        pending.file_path = self._storage.absolute_path(self._entry(pending_id, PAYLOAD_FILE))
        return pending
