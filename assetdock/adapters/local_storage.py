"""
Local Filesystem Storage Adapter (FileStoragePort implementation).

Stores asset originals, variants and staged files under a single root.
Directory structure: {base_path}/{storage-relative path}

Invariants:
- Every resolved path stays inside base_path
- Copies go through a temporary file and an atomic rename
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from assetdock.core.ports.storage import PathOutsideRootError, StorageError

logger = logging.getLogger(__name__)


class LocalFileStorage:
    """Local filesystem implementation of FileStoragePort."""

    def __init__(
        self,
        base_path: str | Path,
        *,
        create_dirs: bool = True,
    ) -> None:
        """
        Initialize local file storage.

        Args:
            base_path: Root directory for storage
            create_dirs: Whether to create the root if it doesn't exist
        """
        self.base_path = Path(base_path).resolve()

        if create_dirs:
            self.base_path.mkdir(parents=True, exist_ok=True)

    def absolute_path(self, path: str) -> Path:
        """Resolve a storage-relative path, refusing traversal outside the root."""
        target = (self.base_path / path.lstrip("/")).resolve()
        if target != self.base_path and self.base_path not in target.parents:
            raise PathOutsideRootError(path)
        return target

    def exists(self, path: str) -> bool:
        return self.absolute_path(path).exists()

    def size(self, path: str) -> int:
        target = self.absolute_path(path)
        if not target.is_file():
            raise StorageError(path, "File not found")
        return target.stat().st_size

    def ensure_directory(self, path: str) -> bool:
        target = self.absolute_path(path)
        if target.is_dir():
            return False
        target.mkdir(parents=True, exist_ok=True)
        return True

    def copy_in(self, source: Path, path: str) -> int:
        target = self.absolute_path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        tmp = target.with_name(f".{target.name}.tmp")
        try:
            shutil.copyfile(source, tmp)
            os.replace(tmp, target)
        except OSError:
            tmp.unlink(missing_ok=True)
            raise
        return target.stat().st_size

    def write_bytes(self, path: str, data: bytes) -> int:
        target = self.absolute_path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        tmp = target.with_name(f".{target.name}.tmp")
        try:
            with open(tmp, "wb") as f:
                f.write(data)
            os.replace(tmp, target)
        except OSError:
            tmp.unlink(missing_ok=True)
            raise
        return len(data)

    def delete(self, path: str) -> bool:
        target = self.absolute_path(path)
        if not target.exists():
            return False
        target.unlink()
        return True

    def delete_directory(self, path: str) -> bool:
        target = self.absolute_path(path)
        if target == self.base_path:
            raise StorageError(path, "Refusing to delete storage root")
        if not target.is_dir():
            return False
        shutil.rmtree(target)
        return True

    def delete_empty_directory(self, path: str) -> bool:
        target = self.absolute_path(path)
        if target == self.base_path or not target.is_dir():
            return False
        if any(target.iterdir()):
            return False
        target.rmdir()
        return True


def create_local_storage(base_path: str | None = None) -> LocalFileStorage:
    """
    Create local storage with default configuration.

    Uses ASSETDOCK_STORAGE_ROOT env var or defaults to ./storage
    """
    if base_path is None:
        base_path = os.environ.get("ASSETDOCK_STORAGE_ROOT", "./storage")
    logger.debug("Using local storage at %s", base_path)
    return LocalFileStorage(base_path)
