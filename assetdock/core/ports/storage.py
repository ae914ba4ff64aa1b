"""
File storage port.

Paths handed to the port are storage-relative POSIX strings such as
"private/assets/<hash>/42/<hash>/<key>/photo.jpg". Implementations resolve
them under their own root and must refuse paths escaping it.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol


class FileStoragePort(Protocol):
    """Storage interface for asset originals, variants and staged files."""

    def absolute_path(self, path: str) -> Path:
        """Resolve a storage-relative path to an absolute filesystem path."""
        ...

    def exists(self, path: str) -> bool:
        ...

    def size(self, path: str) -> int:
        """Size in bytes. Raises StorageError if missing."""
        ...

    def ensure_directory(self, path: str) -> bool:
        """Create the directory (and parents). Returns True if it was created."""
        ...

    def copy_in(self, source: Path, path: str) -> int:
        """Copy an external file into storage. Returns bytes written."""
        ...

    def write_bytes(self, path: str, data: bytes) -> int:
        ...

    def delete(self, path: str) -> bool:
        """Delete a file. Returns False if it did not exist."""
        ...

    def delete_directory(self, path: str) -> bool:
        """Delete a directory tree. Returns False if it did not exist."""
        ...

    def delete_empty_directory(self, path: str) -> bool:
        """Delete a directory only if it is empty. Returns True if removed."""
        ...


class StorageError(Exception):
    """Base class for storage errors."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"{reason}: {path}")


class PathOutsideRootError(StorageError):
    """Raised when a path resolves outside the storage root."""

    def __init__(self, path: str) -> None:
        super().__init__(path, "Path escapes storage root")
