"""
Pending component models.

A PendingAsset is a staged upload that has not yet been committed as an
Asset. Its fields mirror the Asset it will become.
"""

from __future__ import annotations

import base64
import binascii
import mimetypes
import re
import tempfile
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, PrivateAttr

from assetdock.core.errors import InvalidFileError, PendingAssetError

DEFAULT_MIME_TYPE = "application/octet-stream"
DATA_URL_PATTERN = re.compile(r"^data:(?P<mime>[\w\-+.]+/[\w\-+.]+)?(;[^,]*)?;base64,", re.I)


def guess_mime_type(file_name: str) -> str:
    mime, _ = mimetypes.guess_type(file_name)
    return (mime or DEFAULT_MIME_TYPE).lower()


class PendingAsset(BaseModel):
    """Staged upload, addressed by an opaque id."""

    id: str = ""
    name: str = ""
    file_name: str = ""
    mime_type: str = DEFAULT_MIME_TYPE
    size: int = 0
    ttl: int = 0  # Seconds; 0 means the storage default applies
    order: int = Field(default=0, ge=0)
    preserve_original: bool = False
    custom_properties: dict[str, Any] = Field(default_factory=dict)
    security_token: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    file_path: Path | None = Field(default=None, exclude=True)

    # True when file_path is a temporary file this object created
    _owns_file: bool = PrivateAttr(default=False)

    @property
    def owns_file(self) -> bool:
        return self._owns_file

    def expires_at(self, default_ttl: int) -> datetime | None:
        if self.created_at is None:
            return None
        return self.created_at + timedelta(seconds=self.ttl or default_ttl)

    def is_expired(self, now: datetime, default_ttl: int) -> bool:
        """Expired once now is strictly after created_at + ttl."""
        expires_at = self.expires_at(default_ttl)
        return expires_at is not None and now > expires_at

    def public_dict(self) -> dict[str, Any]:
        """Client-facing view without the security token."""
        return self.model_dump(mode="json", exclude={"security_token"})

    # --- Constructors ---

    @classmethod
    def from_file(cls, path: str | Path, **fields: Any) -> PendingAsset:
        source = Path(path)
        if not source.is_file():
            raise InvalidFileError(str(source))
        file_name = fields.pop("file_name", None) or source.name
        return cls(
            name=fields.pop("name", None) or source.stem,
            file_name=file_name,
            mime_type=fields.pop("mime_type", None) or guess_mime_type(file_name),
            size=source.stat().st_size,
            file_path=source,
            **fields,
        )

    @classmethod
    def from_bytes(cls, data: bytes, file_name: str, **fields: Any) -> PendingAsset:
        """Stage raw bytes through a temporary file owned by the new object."""
        with tempfile.NamedTemporaryFile(prefix="assetdock-", delete=False) as tmp:
            tmp.write(data)
        pending = cls(
            name=fields.pop("name", None) or Path(file_name).stem,
            file_name=file_name,
            mime_type=fields.pop("mime_type", None) or guess_mime_type(file_name),
            size=len(data),
            file_path=Path(tmp.name),
            **fields,
        )
        pending._owns_file = True
        return pending

    @classmethod
    def from_base64(cls, encoded: str, file_name: str, **fields: Any) -> PendingAsset:
        """Accepts plain base64 or a data URL (its MIME type is used if present)."""
        match = DATA_URL_PATTERN.match(encoded)
        if match:
            encoded = encoded[match.end():]
            if match.group("mime") and "mime_type" not in fields:
                fields["mime_type"] = match.group("mime").lower()
        try:
            data = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as e:
            raise PendingAssetError(f"Invalid base64 payload for {file_name}") from e
        return cls.from_bytes(data, file_name, **fields)
