"""
Error taxonomy for assetdock.

Every error carries a machine-readable ``code`` and the offending values in
``params`` so callers can render a presentable message for client display.
Internal errors (database, I/O, variant processing) expose only a generic
public message; the detailed message is for logs.
"""

from __future__ import annotations

from typing import Any

GENERIC_PUBLIC_MESSAGE = "An internal error occurred while processing the file."

MESSAGES: dict[str, str] = {
    "invalid_file": 'The file "{path}" does not exist or is not readable.',
    "file_too_large": (
        "The file size ({file_size} bytes) exceeds the maximum allowed size "
        "of {max_file_size} bytes."
    ),
    "invalid_file_extension": (
        'The file extension "{extension}" is not allowed. '
        "Allowed extensions: {allowed}."
    ),
    "invalid_mime_type": (
        'The file type "{mime_type}" is not allowed. Allowed types: {allowed}.'
    ),
    "file_name_not_allowed": 'The file name "{file_name}" is not allowed.',
    "cannot_copy_file": 'Cannot copy file from "{source}" to "{destination}".',
    "database_error": "Database operation failed: {detail}",
    "file_variant_error": 'Variant "{variant}" of asset {asset_id} failed: {detail}',
    "asset_not_found": "Asset {asset_id} was not found.",
    "invalid_argument": "{detail}",
    "pending_asset_error": "{detail}",
    "token_invalid": "The access token is invalid or has expired.",
    "access_denied": "You do not have permission to access asset {asset_id}.",
}


def _join(values: Any) -> str:
    return ", ".join(sorted(values)) if values else "any"


class AssetError(Exception):
    """Base class for assetdock errors."""

    code = "asset_error"
    internal = False
    retryable = True

    def __init__(self, **params: Any) -> None:
        self.params = params
        template = MESSAGES.get(self.code, self.code)
        self.message = template.format(**params)
        super().__init__(self.message)

    @property
    def public_message(self) -> str:
        return GENERIC_PUBLIC_MESSAGE if self.internal else self.message

    def to_dict(self) -> dict[str, Any]:
        """Client-facing representation."""
        params = {} if self.internal else {k: str(v) for k, v in self.params.items()}
        return {"code": self.code, "message": self.public_message, "params": params}


# --- Admission validation ---


class InvalidFileError(AssetError):
    """Raised when the candidate file is missing or unreadable."""

    code = "invalid_file"

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(path=path)


class FileTooLargeError(AssetError):
    """Raised when the file exceeds the collection's max size."""

    code = "file_too_large"

    def __init__(self, file_size: int, max_file_size: int) -> None:
        self.file_size = file_size
        self.max_file_size = max_file_size
        super().__init__(file_size=file_size, max_file_size=max_file_size)


class InvalidFileExtensionError(AssetError):
    code = "invalid_file_extension"

    def __init__(self, extension: str, allowed: frozenset[str] | set[str]) -> None:
        self.extension = extension
        self.allowed = frozenset(allowed)
        super().__init__(extension=extension, allowed=_join(allowed))


class InvalidMimeTypeError(AssetError):
    code = "invalid_mime_type"

    def __init__(self, mime_type: str, allowed: frozenset[str] | set[str]) -> None:
        self.mime_type = mime_type
        self.allowed = frozenset(allowed)
        super().__init__(mime_type=mime_type, allowed=_join(allowed))


class FileNameNotAllowedError(AssetError):
    """Raised when a file name sanitizer refuses a name outright."""

    code = "file_name_not_allowed"

    def __init__(self, file_name: str) -> None:
        self.file_name = file_name
        super().__init__(file_name=file_name)


# --- Internal failures ---


class CannotCopyFileError(AssetError):
    code = "cannot_copy_file"
    internal = True

    def __init__(self, source: str, destination: str) -> None:
        self.source = source
        self.destination = destination
        super().__init__(source=source, destination=destination)


class DatabaseError(AssetError):
    """Wraps persistence-layer failures."""

    code = "database_error"
    internal = True

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(detail=detail)


class FileVariantError(AssetError):
    code = "file_variant_error"
    internal = True

    def __init__(self, variant: str, asset_id: int | None, detail: str) -> None:
        self.variant = variant
        self.asset_id = asset_id
        self.detail = detail
        super().__init__(variant=variant, asset_id=asset_id, detail=detail)


class AssetNotFoundError(AssetError):
    """Raised when an asset id does not resolve. Never retried by workers."""

    code = "asset_not_found"
    retryable = False

    def __init__(self, asset_id: int | None) -> None:
        self.asset_id = asset_id
        super().__init__(asset_id=asset_id)


class InvalidArgumentError(AssetError):
    """Raised on misconfiguration, normally at registration time."""

    code = "invalid_argument"
    retryable = False

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(detail=detail)


class PendingAssetError(AssetError):
    code = "pending_asset_error"

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(detail=detail)


class TokenInvalidError(AssetError):
    code = "token_invalid"

    def __init__(self, reason: str = "") -> None:
        self.reason = reason
        super().__init__(reason=reason)


class AccessDeniedError(AssetError):
    code = "access_denied"

    def __init__(self, asset_id: int | None) -> None:
        self.asset_id = asset_id
        super().__init__(asset_id=asset_id)
