"""
Pending component - staged uploads with TTL expiry and security tokens.
"""

from .component import PendingAssetManager
from .models import PendingAsset, guess_mime_type
from .ports import PendingSecurityTokenPort, PendingStoragePort
from .storage import FileSystemPendingStorage, is_valid_pending_id
from .tokens import (
    AbstractPendingSecurityToken,
    CookiePendingSecurityToken,
    RequestPendingSecurityToken,
    SessionPendingSecurityToken,
)

__all__ = [
    "AbstractPendingSecurityToken",
    "CookiePendingSecurityToken",
    "FileSystemPendingStorage",
    "PendingAsset",
    "PendingAssetManager",
    "PendingSecurityTokenPort",
    "PendingStoragePort",
    "RequestPendingSecurityToken",
    "SessionPendingSecurityToken",
    "guess_mime_type",
    "is_valid_pending_id",
]
