"""
Access component - authorized downloads and temporary URL tokens.
"""

from .component import AssetAccessService, AssetDownload
from .temp_url import TempUrlToken, TempUrlTokenService

__all__ = ["AssetAccessService", "AssetDownload", "TempUrlToken", "TempUrlTokenService"]
