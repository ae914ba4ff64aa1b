"""
Adder component - admission of files into asset collections.
"""

from .component import AssetAdder, AssetService
from .sanitizer import BLOCKED_EXTENSIONS, FileNameSanitizer, sanitize_file_name

__all__ = [
    "BLOCKED_EXTENSIONS",
    "AssetAdder",
    "AssetService",
    "FileNameSanitizer",
    "sanitize_file_name",
]
