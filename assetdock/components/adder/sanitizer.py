"""
Default file-name sanitizer.

A sanitizer maps a requested file name to the name used in storage, or
raises FileNameNotAllowedError to refuse it outright.
"""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Callable
from pathlib import PurePosixPath

from assetdock.core.errors import FileNameNotAllowedError

FileNameSanitizer = Callable[[str], str]

# Names the web server could execute if served from a public directory
BLOCKED_EXTENSIONS = frozenset(
    {"php", "php3", "php4", "php5", "php7", "php8", "phtml", "phar"}
)

_REPLACED = re.compile(r"[#/\\\s]")


def sanitize_file_name(file_name: str) -> str:
    cleaned = "".join(ch for ch in file_name if unicodedata.category(ch)[0] != "C")
    cleaned = _REPLACED.sub("-", cleaned).strip(".-")

    if not cleaned:
        raise FileNameNotAllowedError(file_name)

    extension = PurePosixPath(cleaned).suffix.lstrip(".").lower()
    if extension in BLOCKED_EXTENSIONS:
        raise FileNameNotAllowedError(file_name)

    return cleaned
