"""
Paths component - deterministic storage locations for assets and variants.
"""

from .component import (
    VARIANTS_DIRECTORY,
    BasePathGenerator,
    DefaultPathGenerator,
    ensure_directory,
    generate_upload_key,
    join_path,
    variant_file_name,
)
from .ports import PathContext, PathGenerator

__all__ = [
    "VARIANTS_DIRECTORY",
    "BasePathGenerator",
    "DefaultPathGenerator",
    "PathContext",
    "PathGenerator",
    "ensure_directory",
    "generate_upload_key",
    "join_path",
    "variant_file_name",
]
