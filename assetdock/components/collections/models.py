"""
Collections component models.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from assetdock.components.variants import VariantBuilder
    from assetdock.core.entities import Asset, AssetVariant


class VariantTransform(Protocol):
    """Produces one variant through the builder, or returns None to decline."""

    def __call__(self, builder: VariantBuilder) -> AssetVariant | None: ...


AuthorizationCheck = Callable[["Asset"], bool]


@dataclass(frozen=True)
class VariantRegistration:
    """Entry in a collection's variant table."""

    name: str
    transform: VariantTransform
    extension: str | None = None
