"""
Collections component - collection policy and registry.
"""

from .component import (
    CollectionDefinition,
    CollectionFactory,
    CollectionRegistry,
    definition_from_rules,
)
from .models import AuthorizationCheck, VariantRegistration, VariantTransform

__all__ = [
    "AuthorizationCheck",
    "CollectionDefinition",
    "CollectionFactory",
    "CollectionRegistry",
    "VariantRegistration",
    "VariantTransform",
    "definition_from_rules",
]
