"""
Variants component - variant processing job and garbage collection.
"""

from .builder import VariantBuilder, path_context_for
from .component import VariantDispatcher, VariantsProcess
from .garbage import DEFAULT_BATCH_SIZE, GarbageCollector
from .models import GarbageReport, VariantsJobPayload, VariantsRunResult, VariantsState

__all__ = [
    "DEFAULT_BATCH_SIZE",
    "GarbageCollector",
    "GarbageReport",
    "VariantBuilder",
    "VariantDispatcher",
    "VariantsJobPayload",
    "VariantsProcess",
    "VariantsRunResult",
    "VariantsState",
    "path_context_for",
]
