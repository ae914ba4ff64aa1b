"""
Variants component models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class VariantsJobPayload(BaseModel):
    """Queue payload for one variants job."""

    asset_id: int
    definition_ref: str
    definition_args: list[Any] = Field(default_factory=list)


class VariantsState(Enum):
    START = "start"
    LOAD_ASSET = "load_asset"
    RUN_VARIANTS = "run_variants"
    PERSIST_METADATA = "persist_metadata"
    COLLECT_GARBAGE = "collect_garbage"
    DONE = "done"


@dataclass
class GarbageReport:
    """Outcome of one garbage collection batch."""

    purged: list[int] = field(default_factory=list)
    file_errors: int = 0
    row_errors: int = 0
    pending_removed: int = 0


@dataclass
class VariantsRunResult:
    asset_id: int
    state: VariantsState
    produced: list[str] = field(default_factory=list)
    declined: list[str] = field(default_factory=list)
    garbage: GarbageReport | None = None
