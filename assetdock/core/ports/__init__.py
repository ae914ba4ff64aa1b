# assetdock - Ports (Protocol Interfaces)
# Abstract interfaces for adapters; no implementations here

from assetdock.core.ports.clock import ClockPort
from assetdock.core.ports.db import AssetRepoPort
from assetdock.core.ports.events import EventHandler, EventPublisherPort
from assetdock.core.ports.jobs import BatchResult, JobQueuePort, JobResult, JobStatus
from assetdock.core.ports.storage import FileStoragePort, PathOutsideRootError, StorageError

__all__ = [
    "AssetRepoPort",
    "BatchResult",
    "ClockPort",
    "EventHandler",
    "EventPublisherPort",
    "FileStoragePort",
    "JobQueuePort",
    "JobResult",
    "JobStatus",
    "PathOutsideRootError",
    "StorageError",
]
