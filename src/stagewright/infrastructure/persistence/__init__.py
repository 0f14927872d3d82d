"""
Persistence adapters for checkpoints, artifacts and pipeline events.
"""

from stagewright.infrastructure.persistence.checkpoint import FilesystemCheckpointStore
from stagewright.infrastructure.persistence.events import (
    FilesystemEventStore,
    InMemoryEventStore,
)
from stagewright.infrastructure.persistence.memory import InMemoryCheckpointStore

__all__ = [
    "InMemoryCheckpointStore",
    "FilesystemCheckpointStore",
    "InMemoryEventStore",
    "FilesystemEventStore",
]
