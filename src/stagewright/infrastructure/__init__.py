"""
Infrastructure layer for the stage pipeline.

Contains adapters for external concerns (persistence, LLMs, registry).
"""

from stagewright.infrastructure.llm import (
    MockAgentExecutor,
    MockStreamingExecutor,
    OpenAIAgentExecutor,
    OpenAIStreamingExecutor,
)
from stagewright.infrastructure.persistence import (
    FilesystemCheckpointStore,
    FilesystemEventStore,
    InMemoryCheckpointStore,
    InMemoryEventStore,
)
from stagewright.infrastructure.registry import ExecutorRegistry

__all__ = [
    # Persistence
    "InMemoryCheckpointStore",
    "FilesystemCheckpointStore",
    "InMemoryEventStore",
    "FilesystemEventStore",
    # LLM
    "MockAgentExecutor",
    "MockStreamingExecutor",
    "OpenAIAgentExecutor",
    "OpenAIStreamingExecutor",
    # Registry
    "ExecutorRegistry",
]
