"""
Domain layer for the stage pipeline.

Contains the data model, ports and pure policy, with no I/O.
"""

from stagewright.domain.exceptions import (
    CheckpointNotFound,
    ConcurrentExecutionConflict,
    ExecutorFailure,
    InterruptPending,
    MalformedAgentResponse,
    NoActiveInterrupt,
    PersistenceError,
    PipelineError,
    PrerequisiteNotMet,
    StageNotFound,
)
from stagewright.domain.interfaces import (
    AgentExecutorInterface,
    CheckpointStoreInterface,
    EventStoreInterface,
    StreamingAgentExecutorInterface,
)
from stagewright.domain.models import (
    AgentResult,
    Approve,
    Artifact,
    ArtifactType,
    Checkpoint,
    Edit,
    FeedbackAction,
    GraphStatus,
    InterruptPayload,
    PendingArtifact,
    PipelineSnapshot,
    Reject,
    SchemaField,
    SchemaTable,
    StageDefinition,
    StageId,
    StageInstance,
    StageSnapshot,
    StageStatus,
    StreamEvent,
    ValidationStatus,
)
from stagewright.domain.stages import STAGE_DEFINITIONS, StageGraph

__all__ = [
    # Models
    "AgentResult",
    "Approve",
    "Artifact",
    "ArtifactType",
    "Checkpoint",
    "Edit",
    "FeedbackAction",
    "GraphStatus",
    "InterruptPayload",
    "PendingArtifact",
    "PipelineSnapshot",
    "Reject",
    "SchemaField",
    "SchemaTable",
    "StageDefinition",
    "StageId",
    "StageInstance",
    "StageSnapshot",
    "StageStatus",
    "StreamEvent",
    "ValidationStatus",
    # Stage graph
    "STAGE_DEFINITIONS",
    "StageGraph",
    # Interfaces
    "AgentExecutorInterface",
    "CheckpointStoreInterface",
    "EventStoreInterface",
    "StreamingAgentExecutorInterface",
    # Exceptions
    "CheckpointNotFound",
    "ConcurrentExecutionConflict",
    "ExecutorFailure",
    "InterruptPending",
    "MalformedAgentResponse",
    "NoActiveInterrupt",
    "PersistenceError",
    "PipelineError",
    "PrerequisiteNotMet",
    "StageNotFound",
]
