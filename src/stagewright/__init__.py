"""
stagewright: staged LLM pipeline for turning a product description into a
design.

A fixed sequence of agent stages (PRD, design, data, logic, API, frontend,
deployment) runs one at a time. Selected stages pause for human review;
every meaningful transition is checkpointed and can be rolled back.

Example:
    import asyncio
    from stagewright import PipelineOrchestrator, MockAgentExecutor, StageId

    orchestrator = PipelineOrchestrator(MockAgentExecutor())
    orchestrator.seed("A marketplace for vintage typewriters")
    asyncio.run(orchestrator.run_stage(StageId.PRD))
"""

# Application layer (orchestration)
from stagewright.application.orchestrator import PipelineOrchestrator
from stagewright.application.pipeline import PipelineRun

# Domain exceptions
from stagewright.domain.exceptions import (
    CheckpointNotFound,
    ConcurrentExecutionConflict,
    ExecutorFailure,
    InterruptPending,
    NoActiveInterrupt,
    PipelineError,
    PrerequisiteNotMet,
)

# Domain interfaces (for type hints and custom implementations)
from stagewright.domain.interfaces import (
    AgentExecutorInterface,
    CheckpointStoreInterface,
    StreamingAgentExecutorInterface,
)

# Domain models (most commonly used)
from stagewright.domain.models import (
    AgentResult,
    Approve,
    Artifact,
    ArtifactType,
    Checkpoint,
    Edit,
    GraphStatus,
    InterruptPayload,
    Reject,
    StageId,
    StageStatus,
)
from stagewright.domain.stages import StageGraph
from stagewright.infrastructure.llm import (
    MockAgentExecutor,
    OpenAIAgentExecutor,
)

# Infrastructure (explicit import encouraged for dependency injection)
from stagewright.infrastructure.persistence import (
    FilesystemCheckpointStore,
    InMemoryCheckpointStore,
)

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Domain models
    "AgentResult",
    "Approve",
    "Artifact",
    "ArtifactType",
    "Checkpoint",
    "Edit",
    "GraphStatus",
    "InterruptPayload",
    "Reject",
    "StageGraph",
    "StageId",
    "StageStatus",
    # Domain interfaces
    "AgentExecutorInterface",
    "StreamingAgentExecutorInterface",
    "CheckpointStoreInterface",
    # Domain exceptions
    "PipelineError",
    "PrerequisiteNotMet",
    "ExecutorFailure",
    "NoActiveInterrupt",
    "CheckpointNotFound",
    "ConcurrentExecutionConflict",
    "InterruptPending",
    # Application layer
    "PipelineOrchestrator",
    "PipelineRun",
    # Infrastructure - Persistence
    "InMemoryCheckpointStore",
    "FilesystemCheckpointStore",
    # Infrastructure - LLM
    "MockAgentExecutor",
    "OpenAIAgentExecutor",
]
