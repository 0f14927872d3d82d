"""
Domain interfaces (Ports) for the stage pipeline.

These abstract base classes define the contracts adapters must satisfy.
They have no external dependencies and mark the boundaries of the core.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from stagewright.domain.events import PipelineEvent, PipelineEventType
    from stagewright.domain.models import (
        AgentResult,
        Artifact,
        Checkpoint,
        StageId,
        StreamEvent,
    )


class AgentExecutorInterface(ABC):
    """
    Port for one stage's agent call.

    Implementations talk to an LLM (or a canned script). Network timeouts and
    provider errors are raised; the state machine maps them to a failed
    stage. Returning an AgentResult with interrupt_signal=True asks for a
    human review before the output is committed.
    """

    @abstractmethod
    async def execute(
        self, stage_id: "StageId", prompt_template: str, context: str
    ) -> "AgentResult":
        """
        Execute the agent for a stage.

        Args:
            stage_id: Stage being executed
            prompt_template: Rendered stage instructions
            context: Concatenated prior-stage artifacts

        Returns:
            The structured agent result
        """
        pass


class StreamingAgentExecutorInterface(AgentExecutorInterface):
    """
    Port for executors that can stream their output.

    stream() yields StreamEvents; text deltas are accumulated into the
    stage's output while the call is in flight, and a final "complete"
    event ends the stream the same way execute() would.
    """

    @abstractmethod
    def stream(
        self, stage_id: "StageId", prompt_template: str, context: str
    ) -> AsyncIterator["StreamEvent"]:
        pass


class CheckpointStoreInterface(ABC):
    """
    Port for durable checkpoint and artifact storage.

    Used for durability and hydration only. During an active run the
    in-memory checkpoint log is authoritative.
    """

    @abstractmethod
    def persist(self, checkpoint: "Checkpoint") -> str:
        """Store a checkpoint and return its id."""
        pass

    @abstractmethod
    def list(self, run_id: str) -> list["Checkpoint"]:
        """Return a run's checkpoints ordered by step."""
        pass

    @abstractmethod
    def persist_artifact(self, run_id: str, artifact: "Artifact") -> str:
        """Append an artifact to the run's artifact history."""
        pass

    @abstractmethod
    def fetch_artifacts(self, run_id: str) -> list["Artifact"]:
        """Return every artifact ever committed for the run, oldest first."""
        pass

    @abstractmethod
    def truncate(self, run_id: str, after_step: int) -> int:
        """
        Delete checkpoints with step > after_step.

        Returns:
            Number of checkpoints removed
        """
        pass


class EventStoreInterface(ABC):
    """Port for the pipeline activity log."""

    @abstractmethod
    def store_event(self, event: "PipelineEvent") -> str:
        pass

    @abstractmethod
    def get_events(
        self, run_id: str, event_type: "PipelineEventType | None" = None
    ) -> list["PipelineEvent"]:
        pass
