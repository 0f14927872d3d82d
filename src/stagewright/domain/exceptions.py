"""
Domain exceptions for the stage pipeline.

Every error is local to the operation that raised it. None of them leave
the run unusable: callers can inspect state and retry after any of them.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from stagewright.domain.models import StageId


class PipelineError(Exception):
    """Base class for pipeline errors."""


class StageNotFound(PipelineError, ValueError):
    """Raised when a stage id is not part of the stage graph."""

    def __init__(self, stage_id: object):
        super().__init__(f"Unknown stage: {stage_id!r}")
        self.stage_id = stage_id


class PrerequisiteNotMet(PipelineError):
    """
    Raised when a stage is run before its predecessor is complete.

    No state is changed.
    """

    def __init__(self, stage_id: "StageId", reason: str):
        """
        Args:
            stage_id: The stage that was requested
            reason: Why it cannot run yet
        """
        super().__init__(f"Cannot run stage '{stage_id.value}': {reason}")
        self.stage_id = stage_id
        self.reason = reason


class ExecutorFailure(PipelineError):
    """
    Raised when the agent executor throws or returns malformed data.

    The stage has already been marked failed when this propagates, and no
    checkpoint was written. The original error is chained as __cause__.
    """

    def __init__(self, message: str, stage_id: "StageId | None" = None):
        super().__init__(message)
        self.stage_id = stage_id


class MalformedAgentResponse(ExecutorFailure):
    """Raised when an agent response cannot be parsed into an AgentResult."""


class NoActiveInterrupt(PipelineError):
    """Raised when feedback is submitted while nothing awaits approval."""

    def __init__(self, message: str = "No active interrupt to resolve"):
        super().__init__(message)


class CheckpointNotFound(PipelineError, KeyError):
    """Raised when a restore target is not in the checkpoint log."""

    def __init__(self, checkpoint_ref: int | str):
        super().__init__(f"Checkpoint not found: {checkpoint_ref!r}")
        self.checkpoint_ref = checkpoint_ref

    def __str__(self) -> str:
        return str(self.args[0])


class ConcurrentExecutionConflict(PipelineError):
    """
    Raised when a mutation is attempted while a stage is executing.

    Rejected immediately; no state is changed.
    """

    def __init__(self, message: str, active_stage_id: "StageId | None" = None):
        super().__init__(message)
        self.active_stage_id = active_stage_id


class InterruptPending(ConcurrentExecutionConflict):
    """Raised when a stage is run while another awaits human approval."""


class PersistenceError(PipelineError):
    """
    Raised by checkpoint and event store adapters.

    The orchestrator logs these and keeps operating on its in-memory log.
    """
