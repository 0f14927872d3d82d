"""Pipeline execution trace models."""

from dataclasses import dataclass
from enum import Enum


class PipelineEventType(str, Enum):
    """Types of pipeline execution events."""

    SEEDED = "SEEDED"
    STAGE_START = "STAGE_START"
    STAGE_COMPLETE = "STAGE_COMPLETE"
    STAGE_FAIL = "STAGE_FAIL"
    INTERRUPT = "INTERRUPT"
    INTERRUPT_RESOLVED = "INTERRUPT_RESOLVED"
    CHECKPOINT_SAVED = "CHECKPOINT_SAVED"
    RESTORED = "RESTORED"


@dataclass(frozen=True)
class PipelineEvent:
    """Single pipeline state transition.

    Events form the run's activity log; they are informational and never
    read back into pipeline state.
    """

    event_id: str
    event_type: PipelineEventType
    run_id: str
    stage_id: str | None = None
    message: str = ""
    tokens: int | None = None
    created_at: str = ""  # ISO 8601
