"""
Domain models for the stage pipeline.

Records that cross a checkpoint boundary are frozen dataclasses so that a
saved snapshot can never be altered through a reference held by live state.
Live, per-run stage state is the one mutable record (StageInstance).
"""

from dataclasses import dataclass, field
from enum import Enum

# =============================================================================
# ENUMERATIONS
# =============================================================================


class StageId(str, Enum):
    """The seven pipeline stages, in execution order."""

    PRD = "prd"
    DESIGN = "design"
    DATA = "data"
    LOGIC = "logic"
    API = "api"
    FRONTEND = "frontend"
    DEPLOYMENT = "deployment"


class StageStatus(str, Enum):
    """Lifecycle of a single stage within a run."""

    LOCKED = "locked"
    IDLE = "idle"
    PROCESSING = "processing"
    AWAITING_APPROVAL = "awaiting_approval"
    COMPLETE = "complete"
    FAILED = "failed"


class ValidationStatus(str, Enum):
    PENDING = "pending"
    VALID = "valid"
    INVALID = "invalid"


class GraphStatus(str, Enum):
    """Run-wide execution status."""

    IDLE = "idle"
    RUNNING = "running"
    INTERRUPTED = "interrupted"
    ERROR = "error"


class ArtifactType(str, Enum):
    CODE = "code"
    DOC = "doc"
    SCHEMA = "schema"
    CONFIG = "config"


# =============================================================================
# STAGES
# =============================================================================


@dataclass(frozen=True)
class StageDefinition:
    """Static configuration for one stage."""

    id: StageId
    title: str
    prompt_template: str
    requires_interrupt: bool = False
    schema_type: str | None = None  # Label for the artifact the stage emits


@dataclass(frozen=True)
class StageSnapshot:
    """Immutable copy of a StageInstance, as stored in a checkpoint."""

    id: StageId
    status: StageStatus
    output: str | None = None
    summary: str | None = None
    validation_status: ValidationStatus = ValidationStatus.PENDING
    validation_errors: tuple[str, ...] = ()
    user_prompt: str | None = None

    def thaw(self) -> "StageInstance":
        """Build a fresh, independent live instance from this snapshot."""
        return StageInstance(
            id=self.id,
            status=self.status,
            output=self.output,
            summary=self.summary,
            validation_status=self.validation_status,
            validation_errors=list(self.validation_errors),
            user_prompt=self.user_prompt,
        )


@dataclass
class StageInstance:
    """Mutable live state of one stage within a run."""

    id: StageId
    status: StageStatus
    output: str | None = None
    summary: str | None = None
    validation_status: ValidationStatus = ValidationStatus.PENDING
    validation_errors: list[str] = field(default_factory=list)
    user_prompt: str | None = None  # Product description on the first stage

    def freeze(self) -> StageSnapshot:
        return StageSnapshot(
            id=self.id,
            status=self.status,
            output=self.output,
            summary=self.summary,
            validation_status=self.validation_status,
            validation_errors=tuple(self.validation_errors),
            user_prompt=self.user_prompt,
        )


# =============================================================================
# ARTIFACTS AND SCHEMAS
# =============================================================================


@dataclass(frozen=True)
class Artifact:
    """
    Committed output of a completed stage.

    At most one artifact per source stage is current in a run; re-running a
    stage supersedes it. Durable stores may keep the superseded ones.
    """

    artifact_id: str
    source_stage_id: StageId
    target_stage_id: StageId  # Stage that consumes this as context
    type: ArtifactType
    label: str
    content: str
    prompt_context: str = ""  # Context the producing stage was given
    created_at: int = 0  # ms since epoch


@dataclass(frozen=True)
class SchemaField:
    name: str
    type: str
    required: bool = False
    is_key: bool = False
    description: str | None = None


@dataclass(frozen=True)
class SchemaTable:
    """Entity table extracted from the data stage output."""

    name: str
    fields: tuple[SchemaField, ...] = ()
    module: str | None = None
    description: str | None = None


# =============================================================================
# CHECKPOINTS
# =============================================================================


@dataclass(frozen=True)
class PipelineSnapshot:
    """Full pipeline state {stages, artefacts, schemas} at one instant."""

    stages: tuple[StageSnapshot, ...]
    artefacts: tuple[Artifact, ...] = ()
    schemas: tuple[SchemaTable, ...] = ()

    def stage(self, stage_id: StageId) -> StageSnapshot:
        for stage in self.stages:
            if stage.id == stage_id:
                return stage
        raise KeyError(stage_id)

    @property
    def current_stage(self) -> StageId | None:
        """Stage in flight or paused, else the first stage not yet complete."""
        return current_stage_of(self.stages)


@dataclass(frozen=True)
class Checkpoint:
    """Immutable entry in a run's checkpoint log."""

    checkpoint_id: str
    run_id: str
    step: int  # Equals the entry's index in the log
    agent: str  # Stage or actor that triggered the save
    stage_id: StageId | None
    timestamp: int  # ms since epoch, non-decreasing within a log
    is_interrupted: bool
    snapshot: PipelineSnapshot


# =============================================================================
# INTERRUPTS AND AGENT RESULTS
# =============================================================================


@dataclass(frozen=True)
class PendingArtifact:
    """Provisional stage output held while a human reviews it."""

    content: str
    artifact_type: ArtifactType
    summary: str = ""
    timestamp: int = 0
    prompt_context: str = ""


@dataclass(frozen=True)
class InterruptPayload:
    """Transient description of a paused stage. Never persisted."""

    node: StageId
    message: str
    snapshot: PendingArtifact


@dataclass(frozen=True)
class AgentResult:
    """Structured result of one agent execution."""

    interrupt_signal: bool
    message: str
    artifact_type: ArtifactType
    artifact_content: str
    reasoning_summary: str = ""
    tokens_estimated: int = 0
    agent: str = ""


@dataclass(frozen=True)
class StreamEvent:
    """
    One item of a streaming agent execution.

    kind is one of "status", "delta", "complete" or "error". A "complete"
    event carries the final result; a "delta" event carries a text chunk.
    """

    kind: str
    text: str = ""
    result: AgentResult | None = None


# =============================================================================
# HUMAN FEEDBACK
# =============================================================================


@dataclass(frozen=True)
class Approve:
    """Commit the pending artifact as produced."""


@dataclass(frozen=True)
class Reject:
    """Discard the pending artifact and reopen a stage."""

    target_hint: StageId | None = None  # None routes by reason text
    reason: str = ""


@dataclass(frozen=True)
class Edit:
    """Commit human-edited content in place of the pending artifact."""

    content: str


FeedbackAction = Approve | Reject | Edit


def current_stage_of(
    stages: "tuple[StageSnapshot, ...] | list[StageInstance]",
) -> StageId | None:
    for stage in stages:
        if stage.status in (StageStatus.PROCESSING, StageStatus.AWAITING_APPROVAL):
            return stage.id
    for stage in stages:
        if stage.status != StageStatus.COMPLETE:
            return stage.id
    return None
