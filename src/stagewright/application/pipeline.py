"""
Pipeline run aggregate and stage state machine.

PipelineRun owns all live state for one run: stage instances, current
artifacts, extracted schemas, graph status, the pending interrupt and the
checkpoint log. Nothing else holds pipeline state; callers pass the run
explicitly.

Per stage:

    locked -> idle -> processing -> complete | awaiting_approval | failed
    awaiting_approval -> complete | idle | failed   (via InterruptResolver)
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from stagewright.application.checkpoint_log import CheckpointLog, now_ms
from stagewright.application.context import assemble_context, build_prompt
from stagewright.application.response_parser import extract_schema_tables
from stagewright.application.streaming import consume_stream
from stagewright.domain.exceptions import (
    ConcurrentExecutionConflict,
    ExecutorFailure,
    InterruptPending,
    PrerequisiteNotMet,
)
from stagewright.domain.interfaces import (
    AgentExecutorInterface,
    StreamingAgentExecutorInterface,
)
from stagewright.domain.models import (
    AgentResult,
    Artifact,
    ArtifactType,
    Checkpoint,
    GraphStatus,
    InterruptPayload,
    PendingArtifact,
    PipelineSnapshot,
    SchemaTable,
    StageId,
    StageInstance,
    StageStatus,
    ValidationStatus,
    current_stage_of,
)
from stagewright.domain.stages import StageGraph, parse_stage_id

if TYPE_CHECKING:
    from stagewright.application.event_emitter import PipelineEventEmitter

logger = logging.getLogger(__name__)

MAX_PRODUCT_DESCRIPTION_CHARS = 10_000


@dataclass
class PipelineRun:
    """Mutable aggregate holding the live state of one pipeline run."""

    run_id: str
    product_description: str
    graph: StageGraph
    stages: list[StageInstance]
    artefacts: list[Artifact] = field(default_factory=list)
    schemas: list[SchemaTable] = field(default_factory=list)
    graph_status: GraphStatus = GraphStatus.IDLE
    interrupt_payload: InterruptPayload | None = None
    checkpoints: CheckpointLog = field(default_factory=CheckpointLog)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    @classmethod
    def seed(
        cls,
        product_description: str,
        graph: StageGraph | None = None,
        run_id: str | None = None,
    ) -> "PipelineRun":
        """
        Create a fresh run: first stage idle, the rest locked, no history.

        Raises:
            ValueError: If the product description is blank
        """
        description = product_description.strip()[:MAX_PRODUCT_DESCRIPTION_CHARS]
        if not description:
            raise ValueError("Product description must not be empty")

        graph = graph or StageGraph.default()
        stages = [
            StageInstance(
                id=definition.id,
                status=StageStatus.IDLE if i == 0 else StageStatus.LOCKED,
                user_prompt=description if i == 0 else None,
            )
            for i, definition in enumerate(graph)
        ]
        return cls(
            run_id=run_id or str(uuid.uuid4()),
            product_description=description,
            graph=graph,
            stages=stages,
        )

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def stage(self, stage_id: "StageId | str") -> StageInstance:
        stage_id = parse_stage_id(stage_id)
        for stage in self.stages:
            if stage.id == stage_id:
                return stage
        # Resolve through the graph so unknown ids raise StageNotFound
        self.graph.get(stage_id)
        raise KeyError(stage_id)

    @property
    def current_stage(self) -> StageId | None:
        return current_stage_of(self.stages)

    def processing_stage(self) -> StageInstance | None:
        for stage in self.stages:
            if stage.status == StageStatus.PROCESSING:
                return stage
        return None

    def artifact_for(self, stage_id: StageId) -> Artifact | None:
        for artifact in self.artefacts:
            if artifact.source_stage_id == stage_id:
                return artifact
        return None

    @property
    def is_complete(self) -> bool:
        return all(s.status == StageStatus.COMPLETE for s in self.stages)

    # -------------------------------------------------------------------------
    # Guards
    # -------------------------------------------------------------------------

    def ensure_not_processing(self) -> None:
        active = self.processing_stage()
        if active is not None:
            raise ConcurrentExecutionConflict(
                f"Stage '{active.id.value}' is already processing", active.id
            )

    def ensure_no_execution(self) -> None:
        """Reject a mutation while a stage executes or another one holds the run."""
        self.ensure_not_processing()
        if self.lock.locked():
            raise ConcurrentExecutionConflict("Another pipeline operation is running")

    def ensure_can_run(self, stage_id: StageId) -> None:
        """
        Check every precondition of run_stage without changing state.

        Raises:
            ConcurrentExecutionConflict: A stage is processing
            InterruptPending: A stage awaits approval
            PrerequisiteNotMet: The stage is locked or its predecessor is
                not complete
        """
        self.ensure_no_execution()
        if self.interrupt_payload is not None:
            node = self.interrupt_payload.node
            raise InterruptPending(
                f"Stage '{node.value}' is awaiting approval", node
            )

        stage = self.stage(stage_id)
        if stage.status == StageStatus.LOCKED:
            raise PrerequisiteNotMet(stage_id, "stage is locked")
        previous = self.graph.previous_stage(stage_id)
        if previous is not None and self.stage(previous).status != StageStatus.COMPLETE:
            raise PrerequisiteNotMet(
                stage_id, f"previous stage '{previous.value}' is not complete"
            )

    # -------------------------------------------------------------------------
    # Artifact and stage transitions
    # -------------------------------------------------------------------------

    def commit_artifact(self, artifact: Artifact) -> None:
        """Make artifact current for its source stage, superseding any other."""
        self.artefacts = [
            a for a in self.artefacts if a.source_stage_id != artifact.source_stage_id
        ]
        self.artefacts.append(artifact)

    def drop_artifact(self, stage_id: StageId) -> None:
        self.artefacts = [a for a in self.artefacts if a.source_stage_id != stage_id]

    def unlock_next(self, stage_id: StageId) -> StageId | None:
        next_id = self.graph.next_stage(stage_id)
        if next_id is not None:
            next_stage = self.stage(next_id)
            if next_stage.status == StageStatus.LOCKED:
                next_stage.status = StageStatus.IDLE
        return next_id

    def complete_stage(
        self,
        stage_id: StageId,
        content: str,
        artifact_type: ArtifactType,
        summary: str = "",
        prompt_context: str = "",
    ) -> Checkpoint:
        """
        Commit a stage's output and append a post-completion checkpoint.

        Used both for direct completion and for approved or edited interrupts.
        """
        definition = self.graph.get(stage_id)
        stage = self.stage(stage_id)
        next_id = self.graph.next_stage(stage_id)

        self.commit_artifact(
            Artifact(
                artifact_id=str(uuid.uuid4()),
                source_stage_id=stage_id,
                target_stage_id=next_id or stage_id,
                type=artifact_type,
                label=definition.schema_type or definition.title,
                content=content,
                prompt_context=prompt_context,
                created_at=now_ms(),
            )
        )
        stage.status = StageStatus.COMPLETE
        stage.output = content
        stage.summary = summary or None
        stage.validation_status = ValidationStatus.VALID
        stage.validation_errors = []

        if stage_id == StageId.DATA:
            tables = extract_schema_tables(content)
            if tables:
                self.schemas = tables

        self.unlock_next(stage_id)
        self.interrupt_payload = None
        self.graph_status = GraphStatus.IDLE
        return self.save_checkpoint(agent=stage_id.value, stage_id=stage_id)

    def fail_stage(self, stage_id: StageId, errors: list[str]) -> None:
        stage = self.stage(stage_id)
        stage.status = StageStatus.FAILED
        stage.validation_status = ValidationStatus.INVALID
        stage.validation_errors = list(errors)
        self.graph_status = GraphStatus.IDLE

    def reset_stage(self, stage_id: StageId) -> None:
        """Reopen a stage for execution, discarding its output and artifact."""
        stage = self.stage(stage_id)
        stage.status = StageStatus.IDLE
        stage.output = None
        stage.summary = None
        stage.validation_status = ValidationStatus.PENDING
        stage.validation_errors = []
        self.drop_artifact(stage_id)

    # -------------------------------------------------------------------------
    # Checkpoints
    # -------------------------------------------------------------------------

    def snapshot(self) -> PipelineSnapshot:
        return PipelineSnapshot(
            stages=tuple(s.freeze() for s in self.stages),
            artefacts=tuple(self.artefacts),
            schemas=tuple(self.schemas),
        )

    def apply_snapshot(self, snapshot: PipelineSnapshot) -> None:
        """Replace live stages, artifacts and schemas with fresh copies."""
        self.stages = [s.thaw() for s in snapshot.stages]
        self.artefacts = list(snapshot.artefacts)
        self.schemas = list(snapshot.schemas)

    def save_checkpoint(
        self,
        agent: str = "manual",
        stage_id: StageId | None = None,
        is_interrupted: bool = False,
    ) -> Checkpoint:
        return self.checkpoints.save(
            self.run_id,
            self.snapshot(),
            agent=agent,
            stage_id=stage_id,
            is_interrupted=is_interrupted,
        )

    def restore_checkpoint(self, ref: int | str) -> tuple[Checkpoint, list[Checkpoint]]:
        """
        Roll live state back to a checkpoint and truncate later history.

        All-or-nothing: the target is looked up and its snapshot copied
        before anything is replaced, so a failure leaves the run untouched.

        Returns:
            The restored checkpoint and the checkpoints discarded

        Raises:
            CheckpointNotFound: If ref is not in the log
            ConcurrentExecutionConflict: If a stage is processing
        """
        self.ensure_not_processing()
        checkpoint = self.checkpoints.get(ref)
        self.apply_snapshot(checkpoint.snapshot)
        dropped = self.checkpoints.truncate_after(checkpoint.step)
        self.interrupt_payload = None
        self.graph_status = GraphStatus.IDLE
        return checkpoint, dropped


class PipelineStateMachine:
    """
    Drives one stage of a run through its execution.

    Example usage:
        machine = PipelineStateMachine(run, executor)
        await machine.run_stage(StageId.PRD)
    """

    def __init__(
        self,
        run: PipelineRun,
        executor: AgentExecutorInterface,
        events: "PipelineEventEmitter | None" = None,
        max_context_chars: int | None = None,
    ):
        """
        Args:
            run: The run to mutate
            executor: Agent executor for stage calls
            events: Optional activity log emitter
            max_context_chars: Per-artifact truncation for assembled context
        """
        self._run = run
        self._executor = executor
        self._events = events
        self._max_context_chars = max_context_chars

    async def run_stage(self, stage_id: "StageId | str") -> StageInstance:
        """
        Execute a stage.

        Preconditions are checked before anything changes and before the
        run lock is taken, so a conflicting call fails immediately.

        Returns:
            The stage instance after execution (complete or awaiting approval)

        Raises:
            ConcurrentExecutionConflict: Another stage is processing
            InterruptPending: A stage awaits approval
            PrerequisiteNotMet: Stage locked or predecessor incomplete
            ExecutorFailure: The executor failed; the stage is now failed
        """
        stage_id = parse_stage_id(stage_id)
        self._run.ensure_can_run(stage_id)
        async with self._run.lock:
            return await self._execute(stage_id)

    async def _execute(self, stage_id: StageId) -> StageInstance:
        run = self._run
        definition = run.graph.get(stage_id)
        stage = run.stage(stage_id)

        pre_run: Checkpoint | None = None
        if definition.requires_interrupt:
            pre_run = run.save_checkpoint(agent=stage_id.value, stage_id=stage_id)
            if self._events:
                self._events.checkpoint_saved(stage_id.value, pre_run.step)

        run.graph_status = GraphStatus.RUNNING
        stage.status = StageStatus.PROCESSING
        stage.output = None
        stage.validation_errors = []

        context = assemble_context(run, stage_id, self._max_context_chars)
        prompt = build_prompt(definition, stage)
        logger.info("Running stage %s", stage_id.value)
        logger.debug("Context for %s: %d chars", stage_id.value, len(context))
        if self._events:
            self._events.stage_start(stage_id.value)

        try:
            result = await self._invoke(stage, prompt, context)
        except asyncio.CancelledError:
            self._fail(stage_id, "Agent execution was cancelled")
            raise
        except ExecutorFailure as e:
            self._fail(stage_id, str(e))
            raise
        except Exception as e:
            self._fail(stage_id, str(e))
            raise ExecutorFailure(
                f"Agent execution failed for stage '{stage_id.value}': {e}", stage_id
            ) from e

        if not isinstance(result, AgentResult):
            message = f"Executor returned {type(result).__name__}, expected AgentResult"
            self._fail(stage_id, message)
            raise ExecutorFailure(message, stage_id)

        if result.interrupt_signal:
            self._pause(stage, result, context)
            if pre_run is not None:
                run.checkpoints.mark_interrupted(pre_run.step)
        else:
            checkpoint = run.complete_stage(
                stage_id,
                result.artifact_content,
                result.artifact_type,
                result.reasoning_summary,
                context,
            )
            logger.info(
                "Stage %s complete (%d tokens)", stage_id.value, result.tokens_estimated
            )
            if self._events:
                self._events.stage_complete(stage_id.value, result.tokens_estimated)
                self._events.checkpoint_saved(stage_id.value, checkpoint.step)
        return stage

    async def _invoke(
        self, stage: StageInstance, prompt: str, context: str
    ) -> AgentResult:
        if isinstance(self._executor, StreamingAgentExecutorInterface):

            def on_delta(text: str) -> None:
                stage.output = text

            return await consume_stream(
                self._executor.stream(stage.id, prompt, context), on_delta, stage.id
            )
        return await self._executor.execute(stage.id, prompt, context)

    def _pause(self, stage: StageInstance, result: AgentResult, context: str) -> None:
        run = self._run
        title = run.graph.get(stage.id).title
        stage.status = StageStatus.AWAITING_APPROVAL
        stage.output = result.artifact_content
        stage.summary = result.reasoning_summary or None
        run.interrupt_payload = InterruptPayload(
            node=stage.id,
            message=result.message or f"Review the {title} output before continuing",
            snapshot=PendingArtifact(
                content=result.artifact_content,
                artifact_type=result.artifact_type,
                summary=result.reasoning_summary,
                timestamp=now_ms(),
                prompt_context=context,
            ),
        )
        run.graph_status = GraphStatus.INTERRUPTED
        logger.info("Stage %s awaiting approval", stage.id.value)
        if self._events:
            self._events.interrupt(stage.id.value, run.interrupt_payload.message)

    def _fail(self, stage_id: StageId, error: str) -> None:
        self._run.fail_stage(stage_id, [f"Agent execution failed: {error}"])
        logger.error("Stage %s failed: %s", stage_id.value, error)
        if self._events:
            self._events.stage_fail(stage_id.value, error)
