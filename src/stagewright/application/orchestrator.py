"""
PipelineOrchestrator: the entry point for driving a pipeline run.

Wraps one PipelineRun with its state machine and interrupt resolver,
serializes the three mutating operations on the run lock, and mirrors new
checkpoints and artifacts to an optional checkpoint store. The in-memory
checkpoint log stays authoritative: store failures are logged and never
fail the operation that triggered them.
"""

import logging
from collections.abc import Awaitable, Callable

from stagewright.application.checkpoint_log import CheckpointLog
from stagewright.application.event_emitter import PipelineEventEmitter
from stagewright.application.interrupts import InterruptResolver
from stagewright.application.pipeline import PipelineRun, PipelineStateMachine
from stagewright.domain.exceptions import (
    CheckpointNotFound,
    ExecutorFailure,
    PersistenceError,
    PipelineError,
)
from stagewright.domain.interfaces import (
    AgentExecutorInterface,
    CheckpointStoreInterface,
    EventStoreInterface,
)
from stagewright.domain.models import (
    Artifact,
    Checkpoint,
    FeedbackAction,
    GraphStatus,
    InterruptPayload,
    StageId,
    StageInstance,
    StageStatus,
)
from stagewright.domain.stages import StageGraph, parse_stage_id

logger = logging.getLogger(__name__)

Approver = Callable[[InterruptPayload], Awaitable[str | FeedbackAction]]

# Upper bound on stage executions in one run_to_completion call
DEFAULT_RECURSION_LIMIT = 25


class PipelineOrchestrator:
    """
    Seeds, runs, resolves and restores a single pipeline run.

    Example usage:
        orchestrator = PipelineOrchestrator(MockAgentExecutor())
        run_id = orchestrator.seed("A marketplace for vintage typewriters")
        await orchestrator.run_stage(StageId.PRD)
    """

    def __init__(
        self,
        executor: AgentExecutorInterface,
        store: CheckpointStoreInterface | None = None,
        event_store: EventStoreInterface | None = None,
        graph: StageGraph | None = None,
        max_context_chars: int | None = None,
    ):
        """
        Args:
            executor: Agent executor for stage calls
            store: Durable checkpoint store (None for in-memory only)
            event_store: Activity log store (None disables events)
            graph: Stage graph (default seven-stage graph if None)
            max_context_chars: Per-artifact truncation for assembled context
        """
        self._executor = executor
        self._store = store
        self._event_store = event_store
        self._graph = graph or StageGraph.default()
        self._max_context_chars = max_context_chars
        self._run: PipelineRun | None = None
        self._events: PipelineEventEmitter | None = None
        self._persisted: dict[int, Checkpoint] = {}
        self._persisted_artifacts: set[str] = set()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def seed(self, product_description: str, run_id: str | None = None) -> str:
        """
        Start a fresh run, discarding any current one.

        Returns:
            The new run id
        """
        run = PipelineRun.seed(product_description, self._graph, run_id)
        self._attach(run)
        logger.info("Seeded run %s", run.run_id)
        if self._events:
            self._events.seeded(run.product_description)
        return run.run_id

    def reset(self) -> None:
        """Discard the current run."""
        self._run = None
        self._events = None
        self._persisted = {}
        self._persisted_artifacts = set()

    @classmethod
    def hydrate(
        cls,
        run_id: str,
        executor: AgentExecutorInterface,
        store: CheckpointStoreInterface,
        event_store: EventStoreInterface | None = None,
        graph: StageGraph | None = None,
    ) -> "PipelineOrchestrator":
        """
        Rebuild a run from its stored checkpoints.

        The latest checkpoint becomes live state. Interrupt payloads are not
        persisted, so a hydrated run is always idle.

        Raises:
            CheckpointNotFound: If the store holds no checkpoints for run_id
        """
        checkpoints = store.list(run_id)
        if not checkpoints:
            raise CheckpointNotFound(run_id)

        orchestrator = cls(executor, store, event_store, graph)
        snapshot = checkpoints[-1].snapshot
        first = snapshot.stages[0] if snapshot.stages else None
        run = PipelineRun(
            run_id=run_id,
            product_description=(first.user_prompt if first else None) or "",
            graph=orchestrator._graph,
            stages=[],
        )
        run.apply_snapshot(snapshot)
        run.checkpoints = CheckpointLog(checkpoints)
        orchestrator._attach(run)
        orchestrator._persisted = {c.step: c for c in checkpoints}
        orchestrator._persisted_artifacts = {
            a.artifact_id for a in store.fetch_artifacts(run_id)
        }
        logger.info("Hydrated run %s at step %d", run_id, checkpoints[-1].step)
        return orchestrator

    def _attach(self, run: PipelineRun) -> None:
        self._run = run
        self._events = (
            PipelineEventEmitter(self._event_store, run.run_id)
            if self._event_store
            else None
        )
        self._persisted = {}
        self._persisted_artifacts = set()

    # -------------------------------------------------------------------------
    # Mutating operations
    # -------------------------------------------------------------------------

    async def run_stage(self, stage_id: "StageId | str") -> StageInstance:
        """Execute one stage. See PipelineStateMachine.run_stage."""
        machine = PipelineStateMachine(
            self.run, self._executor, self._events, self._max_context_chars
        )
        try:
            return await machine.run_stage(stage_id)
        finally:
            self._sync_store()

    async def resolve_interrupt(self, feedback: str | FeedbackAction) -> StageId:
        """Resolve the pending interrupt. See InterruptResolver.resolve."""
        run = self.run
        run.ensure_no_execution()
        async with run.lock:
            target = InterruptResolver(run, self._events).resolve(feedback)
        self._sync_store()
        return target

    async def restore_checkpoint(self, ref: int | str) -> Checkpoint:
        """
        Roll back to a checkpoint (by step or id) and truncate later history.

        Raises:
            CheckpointNotFound: If ref is not in the log
            ConcurrentExecutionConflict: If a stage is processing
        """
        run = self.run
        run.ensure_no_execution()
        async with run.lock:
            checkpoint, dropped = run.restore_checkpoint(ref)
        logger.info(
            "Restored run %s to step %d, discarded %d checkpoint(s)",
            run.run_id,
            checkpoint.step,
            len(dropped),
        )
        if self._events:
            self._events.restored(checkpoint.step, len(dropped))
        self._truncate_store(checkpoint.step)
        return checkpoint

    def save_checkpoint(self, agent: str = "manual") -> Checkpoint:
        """Append a checkpoint of the current state outside stage execution."""
        run = self.run
        run.ensure_no_execution()
        checkpoint = run.save_checkpoint(agent=agent, stage_id=run.current_stage)
        if self._events:
            self._events.checkpoint_saved(
                checkpoint.stage_id.value if checkpoint.stage_id else None,
                checkpoint.step,
            )
        self._sync_store()
        return checkpoint

    async def run_to_completion(
        self,
        approver: Approver,
        recursion_limit: int = DEFAULT_RECURSION_LIMIT,
    ) -> bool:
        """
        Drive stages in order until the run completes or cannot continue.

        Each interrupt is handed to approver and its answer resolved before
        continuing. A stage found failed on arrival (by an earlier drive or a
        rejection routed past it) is retried; a stage that fails during this
        drive stops it.

        Args:
            approver: Async callback returning feedback for a paused stage
            recursion_limit: Maximum number of stage executions

        Returns:
            True if every stage is complete
        """
        run = self.run
        for _ in range(recursion_limit):
            if run.is_complete:
                return True
            stage_id = run.current_stage
            if stage_id is None:
                return run.is_complete
            if run.stage(stage_id).status == StageStatus.FAILED:
                logger.info("Retrying failed stage %s", stage_id.value)

            try:
                await self.run_stage(stage_id)
            except ExecutorFailure:
                logger.warning("Stage %s failed, stopping", stage_id.value)
                return False

            if run.graph_status == GraphStatus.INTERRUPTED and run.interrupt_payload:
                feedback = await approver(run.interrupt_payload)
                await self.resolve_interrupt(feedback)
        logger.warning("Recursion limit of %d stage runs reached", recursion_limit)
        return run.is_complete

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def run(self) -> PipelineRun:
        if self._run is None:
            raise PipelineError("No pipeline run has been seeded")
        return self._run

    @property
    def run_id(self) -> str:
        return self.run.run_id

    @property
    def graph(self) -> StageGraph:
        return self._graph

    @property
    def graph_status(self) -> GraphStatus:
        return self.run.graph_status

    @property
    def interrupt_payload(self) -> InterruptPayload | None:
        return self.run.interrupt_payload

    @property
    def current_stage(self) -> StageId | None:
        return self.run.current_stage

    def stage(self, stage_id: "StageId | str") -> StageInstance:
        return self.run.stage(parse_stage_id(stage_id))

    def stage_statuses(self) -> dict[StageId, StageStatus]:
        return {s.id: s.status for s in self.run.stages}

    def artifacts(self) -> list[Artifact]:
        return list(self.run.artefacts)

    def checkpoints(self) -> list[Checkpoint]:
        return list(self.run.checkpoints)

    def artifact_history(self) -> list[Artifact]:
        """Every artifact committed for the run, including superseded ones."""
        if self._store is None:
            return self.artifacts()
        return self._store.fetch_artifacts(self.run.run_id)

    # -------------------------------------------------------------------------
    # Persistence mirroring
    # -------------------------------------------------------------------------

    def _sync_store(self) -> None:
        if self._store is None or self._run is None:
            return
        run = self._run
        try:
            for checkpoint in run.checkpoints:
                if self._persisted.get(checkpoint.step) is not checkpoint:
                    self._store.persist(checkpoint)
                    self._persisted[checkpoint.step] = checkpoint
            for artifact in run.artefacts:
                if artifact.artifact_id not in self._persisted_artifacts:
                    self._store.persist_artifact(run.run_id, artifact)
                    self._persisted_artifacts.add(artifact.artifact_id)
        except (PersistenceError, OSError) as e:
            logger.warning("Checkpoint store write failed for run %s: %s", run.run_id, e)

    def _truncate_store(self, step: int) -> None:
        self._persisted = {s: c for s, c in self._persisted.items() if s <= step}
        if self._store is None:
            return
        try:
            removed = self._store.truncate(self.run.run_id, step)
            logger.debug("Removed %d stored checkpoint(s) after step %d", removed, step)
        except (PersistenceError, OSError) as e:
            logger.warning(
                "Checkpoint store truncate failed for run %s: %s", self.run.run_id, e
            )
        self._sync_store()
