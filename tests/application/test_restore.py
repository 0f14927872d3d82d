"""Tests for checkpoint rollback."""

import asyncio

import pytest

from stagewright.application.orchestrator import PipelineOrchestrator
from stagewright.domain.exceptions import (
    CheckpointNotFound,
    ConcurrentExecutionConflict,
)
from stagewright.domain.models import (
    Approve,
    GraphStatus,
    StageId,
    StageStatus,
)
from stagewright.infrastructure.llm.mock import MockAgentExecutor
from stagewright.infrastructure.persistence.memory import InMemoryCheckpointStore

from conftest import PRODUCT


def _run_through_logic(orchestrator: PipelineOrchestrator) -> None:
    async def drive() -> None:
        await orchestrator.run_stage(StageId.PRD)
        await orchestrator.run_stage(StageId.DESIGN)
        await orchestrator.run_stage(StageId.DATA)
        await orchestrator.resolve_interrupt(Approve())
        await orchestrator.run_stage(StageId.LOGIC)
        await orchestrator.resolve_interrupt(Approve())

    asyncio.run(drive())


class TestRestore:
    """Tests for restoring to an earlier checkpoint."""

    def test_restores_stage_state(self, orchestrator: PipelineOrchestrator) -> None:
        _run_through_logic(orchestrator)
        # 0 prd, 1 design, 2 data pre-run, 3 data approved, 4 logic pre-run, 5 logic approved
        assert len(orchestrator.checkpoints()) == 6

        checkpoint = asyncio.run(orchestrator.restore_checkpoint(1))

        assert checkpoint.step == 1
        statuses = orchestrator.stage_statuses()
        assert statuses[StageId.PRD] == StageStatus.COMPLETE
        assert statuses[StageId.DESIGN] == StageStatus.COMPLETE
        assert statuses[StageId.DATA] == StageStatus.IDLE
        assert statuses[StageId.LOGIC] == StageStatus.LOCKED
        assert orchestrator.graph_status == GraphStatus.IDLE
        assert orchestrator.current_stage == StageId.DATA

    def test_truncates_later_history(self, orchestrator: PipelineOrchestrator) -> None:
        _run_through_logic(orchestrator)

        asyncio.run(orchestrator.restore_checkpoint(1))

        assert [c.step for c in orchestrator.checkpoints()] == [0, 1]
        assert {a.source_stage_id for a in orchestrator.artifacts()} == {
            StageId.PRD,
            StageId.DESIGN,
        }

    def test_restore_by_checkpoint_id(self, orchestrator: PipelineOrchestrator) -> None:
        _run_through_logic(orchestrator)
        target = orchestrator.checkpoints()[3]

        restored = asyncio.run(orchestrator.restore_checkpoint(target.checkpoint_id))

        assert restored.step == 3
        assert orchestrator.stage_statuses()[StageId.DATA] == StageStatus.COMPLETE
        assert orchestrator.stage_statuses()[StageId.LOGIC] == StageStatus.IDLE

    def test_restore_to_pre_run_checkpoint_reruns_stage(
        self, orchestrator: PipelineOrchestrator
    ) -> None:
        _run_through_logic(orchestrator)

        asyncio.run(orchestrator.restore_checkpoint(2))
        stage = asyncio.run(orchestrator.run_stage(StageId.DATA))

        assert stage.status == StageStatus.AWAITING_APPROVAL
        assert [c.step for c in orchestrator.checkpoints()] == [0, 1, 2, 3]

    def test_execution_continues_from_restored_point(
        self, orchestrator: PipelineOrchestrator
    ) -> None:
        _run_through_logic(orchestrator)
        asyncio.run(orchestrator.restore_checkpoint(0))

        asyncio.run(orchestrator.run_stage(StageId.DESIGN))

        assert [c.step for c in orchestrator.checkpoints()] == [0, 1]

    def test_restore_clears_pending_interrupt(
        self, data_paused: PipelineOrchestrator
    ) -> None:
        asyncio.run(data_paused.restore_checkpoint(0))

        assert data_paused.interrupt_payload is None
        assert data_paused.graph_status == GraphStatus.IDLE
        assert data_paused.stage_statuses()[StageId.DESIGN] == StageStatus.IDLE


class TestRestoreIsolation:
    """Mutating live state after a restore never alters stored checkpoints."""

    def test_no_aliasing(self, orchestrator: PipelineOrchestrator) -> None:
        _run_through_logic(orchestrator)
        checkpoint = asyncio.run(orchestrator.restore_checkpoint(1))

        orchestrator.stage(StageId.PRD).output = "mutated"
        orchestrator.stage(StageId.PRD).validation_errors.append("mutated")
        orchestrator.run.artefacts.clear()

        saved = orchestrator.checkpoints()[1].snapshot
        assert saved is checkpoint.snapshot
        assert saved.stage(StageId.PRD).output != "mutated"
        assert saved.stage(StageId.PRD).validation_errors == ()
        assert len(saved.artefacts) == 2

    def test_double_restore_is_idempotent(
        self, orchestrator: PipelineOrchestrator
    ) -> None:
        _run_through_logic(orchestrator)

        asyncio.run(orchestrator.restore_checkpoint(1))
        first = orchestrator.run.snapshot()
        asyncio.run(orchestrator.restore_checkpoint(1))

        assert orchestrator.run.snapshot() == first


class TestRestoreErrors:
    """Tests for rejected restores."""

    def test_unknown_step(self, orchestrator: PipelineOrchestrator) -> None:
        _run_through_logic(orchestrator)
        before = orchestrator.run.snapshot()

        with pytest.raises(CheckpointNotFound):
            asyncio.run(orchestrator.restore_checkpoint(42))

        assert orchestrator.run.snapshot() == before
        assert len(orchestrator.checkpoints()) == 6

    def test_unknown_id(self, orchestrator: PipelineOrchestrator) -> None:
        with pytest.raises(CheckpointNotFound):
            asyncio.run(orchestrator.restore_checkpoint("no-such-checkpoint"))

    def test_rejected_while_processing(self) -> None:
        store = InMemoryCheckpointStore()
        orchestrator = PipelineOrchestrator(MockAgentExecutor(delay=0.05), store)
        orchestrator.seed(PRODUCT)
        asyncio.run(orchestrator.run_stage(StageId.PRD))

        async def race() -> list[object]:
            return await asyncio.gather(
                orchestrator.run_stage(StageId.DESIGN),
                orchestrator.restore_checkpoint(0),
                return_exceptions=True,
            )

        outcomes = asyncio.run(race())

        assert isinstance(outcomes[1], ConcurrentExecutionConflict)
        assert orchestrator.stage_statuses()[StageId.DESIGN] == StageStatus.COMPLETE
        assert len(orchestrator.checkpoints()) == 2


class TestRestorePersistence:
    """Tests for store truncation on restore."""

    def test_store_truncated(
        self,
        orchestrator: PipelineOrchestrator,
        memory_store: InMemoryCheckpointStore,
    ) -> None:
        _run_through_logic(orchestrator)
        assert len(memory_store.list("run-001")) == 6

        asyncio.run(orchestrator.restore_checkpoint(2))

        assert [c.step for c in memory_store.list("run-001")] == [0, 1, 2]

    def test_new_checkpoints_overwrite_truncated_steps(
        self,
        orchestrator: PipelineOrchestrator,
        memory_store: InMemoryCheckpointStore,
    ) -> None:
        _run_through_logic(orchestrator)
        asyncio.run(orchestrator.restore_checkpoint(0))

        asyncio.run(orchestrator.run_stage(StageId.DESIGN))

        stored = memory_store.list("run-001")
        assert [c.step for c in stored] == [0, 1]
        assert stored[1].checkpoint_id == orchestrator.checkpoints()[1].checkpoint_id
