"""Tests for the mock executors."""

import asyncio

import pytest

from stagewright.domain.models import ArtifactType, StageId, StreamEvent
from stagewright.infrastructure.llm.mock import (
    MockAgentExecutor,
    MockStreamingExecutor,
    canned_result,
)

from conftest import make_result


async def _collect(executor: MockStreamingExecutor, stage_id: StageId) -> list[StreamEvent]:
    return [event async for event in executor.stream(stage_id, "prompt", "context")]


class TestCannedResults:
    """Tests for canned per-stage output."""

    @pytest.mark.parametrize(
        ("stage_id", "artifact_type"),
        [
            (StageId.PRD, ArtifactType.DOC),
            (StageId.DATA, ArtifactType.SCHEMA),
            (StageId.LOGIC, ArtifactType.CODE),
            (StageId.FRONTEND, ArtifactType.CODE),
            (StageId.DEPLOYMENT, ArtifactType.CONFIG),
        ],
    )
    def test_artifact_types(self, stage_id: StageId, artifact_type: ArtifactType) -> None:
        assert canned_result(stage_id, False).artifact_type == artifact_type

    def test_default_interrupt_stages(self) -> None:
        executor = MockAgentExecutor()

        data = asyncio.run(executor.execute(StageId.DATA, "p", "c"))
        api = asyncio.run(executor.execute(StageId.API, "p", "c"))

        assert data.interrupt_signal
        assert not api.interrupt_signal
        assert data.agent == "data-agent"


class TestMockAgentExecutor:
    """Tests for scripted responses."""

    def test_returns_in_sequence(self) -> None:
        executor = MockAgentExecutor([make_result("one"), "two"])

        first = asyncio.run(executor.execute(StageId.PRD, "p", "c"))
        second = asyncio.run(executor.execute(StageId.DESIGN, "p", "c"))

        assert first.artifact_content == "one"
        assert second.artifact_content == "two"
        assert second.artifact_type == ArtifactType.DOC
        assert executor.call_count == 2

    def test_raises_scripted_exception(self) -> None:
        executor = MockAgentExecutor([ValueError("scripted")])
        with pytest.raises(ValueError, match="scripted"):
            asyncio.run(executor.execute(StageId.PRD, "p", "c"))

    def test_exhausted(self) -> None:
        executor = MockAgentExecutor([])
        with pytest.raises(RuntimeError, match="exhausted"):
            asyncio.run(executor.execute(StageId.PRD, "p", "c"))

    def test_records_calls_and_resets(self) -> None:
        executor = MockAgentExecutor(["only"])
        asyncio.run(executor.execute(StageId.PRD, "prompt", "context"))

        assert executor.calls == [(StageId.PRD, "prompt", "context")]

        executor.reset()
        again = asyncio.run(executor.execute(StageId.PRD, "prompt", "context"))
        assert again.artifact_content == "only"


class TestMockStreamingExecutor:
    """Tests for chunked streaming."""

    def test_chunks_then_complete(self) -> None:
        executor = MockStreamingExecutor([make_result("abcdefgh")], chunk_size=3)

        events = asyncio.run(_collect(executor, StageId.PRD))

        assert [e.kind for e in events] == ["status", "delta", "delta", "delta", "complete"]
        assert "".join(e.text for e in events if e.kind == "delta") == "abcdefgh"
        assert events[-1].result is not None
        assert executor.partials == [3]

    def test_fail_after(self) -> None:
        executor = MockStreamingExecutor(
            [make_result("abcdefgh")], chunk_size=2, fail_after=1
        )

        events = asyncio.run(_collect(executor, StageId.PRD))

        assert [e.kind for e in events] == ["status", "delta", "error"]
        assert executor.partials == [1]
