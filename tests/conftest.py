"""Shared pytest fixtures for stagewright tests."""

import asyncio
import logging

import pytest
from click.testing import CliRunner

from stagewright.application.orchestrator import PipelineOrchestrator
from stagewright.application.pipeline import PipelineRun
from stagewright.domain.models import AgentResult, ArtifactType, StageId
from stagewright.domain.stages import StageGraph
from stagewright.infrastructure.llm.mock import MockAgentExecutor
from stagewright.infrastructure.persistence.events import InMemoryEventStore
from stagewright.infrastructure.persistence.memory import InMemoryCheckpointStore

PRODUCT = "A marketplace for vintage typewriters"


def make_result(
    content: str = "# Output",
    interrupt: bool = False,
    artifact_type: ArtifactType = ArtifactType.DOC,
    message: str = "",
    summary: str = "",
) -> AgentResult:
    """Build an AgentResult with sensible defaults."""
    return AgentResult(
        interrupt_signal=interrupt,
        message=message,
        artifact_type=artifact_type,
        artifact_content=content,
        reasoning_summary=summary,
        tokens_estimated=len(content) // 4,
    )


@pytest.fixture
def graph() -> StageGraph:
    """Default seven-stage graph (data and logic require approval)."""
    return StageGraph.default()


@pytest.fixture
def run(graph: StageGraph) -> PipelineRun:
    """A freshly seeded run."""
    return PipelineRun.seed(PRODUCT, graph, run_id="run-001")


@pytest.fixture
def mock_executor() -> MockAgentExecutor:
    """Executor answering every stage with canned output."""
    return MockAgentExecutor()


@pytest.fixture
def memory_store() -> InMemoryCheckpointStore:
    return InMemoryCheckpointStore()


@pytest.fixture
def event_store() -> InMemoryEventStore:
    return InMemoryEventStore()


@pytest.fixture
def orchestrator(
    mock_executor: MockAgentExecutor,
    memory_store: InMemoryCheckpointStore,
    event_store: InMemoryEventStore,
) -> PipelineOrchestrator:
    """Seeded orchestrator backed by in-memory stores."""
    orchestrator = PipelineOrchestrator(mock_executor, memory_store, event_store)
    orchestrator.seed(PRODUCT, run_id="run-001")
    return orchestrator


@pytest.fixture
def data_paused(orchestrator: PipelineOrchestrator) -> PipelineOrchestrator:
    """Orchestrator with prd and design complete and data awaiting approval."""

    async def advance() -> None:
        await orchestrator.run_stage(StageId.PRD)
        await orchestrator.run_stage(StageId.DESIGN)
        await orchestrator.run_stage(StageId.DATA)

    asyncio.run(advance())
    return orchestrator


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture(autouse=True)
def detach_cli_logging():
    """Drop handlers the CLI bound to a runner's captured streams."""
    yield
    logger = logging.getLogger("stagewright")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
