"""
Mock executors for testing without an LLM.

Return scripted results in sequence, or canned per-stage results when no
script is given.
"""

import asyncio
import json
from collections.abc import AsyncIterator, Iterable

from stagewright.domain.interfaces import (
    AgentExecutorInterface,
    StreamingAgentExecutorInterface,
)
from stagewright.domain.models import AgentResult, ArtifactType, StageId, StreamEvent
from stagewright.domain.stages import DEFAULT_INTERRUPT_STAGES

ScriptItem = AgentResult | str | Exception

SAMPLE_SCHEMA = [
    {
        "name": "User",
        "module": "accounts",
        "description": "A registered user",
        "fields": [
            {"name": "id", "type": "uuid", "required": True, "isKey": True},
            {"name": "email", "type": "string", "required": True},
        ],
    }
]


def canned_result(stage_id: StageId, interrupt: bool) -> AgentResult:
    """Deterministic placeholder output for a stage."""
    if stage_id == StageId.DATA:
        content = f"```json\n{json.dumps(SAMPLE_SCHEMA, indent=2)}\n```"
        artifact_type = ArtifactType.SCHEMA
    elif stage_id in (StageId.LOGIC, StageId.FRONTEND):
        content = f"# {stage_id.value} module\n\ndef handler():\n    return None\n"
        artifact_type = ArtifactType.CODE
    elif stage_id == StageId.DEPLOYMENT:
        content = "pipeline:\n  stages: [build, test, deploy]\n"
        artifact_type = ArtifactType.CONFIG
    else:
        content = f"# {stage_id.value.upper()}\n\nGenerated {stage_id.value} document."
        artifact_type = ArtifactType.DOC
    return AgentResult(
        interrupt_signal=interrupt,
        message=(
            f"{stage_id.value} output is ready for review"
            if interrupt
            else f"{stage_id.value} complete"
        ),
        artifact_type=artifact_type,
        artifact_content=content,
        reasoning_summary=f"Mock summary for {stage_id.value}",
        tokens_estimated=len(content) // 4,
        agent=f"{stage_id.value}-agent",
    )


class MockAgentExecutor(AgentExecutorInterface):
    """Returns scripted or canned results for testing."""

    def __init__(
        self,
        responses: Iterable[ScriptItem] | None = None,
        interrupt_stages: Iterable[StageId | str] = DEFAULT_INTERRUPT_STAGES,
        delay: float = 0.0,
    ):
        """
        Args:
            responses: Results to return in sequence. A string becomes a
                non-interrupting doc result; an exception is raised.
                None means canned results for every call.
            interrupt_stages: Stages whose canned results signal an interrupt
            delay: Seconds to sleep before answering
        """
        self._responses = list(responses) if responses is not None else None
        self._interrupt_stages = {StageId(s) for s in interrupt_stages}
        self._delay = delay
        self.calls: list[tuple[StageId, str, str]] = []

    async def execute(
        self, stage_id: StageId, prompt_template: str, context: str
    ) -> AgentResult:
        """Return the next scripted (or canned) result."""
        self.calls.append((stage_id, prompt_template, context))
        await asyncio.sleep(self._delay)
        return self._next(stage_id)

    def _next(self, stage_id: StageId) -> AgentResult:
        if self._responses is None:
            return canned_result(stage_id, stage_id in self._interrupt_stages)

        index = len(self.calls) - 1
        if index >= len(self._responses):
            raise RuntimeError("MockAgentExecutor exhausted responses")
        item = self._responses[index]
        if isinstance(item, Exception):
            raise item
        if isinstance(item, str):
            return AgentResult(
                interrupt_signal=False,
                message="",
                artifact_type=ArtifactType.DOC,
                artifact_content=item,
            )
        return item

    @property
    def call_count(self) -> int:
        """Number of times execute() has been called."""
        return len(self.calls)

    def reset(self) -> None:
        """Forget recorded calls so scripted responses can be reused."""
        self.calls = []


class MockStreamingExecutor(MockAgentExecutor, StreamingAgentExecutorInterface):
    """
    Streams a result's content in fixed-size chunks, then completes.

    With fail_after set, an error event is emitted after that many chunks.
    """

    def __init__(
        self,
        responses: Iterable[ScriptItem] | None = None,
        interrupt_stages: Iterable[StageId | str] = DEFAULT_INTERRUPT_STAGES,
        chunk_size: int = 16,
        fail_after: int | None = None,
    ):
        super().__init__(responses, interrupt_stages)
        self._chunk_size = chunk_size
        self._fail_after = fail_after
        self.partials: list[int] = []  # Chunks emitted per call

    async def stream(
        self, stage_id: StageId, prompt_template: str, context: str
    ) -> AsyncIterator[StreamEvent]:
        self.calls.append((stage_id, prompt_template, context))
        result = self._next(stage_id)
        yield StreamEvent(kind="status", text=f"{stage_id.value}: generating")

        content = result.artifact_content
        emitted = 0
        for start in range(0, len(content), self._chunk_size):
            if self._fail_after is not None and emitted >= self._fail_after:
                self.partials.append(emitted)
                yield StreamEvent(kind="error", text="Stream interrupted by provider")
                return
            yield StreamEvent(kind="delta", text=content[start : start + self._chunk_size])
            emitted += 1
            await asyncio.sleep(0)

        self.partials.append(emitted)
        yield StreamEvent(kind="complete", result=result)
