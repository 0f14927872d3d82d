"""Tests for the OpenAI-compatible executors (no network)."""

import asyncio
import json
from types import SimpleNamespace
from typing import Any

import pytest

from stagewright.domain.exceptions import MalformedAgentResponse
from stagewright.domain.models import ArtifactType, StageId

pytest.importorskip("openai")

from stagewright.infrastructure.llm.openai_chat import (  # noqa: E402
    OpenAIAgentExecutor,
    OpenAIExecutorConfig,
    OpenAIStreamingExecutor,
)

RESPONSE = json.dumps(
    {
        "system_state": {"interrupt_signal": False, "message": "done"},
        "artifact": {"type": "code", "content": "def f():\n    pass"},
        "trace": {"agent": "logic-agent"},
    }
)


class FakeCompletions:
    """Stands in for client.chat.completions."""

    def __init__(self, content: str = RESPONSE, total_tokens: int = 77):
        self.content = content
        self.total_tokens = total_tokens
        self.requests: list[dict[str, Any]] = []

    async def create(self, **kwargs: Any) -> Any:
        self.requests.append(kwargs)
        if kwargs.get("stream"):
            return self._stream()
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(
            choices=[SimpleNamespace(message=message)],
            usage=SimpleNamespace(total_tokens=self.total_tokens),
        )

    async def _stream(self):  # type: ignore[no-untyped-def]
        for i in range(0, len(self.content), 10):
            delta = SimpleNamespace(content=self.content[i : i + 10])
            yield SimpleNamespace(choices=[SimpleNamespace(delta=delta)])


def _with_fake(executor: OpenAIAgentExecutor, completions: FakeCompletions) -> None:
    executor._client = SimpleNamespace(chat=SimpleNamespace(completions=completions))  # type: ignore[assignment]


class TestOpenAIAgentExecutor:
    """Tests for request building and response handling."""

    def test_config_kwargs(self) -> None:
        executor = OpenAIAgentExecutor(model="llama3", temperature=0.0)
        assert executor._config.model == "llama3"

    def test_unknown_config_rejected(self) -> None:
        with pytest.raises(TypeError):
            OpenAIAgentExecutor(rmax=3)

    def test_execute_parses_response(self) -> None:
        executor = OpenAIAgentExecutor(OpenAIExecutorConfig(model="qwen2.5:7b"))
        completions = FakeCompletions()
        _with_fake(executor, completions)

        result = asyncio.run(executor.execute(StageId.LOGIC, "Write logic.", "ctx"))

        assert result.artifact_type == ArtifactType.CODE
        assert result.tokens_estimated == 77
        request = completions.requests[0]
        assert request["model"] == "qwen2.5:7b"
        assert request["response_format"] == {"type": "json_object"}
        assert request["messages"][1]["content"] == "Write logic.\n\nctx"

    def test_system_prompt_flags_interrupt_stages(self) -> None:
        executor = OpenAIAgentExecutor(interrupt_stages=["logic"])

        logic = executor._messages(StageId.LOGIC, "p", "c")[0]["content"]
        api = executor._messages(StageId.API, "p", "c")[0]["content"]

        assert '"interrupt_signal": true' in logic
        assert '"interrupt_signal": false' in api

    def test_data_stage_gets_schema_rules(self) -> None:
        executor = OpenAIAgentExecutor()
        system = executor._messages(StageId.DATA, "p", "c")[0]["content"]
        assert "isKey" in system

    def test_malformed_response(self) -> None:
        executor = OpenAIAgentExecutor()
        _with_fake(executor, FakeCompletions(content="Sorry, I can't."))

        with pytest.raises(MalformedAgentResponse):
            asyncio.run(executor.execute(StageId.PRD, "p", "c"))


class TestOpenAIStreamingExecutor:
    """Tests for streamed completions."""

    def test_stream_yields_deltas_then_complete(self) -> None:
        executor = OpenAIStreamingExecutor()
        completions = FakeCompletions()
        _with_fake(executor, completions)

        async def collect() -> list[Any]:
            return [e async for e in executor.stream(StageId.LOGIC, "p", "c")]

        events = asyncio.run(collect())

        assert events[0].kind == "status"
        assert events[-1].kind == "complete"
        assert events[-1].text == RESPONSE
        assert "".join(e.text for e in events if e.kind == "delta") == RESPONSE
        assert completions.requests[0]["stream"] is True
