"""
OpenAI-compatible agent executor.

Works against OpenAI itself or any compatible endpoint (Ollama, vLLM,
LiteLLM) through the openai client's base_url.
"""

import json
import logging
import os
from collections.abc import AsyncIterator
from dataclasses import dataclass, field, replace
from typing import Any, cast

from stagewright.application.response_parser import parse_agent_response
from stagewright.domain.interfaces import (
    AgentExecutorInterface,
    StreamingAgentExecutorInterface,
)
from stagewright.domain.models import AgentResult, StageId, StreamEvent
from stagewright.domain.stages import DEFAULT_INTERRUPT_STAGES

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:11434/v1"

RESPONSE_PROTOCOL = """You are the {stage} agent in a multi-stage software design pipeline.
Respond with a single JSON object and nothing else:
{{
  "system_state": {{"current_phase": "{stage}", "status": "complete",
                   "interrupt_signal": {interrupt}, "message": "<one line for the reviewer>"}},
  "artifact": {{"type": "<markdown|code|mermaid_erd|config>", "content": "<the deliverable>",
               "logic_summary": "<two sentence summary>"}},
  "trace": {{"agent": "{stage}-agent", "reasoning": "<brief>", "tokens_estimated": <int>}}
}}"""

DATA_STAGE_RULES = (
    "The artifact content must be a JSON array of tables, each "
    '{"name", "module", "description", "fields": [{"name", "type", '
    '"required", "isKey", "description"}]}, inside a ```json fence.'
)


@dataclass
class OpenAIExecutorConfig:
    """Configuration for OpenAIAgentExecutor.

    This typed config ensures unknown fields are rejected at construction time.
    """

    model: str = "qwen2.5:7b"
    base_url: str = DEFAULT_BASE_URL
    api_key: str | None = None  # Falls back to OPENAI_API_KEY
    timeout: float = 120.0
    temperature: float = 0.4
    interrupt_stages: list[str] = field(
        default_factory=lambda: sorted(s.value for s in DEFAULT_INTERRUPT_STAGES)
    )


class OpenAIAgentExecutor(AgentExecutorInterface):
    """Executes stages through an OpenAI-compatible chat completions API."""

    config_class = OpenAIExecutorConfig

    def __init__(self, config: OpenAIExecutorConfig | None = None, **kwargs: Any):
        """
        Args:
            config: Typed configuration object (preferred)
            **kwargs: Fields of OpenAIExecutorConfig, when no config is given
        """
        if config is None:
            config = OpenAIExecutorConfig(**kwargs)

        try:
            from openai import AsyncOpenAI
        except ImportError as err:
            raise ImportError("openai library required: pip install openai") from err

        self._config = config
        self._interrupt_stages = {StageId(s) for s in config.interrupt_stages}
        self._client = AsyncOpenAI(
            base_url=config.base_url,
            # Local endpoints require a key but ignore it
            api_key=config.api_key or os.environ.get("OPENAI_API_KEY") or "ollama",
            timeout=config.timeout,
        )

    def _messages(
        self, stage_id: StageId, prompt_template: str, context: str
    ) -> list[dict[str, str]]:
        system = RESPONSE_PROTOCOL.format(
            stage=stage_id.value,
            interrupt=json.dumps(stage_id in self._interrupt_stages),
        )
        if stage_id == StageId.DATA:
            system = f"{system}\n{DATA_STAGE_RULES}"
        return [
            {"role": "system", "content": system},
            {"role": "user", "content": f"{prompt_template}\n\n{context}"},
        ]

    async def execute(
        self, stage_id: StageId, prompt_template: str, context: str
    ) -> AgentResult:
        response = await self._client.chat.completions.create(
            model=self._config.model,
            messages=cast(Any, self._messages(stage_id, prompt_template, context)),
            temperature=self._config.temperature,
            response_format={"type": "json_object"},
        )
        content = response.choices[0].message.content or ""
        result = parse_agent_response(content, stage_id)
        if not result.tokens_estimated and response.usage is not None:
            result = replace(result, tokens_estimated=response.usage.total_tokens)
        logger.debug("Stage %s used %d tokens", stage_id.value, result.tokens_estimated)
        return result


class OpenAIStreamingExecutor(OpenAIAgentExecutor, StreamingAgentExecutorInterface):
    """Streams completion deltas into the stage output while generating."""

    async def stream(
        self, stage_id: StageId, prompt_template: str, context: str
    ) -> AsyncIterator[StreamEvent]:
        yield StreamEvent(kind="status", text=f"Calling {self._config.model}")
        stream = await self._client.chat.completions.create(
            model=self._config.model,
            messages=cast(Any, self._messages(stage_id, prompt_template, context)),
            temperature=self._config.temperature,
            response_format={"type": "json_object"},
            stream=True,
        )
        parts: list[str] = []
        async for chunk in stream:
            if not chunk.choices:
                continue
            delta = chunk.choices[0].delta.content
            if delta:
                parts.append(delta)
                yield StreamEvent(kind="delta", text=delta)
        yield StreamEvent(kind="complete", text="".join(parts))
