"""
Agent response parsing.

Agents answer with one JSON object:

    {
      "system_state": {"current_phase": ..., "status": ...,
                       "interrupt_signal": bool, "message": ...},
      "artifact": {"type": ..., "content": ..., "logic_summary": ...},
      "trace": {"agent": ..., "reasoning": ..., "tokens_estimated": int}
    }

The pydantic models below are wire schemas only; parse_agent_response
converts them to the domain AgentResult.
"""

import json
import logging
import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from stagewright.domain.exceptions import MalformedAgentResponse
from stagewright.domain.models import (
    AgentResult,
    ArtifactType,
    SchemaField,
    SchemaTable,
    StageId,
)

logger = logging.getLogger(__name__)

_FENCE_PATTERN = re.compile(r"^```[a-zA-Z]*\s*\n?(.*?)\n?```\s*$", re.DOTALL)
_JSON_BLOCK_PATTERN = re.compile(r"```json\s*\n(.*?)\n?```", re.DOTALL)

# =============================================================================
# Wire schemas
# =============================================================================


class SystemState(BaseModel):
    current_phase: str = ""
    status: str = ""
    interrupt_signal: bool = False
    message: str = ""


class ArtifactPayload(BaseModel):
    type: str = "markdown"
    content: str
    logic_summary: str = ""


class TracePayload(BaseModel):
    agent: str = ""
    reasoning: str = ""
    tokens_estimated: int = 0


class AgentResponse(BaseModel):
    """Structured agent output."""

    system_state: SystemState = Field(default_factory=SystemState)
    artifact: ArtifactPayload
    trace: TracePayload = Field(default_factory=TracePayload)


class SchemaFieldModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    type: str
    required: bool = False
    is_key: bool = Field(default=False, alias="isKey")
    description: str | None = None


class SchemaTableModel(BaseModel):
    name: str
    module: str | None = None
    description: str | None = None
    fields: list[SchemaFieldModel] = Field(default_factory=list)


_SCHEMA_LIST = TypeAdapter(list[SchemaTableModel])

# =============================================================================
# Parsing
# =============================================================================


def strip_fences(text: str) -> str:
    """Unwrap text that is entirely one fenced block."""
    stripped = text.strip()
    match = _FENCE_PATTERN.match(stripped)
    if match:
        return match.group(1).strip()
    return stripped


def map_artifact_type(raw_type: str) -> ArtifactType:
    """Map a wire artifact type onto the domain's four types."""
    lowered = raw_type.lower()
    if lowered == "code":
        return ArtifactType.CODE
    if lowered in ("mermaid_erd", "schema"):
        return ArtifactType.SCHEMA
    if lowered == "config":
        return ArtifactType.CONFIG
    return ArtifactType.DOC


def parse_agent_response(
    raw: str | dict[str, Any], stage_id: StageId | None = None
) -> AgentResult:
    """
    Parse an agent response into an AgentResult.

    Args:
        raw: JSON text (optionally inside a ```json fence) or a decoded dict
        stage_id: Stage the response belongs to, for error reporting

    Returns:
        The parsed AgentResult

    Raises:
        MalformedAgentResponse: If the payload is not valid JSON or lacks
            the required fields
    """
    if isinstance(raw, str):
        try:
            data = json.loads(strip_fences(raw))
        except json.JSONDecodeError as e:
            raise MalformedAgentResponse(
                f"Agent response is not valid JSON: {e}", stage_id
            ) from e
    else:
        data = raw

    try:
        response = AgentResponse.model_validate(data)
    except ValidationError as e:
        raise MalformedAgentResponse(
            f"Agent response failed schema validation: {e}", stage_id
        ) from e

    return AgentResult(
        interrupt_signal=response.system_state.interrupt_signal,
        message=response.system_state.message,
        artifact_type=map_artifact_type(response.artifact.type),
        artifact_content=response.artifact.content,
        reasoning_summary=response.artifact.logic_summary,
        tokens_estimated=response.trace.tokens_estimated,
        agent=response.trace.agent,
    )


def extract_schema_tables(content: str) -> list[SchemaTable]:
    """
    Extract entity tables from data stage output.

    The content is expected to be a JSON array of tables, bare or inside a
    ```json fence. Anything else yields an empty list and a warning; the
    stage itself is not failed over unparseable schemas.
    """
    block = _JSON_BLOCK_PATTERN.search(content)
    payload = block.group(1) if block else strip_fences(content)
    try:
        tables = _SCHEMA_LIST.validate_json(payload)
    except ValidationError as e:
        logger.warning("Could not extract schema tables: %s", e.errors()[:1])
        return []

    return [
        SchemaTable(
            name=t.name,
            module=t.module,
            description=t.description,
            fields=tuple(
                SchemaField(
                    name=f.name,
                    type=f.type,
                    required=f.required,
                    is_key=f.is_key,
                    description=f.description,
                )
                for f in t.fields
            ),
        )
        for t in tables
    ]
