"""Tests for agent response parsing."""

import json

import pytest

from stagewright.application.response_parser import (
    extract_schema_tables,
    map_artifact_type,
    parse_agent_response,
    strip_fences,
)
from stagewright.domain.exceptions import ExecutorFailure, MalformedAgentResponse
from stagewright.domain.models import ArtifactType, StageId


def _response(**overrides: object) -> dict:
    data = {
        "system_state": {
            "current_phase": "data",
            "status": "complete",
            "interrupt_signal": True,
            "message": "Please review the schema",
        },
        "artifact": {
            "type": "mermaid_erd",
            "content": "erDiagram\n  USER ||--o{ ORDER : places",
            "logic_summary": "Users place orders.",
        },
        "trace": {"agent": "data-agent", "reasoning": "3NF", "tokens_estimated": 42},
    }
    data.update(overrides)
    return data


class TestParseAgentResponse:
    """Tests for parse_agent_response."""

    def test_full_response(self) -> None:
        result = parse_agent_response(json.dumps(_response()), StageId.DATA)

        assert result.interrupt_signal is True
        assert result.message == "Please review the schema"
        assert result.artifact_type == ArtifactType.SCHEMA
        assert result.artifact_content.startswith("erDiagram")
        assert result.reasoning_summary == "Users place orders."
        assert result.tokens_estimated == 42
        assert result.agent == "data-agent"

    def test_fenced_response(self) -> None:
        raw = "```json\n" + json.dumps(_response()) + "\n```"
        assert parse_agent_response(raw).tokens_estimated == 42

    def test_dict_input(self) -> None:
        assert parse_agent_response(_response()).agent == "data-agent"

    def test_minimal_response_defaults(self) -> None:
        result = parse_agent_response({"artifact": {"content": "# Doc"}})

        assert result.interrupt_signal is False
        assert result.artifact_type == ArtifactType.DOC
        assert result.tokens_estimated == 0

    def test_content_with_inner_fence_survives(self) -> None:
        content = "Example:\n```python\nprint('hi')\n```"
        raw = json.dumps({"artifact": {"type": "code", "content": content}})

        assert parse_agent_response(raw).artifact_content == content

    def test_invalid_json(self) -> None:
        with pytest.raises(MalformedAgentResponse, match="not valid JSON") as exc_info:
            parse_agent_response("I could not do it", StageId.PRD)
        assert exc_info.value.stage_id == StageId.PRD

    def test_missing_artifact(self) -> None:
        with pytest.raises(MalformedAgentResponse, match="schema validation"):
            parse_agent_response({"system_state": {"status": "complete"}})

    def test_malformed_is_executor_failure(self) -> None:
        with pytest.raises(ExecutorFailure):
            parse_agent_response("{")


class TestMapArtifactType:
    """Tests for map_artifact_type."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("code", ArtifactType.CODE),
            ("CODE", ArtifactType.CODE),
            ("mermaid_erd", ArtifactType.SCHEMA),
            ("schema", ArtifactType.SCHEMA),
            ("config", ArtifactType.CONFIG),
            ("markdown", ArtifactType.DOC),
            ("anything", ArtifactType.DOC),
        ],
    )
    def test_mapping(self, raw: str, expected: ArtifactType) -> None:
        assert map_artifact_type(raw) == expected


class TestStripFences:
    """Tests for strip_fences."""

    def test_unwraps_single_block(self) -> None:
        assert strip_fences("```json\n{}\n```") == "{}"

    def test_leaves_plain_text(self) -> None:
        assert strip_fences("  {}  ") == "{}"

    def test_leaves_embedded_fences(self) -> None:
        text = 'prefix ```json\n{}\n``` suffix'
        assert strip_fences(text) == text


class TestExtractSchemaTables:
    """Tests for extract_schema_tables."""

    TABLES = [
        {
            "name": "Order",
            "module": "sales",
            "description": "A placed order",
            "fields": [
                {"name": "id", "type": "uuid", "required": True, "isKey": True},
                {"name": "total", "type": "decimal"},
            ],
        }
    ]

    def test_bare_json(self) -> None:
        tables = extract_schema_tables(json.dumps(self.TABLES))

        assert len(tables) == 1
        assert tables[0].name == "Order"
        assert tables[0].module == "sales"
        assert tables[0].fields[0].is_key
        assert not tables[0].fields[1].required

    def test_json_block_inside_prose(self) -> None:
        content = "Here is the model:\n```json\n" + json.dumps(self.TABLES) + "\n```\nDone."
        assert [t.name for t in extract_schema_tables(content)] == ["Order"]

    def test_unparseable_returns_empty(self, caplog: pytest.LogCaptureFixture) -> None:
        assert extract_schema_tables("erDiagram\n USER ||--o{ ORDER : places") == []
        assert "Could not extract schema tables" in caplog.text

    def test_wrong_shape_returns_empty(self) -> None:
        assert extract_schema_tables(json.dumps({"name": "Order"})) == []
