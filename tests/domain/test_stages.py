"""Tests for the stage graph."""

import pytest

from stagewright.domain.exceptions import StageNotFound
from stagewright.domain.models import StageId
from stagewright.domain.stages import (
    DEFAULT_INTERRUPT_STAGES,
    GUIDANCE_TIPS,
    StageGraph,
    parse_stage_id,
)


class TestDefaultGraph:
    """Tests for the built-in seven-stage graph."""

    def test_order(self, graph: StageGraph) -> None:
        assert graph.order == (
            StageId.PRD,
            StageId.DESIGN,
            StageId.DATA,
            StageId.LOGIC,
            StageId.API,
            StageId.FRONTEND,
            StageId.DEPLOYMENT,
        )
        assert graph.first == StageId.PRD
        assert len(graph) == 7

    def test_default_interrupt_stages(self, graph: StageGraph) -> None:
        flagged = {d.id for d in graph if d.requires_interrupt}
        assert flagged == set(DEFAULT_INTERRUPT_STAGES) == {StageId.DATA, StageId.LOGIC}

    def test_next_and_previous(self, graph: StageGraph) -> None:
        assert graph.next_stage(StageId.PRD) == StageId.DESIGN
        assert graph.next_stage(StageId.DEPLOYMENT) is None
        assert graph.previous_stage(StageId.PRD) is None
        assert graph.previous_stage(StageId.API) == StageId.LOGIC

    def test_every_stage_has_prompt_and_tip(self, graph: StageGraph) -> None:
        for definition in graph:
            assert definition.prompt_template
            assert definition.title
            assert definition.id in GUIDANCE_TIPS

    def test_contains(self, graph: StageGraph) -> None:
        assert StageId.DATA in graph
        assert "nonsense" not in graph


class TestGraphCopies:
    """Tests for derived graphs."""

    def test_with_interrupts_replaces_flags(self, graph: StageGraph) -> None:
        custom = graph.with_interrupts(["prd"])

        assert custom.requires_interrupt(StageId.PRD)
        assert not custom.requires_interrupt(StageId.DATA)
        # Original untouched
        assert graph.requires_interrupt(StageId.DATA)

    def test_with_interrupts_empty(self, graph: StageGraph) -> None:
        custom = graph.with_interrupts([])
        assert not any(d.requires_interrupt for d in custom)

    def test_with_prompts_overrides_one_stage(self, graph: StageGraph) -> None:
        custom = graph.with_prompts({StageId.API: "Write GraphQL."})

        assert custom.get(StageId.API).prompt_template == "Write GraphQL."
        assert custom.get(StageId.PRD).prompt_template == graph.get(StageId.PRD).prompt_template

    def test_with_prompts_unknown_stage_raises(self, graph: StageGraph) -> None:
        with pytest.raises(StageNotFound):
            graph.with_prompts({"marketing": "Sell it."})


class TestGraphValidation:
    """Tests for graph construction errors."""

    def test_empty_graph_rejected(self) -> None:
        with pytest.raises(ValueError):
            StageGraph([])

    def test_duplicate_ids_rejected(self, graph: StageGraph) -> None:
        prd = graph.get(StageId.PRD)
        with pytest.raises(ValueError, match="Duplicate"):
            StageGraph([prd, prd])


class TestParseStageId:
    """Tests for parse_stage_id."""

    def test_accepts_enum_and_string(self) -> None:
        assert parse_stage_id(StageId.LOGIC) == StageId.LOGIC
        assert parse_stage_id("logic") == StageId.LOGIC

    def test_unknown_raises_stage_not_found(self) -> None:
        with pytest.raises(StageNotFound):
            parse_stage_id("marketing")

    def test_stage_not_found_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            parse_stage_id("marketing")
