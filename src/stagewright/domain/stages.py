"""
The stage graph: static, ordered stage definitions.

The graph is read-only configuration. A run looks up stage order,
prompt templates and interrupt requirements here and never mutates it.
"""

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import replace

from stagewright.domain.exceptions import StageNotFound
from stagewright.domain.models import StageDefinition, StageId

DEFAULT_INTERRUPT_STAGES: frozenset[StageId] = frozenset(
    {StageId.DATA, StageId.LOGIC}
)

STAGE_DEFINITIONS: tuple[StageDefinition, ...] = (
    StageDefinition(
        id=StageId.PRD,
        title="Product Requirements",
        prompt_template=(
            "Act as a Lead PM. Analyze the user request and generate a detailed PRD."
        ),
        schema_type="Requirement",
    ),
    StageDefinition(
        id=StageId.DESIGN,
        title="Design System",
        prompt_template=(
            "Act as a Design Engineer. Define the design tokens, color palette, "
            "and component primitives."
        ),
        schema_type="DesignToken",
    ),
    StageDefinition(
        id=StageId.DATA,
        title="Data Model",
        prompt_template="Act as a DB Architect. Define the database schema using 3NF.",
        requires_interrupt=True,
        schema_type="DataStructure",
    ),
    StageDefinition(
        id=StageId.LOGIC,
        title="Business Logic",
        prompt_template=(
            "Act as a Backend Eng. Define the business logic, endpoints, and middleware."
        ),
        requires_interrupt=True,
    ),
    StageDefinition(
        id=StageId.API,
        title="API Specification",
        prompt_template="Act as an API Architect. Generate the OpenAPI specification.",
    ),
    StageDefinition(
        id=StageId.FRONTEND,
        title="Frontend Architecture",
        prompt_template=(
            "Act as a Frontend Lead. Structure the component tree and state management."
        ),
    ),
    StageDefinition(
        id=StageId.DEPLOYMENT,
        title="Deployment & CI/CD",
        prompt_template=(
            "Act as a DevSecOps. Configure CI/CD pipelines and infrastructure."
        ),
    ),
)

GUIDANCE_TIPS: Mapping[StageId, str] = {
    StageId.PRD: "Use Gherkin syntax (Given-When-Then) for clearer user stories.",
    StageId.DESIGN: (
        "Specify explicit token values (e.g., 'blue-500' is #3b82f6) "
        "to reduce ambiguity."
    ),
    StageId.DATA: "Ensure 3rd Normal Form (3NF) to minimize data redundancy.",
    StageId.LOGIC: "Define idempotent keys for critical mutation endpoints.",
    StageId.API: "Adhere to RESTful conventions or GraphQL schema definitions.",
    StageId.FRONTEND: "Plan skeleton loading states for every async component.",
    StageId.DEPLOYMENT: (
        "Implement health check endpoints (/health) for zero-downtime rollbacks."
    ),
}


def parse_stage_id(value: "str | StageId") -> StageId:
    """Coerce a string to a StageId, raising StageNotFound if unknown."""
    if isinstance(value, StageId):
        return value
    try:
        return StageId(value.strip().lower())
    except (AttributeError, ValueError) as e:
        raise StageNotFound(value) from e


class StageGraph:
    """
    Ordered, read-only collection of stage definitions.

    Example usage:
        graph = StageGraph.default()
        graph.next_stage(StageId.PRD)  # StageId.DESIGN
    """

    def __init__(self, definitions: Iterable[StageDefinition]):
        self._definitions = tuple(definitions)
        if not self._definitions:
            raise ValueError("StageGraph requires at least one stage")
        self._by_id = {d.id: d for d in self._definitions}
        if len(self._by_id) != len(self._definitions):
            raise ValueError("Duplicate stage ids in StageGraph")
        self._index = {d.id: i for i, d in enumerate(self._definitions)}

    @classmethod
    def default(cls) -> "StageGraph":
        return cls(STAGE_DEFINITIONS)

    def with_interrupts(self, stage_ids: Iterable["StageId | str"]) -> "StageGraph":
        """Return a copy where exactly the given stages require approval."""
        flagged = {parse_stage_id(s) for s in stage_ids}
        for stage_id in flagged:
            self.get(stage_id)
        return StageGraph(
            replace(d, requires_interrupt=d.id in flagged) for d in self._definitions
        )

    def with_prompts(self, prompts: Mapping["StageId | str", str]) -> "StageGraph":
        """Return a copy with prompt templates overridden per stage."""
        overrides = {parse_stage_id(k): v for k, v in prompts.items()}
        for stage_id in overrides:
            self.get(stage_id)
        return StageGraph(
            replace(d, prompt_template=overrides.get(d.id, d.prompt_template))
            for d in self._definitions
        )

    @property
    def order(self) -> tuple[StageId, ...]:
        return tuple(d.id for d in self._definitions)

    @property
    def first(self) -> StageId:
        return self._definitions[0].id

    def get(self, stage_id: StageId) -> StageDefinition:
        try:
            return self._by_id[stage_id]
        except KeyError:
            raise StageNotFound(stage_id) from None

    def index_of(self, stage_id: StageId) -> int:
        self.get(stage_id)
        return self._index[stage_id]

    def next_stage(self, stage_id: StageId) -> StageId | None:
        i = self.index_of(stage_id)
        if i + 1 < len(self._definitions):
            return self._definitions[i + 1].id
        return None

    def previous_stage(self, stage_id: StageId) -> StageId | None:
        i = self.index_of(stage_id)
        return self._definitions[i - 1].id if i > 0 else None

    def requires_interrupt(self, stage_id: StageId) -> bool:
        return self.get(stage_id).requires_interrupt

    def __iter__(self) -> Iterator[StageDefinition]:
        return iter(self._definitions)

    def __len__(self) -> int:
        return len(self._definitions)

    def __contains__(self, stage_id: object) -> bool:
        return stage_id in self._by_id
