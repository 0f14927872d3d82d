"""Context and prompt assembly for stage execution."""

from typing import TYPE_CHECKING

from stagewright.domain.models import StageDefinition, StageId, StageInstance

if TYPE_CHECKING:
    from stagewright.application.pipeline import PipelineRun


def assemble_context(
    run: "PipelineRun",
    stage_id: StageId,
    max_chars_per_artifact: int | None = None,
) -> str:
    """
    Concatenate the current artifacts of every stage before stage_id.

    Artifacts appear in stage order, one block per source stage:

        Project Goal: <product description>

        [PRD OUTPUT]:
        <content>

    Args:
        run: The run whose artifacts are read
        stage_id: Stage about to execute; its own and later artifacts are skipped
        max_chars_per_artifact: Truncate each artifact to this many characters

    Returns:
        The assembled context string
    """
    position = run.graph.index_of(stage_id)
    blocks = [f"Project Goal: {run.product_description}"]
    for prior in run.graph.order[:position]:
        artifact = run.artifact_for(prior)
        if artifact is None:
            continue
        content = artifact.content
        if max_chars_per_artifact is not None and len(content) > max_chars_per_artifact:
            content = content[:max_chars_per_artifact] + "..."
        blocks.append(f"[{prior.value.upper()} OUTPUT]:\n{content}")
    return "\n\n".join(blocks)


def build_prompt(definition: StageDefinition, instance: StageInstance) -> str:
    """Stage instructions, plus the user's own instructions when present."""
    if instance.user_prompt:
        return (
            f"{definition.prompt_template}\n"
            f"Additional Instructions: {instance.user_prompt}"
        )
    return definition.prompt_template
