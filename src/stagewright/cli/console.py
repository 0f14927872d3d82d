"""Rich console utilities for the stagewright CLI."""

from __future__ import annotations

from collections.abc import Iterable

from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from stagewright.domain.models import (
    ArtifactType,
    Checkpoint,
    InterruptPayload,
    StageSnapshot,
    StageStatus,
)

# Shared console instances
console = Console()
error_console = Console(stderr=True)

STATUS_STYLES = {
    StageStatus.COMPLETE: "green",
    StageStatus.PROCESSING: "cyan",
    StageStatus.AWAITING_APPROVAL: "yellow",
    StageStatus.FAILED: "red",
    StageStatus.IDLE: "white",
    StageStatus.LOCKED: "dim",
}

LEXERS = {
    ArtifactType.CODE: "python",
    ArtifactType.SCHEMA: "json",
    ArtifactType.CONFIG: "yaml",
    ArtifactType.DOC: "markdown",
}


def print_header(title: str, subtitle: str | None = None) -> None:
    """Print a styled header panel."""
    content = Text(title, style="bold blue")
    if subtitle:
        content.append(f"\n{subtitle}", style="dim")
    console.print(Panel(content, expand=False))


def print_error(message: str, hint: str | None = None) -> None:
    """Print formatted error message to stderr."""
    content = Text(f"ERROR: {message}", style="bold red")
    if hint:
        content.append(f"\n\nHint: {hint}", style="yellow")
    error_console.print(Panel(content, title="Error", border_style="red"))


def print_success(message: str) -> None:
    console.print(Panel(message, title="Success", border_style="green"))


def print_failure(message: str, details: str | None = None) -> None:
    content = Text(message, style="bold red")
    if details:
        content.append(f"\n{details}", style="dim")
    console.print(Panel(content, title="Failed", border_style="red"))


def print_stage_table(stages: Iterable[StageSnapshot], title: str = "Stages") -> None:
    """Print one row per stage with its status and summary."""
    table = Table(title=title)
    table.add_column("Stage", style="cyan")
    table.add_column("Status")
    table.add_column("Validation", style="dim")
    table.add_column("Summary")

    for stage in stages:
        style = STATUS_STYLES.get(stage.status, "white")
        summary = (stage.summary or "").split("\n")[0][:60]
        if stage.validation_errors:
            summary = stage.validation_errors[0][:60]
        table.add_row(
            stage.id.value,
            Text(stage.status.value, style=style),
            stage.validation_status.value,
            summary,
        )

    console.print(table)


def print_checkpoint_table(checkpoints: Iterable[Checkpoint]) -> None:
    table = Table(title="Run Checkpoints")
    table.add_column("Step", style="cyan", justify="right")
    table.add_column("Agent", style="magenta")
    table.add_column("Stage", style="yellow")
    table.add_column("Interrupted")
    table.add_column("Checkpoint ID", style="dim")

    for cp in checkpoints:
        table.add_row(
            str(cp.step),
            cp.agent,
            cp.stage_id.value if cp.stage_id else "-",
            "yes" if cp.is_interrupted else "",
            cp.checkpoint_id[:12] + "...",
        )

    console.print(table)


def print_checkpoint(checkpoint: Checkpoint) -> None:
    """Print the identity panel and stage table of one checkpoint."""
    snapshot = checkpoint.snapshot
    console.print(
        Panel(
            f"[bold]Checkpoint:[/bold] {checkpoint.checkpoint_id}\n"
            f"[bold]Run:[/bold] {checkpoint.run_id}\n"
            f"[bold]Step:[/bold] {checkpoint.step}\n"
            f"[bold]Agent:[/bold] {checkpoint.agent}\n"
            f"[bold]Interrupted:[/bold] {checkpoint.is_interrupted}\n"
            f"[bold]Artifacts:[/bold] {len(snapshot.artefacts)}  "
            f"[bold]Schemas:[/bold] {len(snapshot.schemas)}",
            title="Identity",
        )
    )
    print_stage_table(snapshot.stages, title=f"Stages at step {checkpoint.step}")


def print_interrupt(payload: InterruptPayload) -> None:
    """Show a paused stage's pending artifact for review."""
    pending = payload.snapshot
    console.print(
        f"\n[bold yellow]=== REVIEW REQUIRED: {payload.node.value} ===[/bold yellow]"
    )
    if payload.message:
        console.print(f"[dim]{payload.message}[/dim]")
    if pending.summary:
        console.print(f"[dim]Summary: {pending.summary}[/dim]\n")
    console.print(
        Syntax(
            pending.content,
            LEXERS.get(pending.artifact_type, "text"),
            theme="monokai",
            line_numbers=True,
        )
    )
