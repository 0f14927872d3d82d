"""
stagewright command line interface.

Usage:
    stagewright run "A marketplace for vintage typewriters"
    stagewright run "..." --config pipeline.json --auto-approve
    stagewright checkpoints list RUN_ID
    stagewright restore RUN_ID 3
    stagewright resume RUN_ID
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from functools import wraps
from pathlib import Path
from typing import Any, TypeVar

import click

from stagewright.application.orchestrator import Approver, PipelineOrchestrator
from stagewright.cli.config import (
    ConfigurationError,
    PipelineConfig,
    build_executor,
    build_stage_graph,
    load_pipeline_config,
)
from stagewright.cli.console import (
    console,
    print_checkpoint,
    print_checkpoint_table,
    print_error,
    print_failure,
    print_header,
    print_stage_table,
    print_success,
)
from stagewright.cli.logging_setup import setup_logging
from stagewright.cli.review import HumanReviewer, auto_approve
from stagewright.domain.exceptions import (
    CheckpointNotFound,
    PersistenceError,
    PipelineError,
)
from stagewright.domain.models import Checkpoint
from stagewright.infrastructure.persistence import (
    FilesystemCheckpointStore,
    FilesystemEventStore,
)
from stagewright.infrastructure.registry import ExecutorRegistry


F = TypeVar("F", bound=Callable[..., Any])


def store_options(func: F) -> F:
    """
    Decorator adding the options shared by store-backed commands.

    Options added:
        --config: Path to pipeline config JSON
        --store-dir: Checkpoint store directory (overrides config)
        --log-file: Path to log file
        -v/--verbose: Enable verbose logging
    """

    @click.option(
        "--config",
        "config_path",
        default=None,
        type=click.Path(dir_okay=False),
        help="Path to pipeline config JSON",
    )
    @click.option(
        "--store-dir",
        default=None,
        type=click.Path(file_okay=False),
        help="Checkpoint store directory (default: from config, else .stagewright)",
    )
    @click.option(
        "--log-file",
        default=None,
        type=click.Path(),
        help="Path to log file",
    )
    @click.option(
        "-v",
        "--verbose",
        is_flag=True,
        help="Enable verbose (DEBUG) logging to console",
    )
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def _load_config(
    config_path: str | None, store_dir: str | None, log_file: str | None, verbose: bool
) -> PipelineConfig:
    setup_logging("stagewright", log_file, verbose)
    try:
        config = (
            load_pipeline_config(Path(config_path)) if config_path else PipelineConfig()
        )
    except ConfigurationError as e:
        print_error(
            str(e),
            hint="Valid keys: executor, executor_config, interrupt_stages, "
            "store_dir, prompts, max_context_chars",
        )
        raise SystemExit(1) from None
    if store_dir:
        config.store_dir = store_dir
    return config


def _stored_checkpoints(config: PipelineConfig, run_id: str) -> list[Checkpoint]:
    try:
        return FilesystemCheckpointStore(config.store_dir).list(run_id)
    except PersistenceError as e:
        print_error(str(e))
        raise SystemExit(1) from None


def _open_run(config: PipelineConfig, run_id: str) -> PipelineOrchestrator:
    try:
        executor = build_executor(config)
        return PipelineOrchestrator.hydrate(
            run_id,
            executor,
            FilesystemCheckpointStore(config.store_dir),
            FilesystemEventStore(config.store_dir),
            graph=build_stage_graph(config),
        )
    except ConfigurationError as e:
        print_error(str(e))
        raise SystemExit(1) from None
    except CheckpointNotFound:
        print_error(
            f"No checkpoints for run {run_id} in {config.store_dir}",
            hint="Pass --store-dir if the run was stored elsewhere",
        )
        raise SystemExit(1) from None
    except PersistenceError as e:
        print_error(str(e))
        raise SystemExit(1) from None


def _drive(orchestrator: PipelineOrchestrator, approve_all: bool) -> None:
    approver: Approver = (
        auto_approve if approve_all else HumanReviewer(orchestrator.graph)
    )
    try:
        completed = asyncio.run(orchestrator.run_to_completion(approver))
    except PipelineError as e:
        print_error(str(e))
        raise SystemExit(1) from None

    run = orchestrator.run
    print_stage_table(run.snapshot().stages)
    if completed:
        print_success(
            f"Run {run.run_id} complete with {len(run.artefacts)} artifact(s)"
        )
        return

    current = run.current_stage
    print_failure(
        f"Run stopped at stage {current.value if current else '-'}",
        details=f"Resume with: stagewright resume {run.run_id}",
    )
    raise SystemExit(1)


@click.group()
@click.version_option(package_name="stagewright")
def cli() -> None:
    """Drive a product description through the staged design pipeline."""
    pass


@cli.command()
@click.argument("product_description")
@store_options
@click.option(
    "--auto-approve",
    is_flag=True,
    help="Approve every paused stage without prompting",
)
def run(
    product_description: str,
    config_path: str | None,
    store_dir: str | None,
    log_file: str | None,
    verbose: bool,
    auto_approve: bool,
) -> None:
    """Seed a new run and drive it to completion."""
    config = _load_config(config_path, store_dir, log_file, verbose)
    try:
        executor = build_executor(config)
    except ConfigurationError as e:
        print_error(str(e), hint="Run 'stagewright executors' to list executors")
        raise SystemExit(1) from None

    orchestrator = PipelineOrchestrator(
        executor,
        FilesystemCheckpointStore(config.store_dir),
        FilesystemEventStore(config.store_dir),
        graph=build_stage_graph(config),
        max_context_chars=config.max_context_chars,
    )
    try:
        run_id = orchestrator.seed(product_description)
    except ValueError as e:
        print_error(str(e))
        raise SystemExit(1) from None

    print_header("stagewright", f"Run {run_id} | executor {config.executor}")
    _drive(orchestrator, auto_approve)


@cli.command()
@click.argument("run_id")
@store_options
@click.option(
    "--auto-approve",
    is_flag=True,
    help="Approve every paused stage without prompting",
)
def resume(
    run_id: str,
    config_path: str | None,
    store_dir: str | None,
    log_file: str | None,
    verbose: bool,
    auto_approve: bool,
) -> None:
    """Continue a stored run from its latest checkpoint."""
    config = _load_config(config_path, store_dir, log_file, verbose)
    orchestrator = _open_run(config, run_id)
    print_header("stagewright", f"Resuming run {run_id}")
    _drive(orchestrator, auto_approve)


@cli.command()
@click.argument("run_id")
@click.argument("step", type=int)
@store_options
def restore(
    run_id: str,
    step: int,
    config_path: str | None,
    store_dir: str | None,
    log_file: str | None,
    verbose: bool,
) -> None:
    """Roll a stored run back to STEP, discarding later checkpoints."""
    config = _load_config(config_path, store_dir, log_file, verbose)
    orchestrator = _open_run(config, run_id)
    try:
        checkpoint = asyncio.run(orchestrator.restore_checkpoint(step))
    except CheckpointNotFound:
        print_error(f"Run {run_id} has no checkpoint at step {step}")
        raise SystemExit(1) from None
    except PipelineError as e:
        print_error(str(e))
        raise SystemExit(1) from None

    print_stage_table(checkpoint.snapshot.stages, title=f"Restored to step {step}")
    print_success(f"Run {run_id} restored to step {step}")


@cli.command()
@click.argument("run_id")
@store_options
def status(
    run_id: str,
    config_path: str | None,
    store_dir: str | None,
    log_file: str | None,
    verbose: bool,
) -> None:
    """Show stage statuses at the latest checkpoint of a run."""
    config = _load_config(config_path, store_dir, log_file, verbose)
    checkpoints = _stored_checkpoints(config, run_id)
    if not checkpoints:
        print_error(f"No checkpoints for run {run_id} in {config.store_dir}")
        raise SystemExit(1) from None

    latest = checkpoints[-1]
    print_stage_table(latest.snapshot.stages, title=f"Run {run_id}")
    current = latest.snapshot.current_stage
    console.print(
        f"[bold]Step:[/bold] {latest.step}  "
        f"[bold]Current stage:[/bold] {current.value if current else 'complete'}"
    )


@cli.command()
@store_options
def runs(
    config_path: str | None,
    store_dir: str | None,
    log_file: str | None,
    verbose: bool,
) -> None:
    """List run ids held in the store."""
    config = _load_config(config_path, store_dir, log_file, verbose)
    run_ids = FilesystemCheckpointStore(config.store_dir).run_ids()
    if not run_ids:
        console.print("[dim]No runs found.[/dim]")
        return
    for run_id in run_ids:
        console.print(run_id)


@cli.command()
def executors() -> None:
    """List registered executor names."""
    for name in ExecutorRegistry.available():
        console.print(name)


@cli.group()
def checkpoints() -> None:
    """Inspect stored run checkpoints."""
    pass


@checkpoints.command("list")
@click.argument("run_id")
@store_options
def list_checkpoints(
    run_id: str,
    config_path: str | None,
    store_dir: str | None,
    log_file: str | None,
    verbose: bool,
) -> None:
    """List the checkpoints of a run."""
    config = _load_config(config_path, store_dir, log_file, verbose)
    found = _stored_checkpoints(config, run_id)
    if not found:
        console.print("[dim]No checkpoints found.[/dim]")
        return
    print_checkpoint_table(found)


@checkpoints.command("show")
@click.argument("run_id")
@click.argument("step", type=int)
@store_options
def show_checkpoint(
    run_id: str,
    step: int,
    config_path: str | None,
    store_dir: str | None,
    log_file: str | None,
    verbose: bool,
) -> None:
    """Show details of one checkpoint."""
    config = _load_config(config_path, store_dir, log_file, verbose)
    try:
        checkpoint = FilesystemCheckpointStore(config.store_dir).get(run_id, step)
    except KeyError:
        print_error(f"Checkpoint not found: {run_id} step {step}")
        raise SystemExit(1) from None
    except PersistenceError as e:
        print_error(str(e))
        raise SystemExit(1) from None
    print_checkpoint(checkpoint)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
