"""
Interactive review of paused stages.

Blocks the pipeline until a human approves, rejects or edits the pending
artifact at the terminal.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import click
from rich.prompt import Prompt

from stagewright.cli.console import console, print_interrupt
from stagewright.domain.models import (
    Approve,
    Edit,
    FeedbackAction,
    InterruptPayload,
    Reject,
)
from stagewright.domain.stages import StageGraph, parse_stage_id

AUTO_TARGET = "auto"


class HumanReviewer:
    """
    Approver callback for PipelineOrchestrator.run_to_completion.

    Terminal prompts block, so each one runs in a worker thread and the
    event loop stays free. ask and editor are injectable so the flow can be
    driven without a terminal.
    """

    def __init__(
        self,
        graph: StageGraph,
        ask: Callable[..., str] = Prompt.ask,
        editor: Callable[[str], str | None] = click.edit,
    ):
        self._graph = graph
        self._ask = ask
        self._editor = editor

    async def __call__(self, payload: InterruptPayload) -> FeedbackAction:
        print_interrupt(payload)
        decision = await asyncio.to_thread(
            self._ask,
            "\n[bold]Review decision[/bold]",
            choices=["approve", "reject", "edit"],
            default="approve",
        )
        if decision == "reject":
            return await self._reject(payload)
        if decision == "edit":
            return await self._edit(payload)
        return Approve()

    async def _reject(self, payload: InterruptPayload) -> Reject:
        reason = await asyncio.to_thread(
            self._ask, "[bold]Rejection reason[/bold]", default=""
        )
        upto = self._graph.index_of(payload.node)
        targets = [s.value for s in self._graph.order[: upto + 1]]
        target = await asyncio.to_thread(
            self._ask,
            "[bold]Reopen which stage?[/bold]",
            choices=[AUTO_TARGET, *targets],
            default=AUTO_TARGET,
        )
        hint = None if target == AUTO_TARGET else parse_stage_id(target)
        return Reject(target_hint=hint, reason=reason)

    async def _edit(self, payload: InterruptPayload) -> FeedbackAction:
        edited = await asyncio.to_thread(self._editor, payload.snapshot.content)
        if edited is None or not edited.strip():
            console.print("[dim]No changes made, approving as is.[/dim]")
            return Approve()
        return Edit(content=edited)


async def auto_approve(payload: InterruptPayload) -> FeedbackAction:
    """Approver that accepts every pending artifact."""
    console.print(f"[dim]Auto-approving {payload.node.value}[/dim]")
    return Approve()
