"""
Interrupt resolution: human feedback on a stage awaiting approval.

Every successful resolution leaves the run with no pending interrupt and
GraphStatus.IDLE, whichever branch was taken.
"""

import logging
from typing import TYPE_CHECKING

from stagewright.application.pipeline import PipelineRun
from stagewright.domain.exceptions import NoActiveInterrupt
from stagewright.domain.models import (
    Approve,
    Edit,
    FeedbackAction,
    GraphStatus,
    InterruptPayload,
    Reject,
    StageId,
    StageStatus,
    ValidationStatus,
)
from stagewright.domain.routing import classify_feedback, route_rejection
from stagewright.domain.stages import parse_stage_id

if TYPE_CHECKING:
    from stagewright.application.event_emitter import PipelineEventEmitter

logger = logging.getLogger(__name__)


class InterruptResolver:
    """Applies approve, reject or edit feedback to a paused run."""

    def __init__(self, run: PipelineRun, events: "PipelineEventEmitter | None" = None):
        self._run = run
        self._events = events

    def resolve(self, feedback: str | FeedbackAction) -> StageId:
        """
        Resolve the pending interrupt.

        Args:
            feedback: An explicit action, or free text classified by keyword

        Returns:
            The stage the run continues from: the next stage after an
            approval or edit, or the reopened stage after a rejection

        Raises:
            NoActiveInterrupt: If nothing awaits approval
            ValueError: If an explicit action is invalid for this interrupt
        """
        run = self._run
        payload = run.interrupt_payload
        if payload is None or run.graph_status != GraphStatus.INTERRUPTED:
            raise NoActiveInterrupt()

        if isinstance(feedback, str):
            action = classify_feedback(feedback, payload.snapshot.content)
        else:
            action = feedback

        if isinstance(action, Reject):
            target = self._reject(payload, action)
            label = "reject"
        elif isinstance(action, Edit):
            if not action.content.strip():
                raise ValueError("Edited content must not be empty")
            target = self._commit(payload, action.content)
            label = "edit"
        elif isinstance(action, Approve):
            target = self._commit(payload, payload.snapshot.content)
            label = "approve"
        else:
            raise ValueError(f"Unsupported feedback action: {action!r}")

        logger.info(
            "Interrupt at %s resolved with %s, continuing from %s",
            payload.node.value,
            label,
            target.value,
        )
        if self._events:
            self._events.interrupt_resolved(payload.node.value, label, target.value)
        return target

    def _commit(self, payload: InterruptPayload, content: str) -> StageId:
        pending = payload.snapshot
        checkpoint = self._run.complete_stage(
            payload.node,
            content,
            pending.artifact_type,
            pending.summary,
            pending.prompt_context,
        )
        if self._events:
            self._events.checkpoint_saved(payload.node.value, checkpoint.step)
        return self._run.graph.next_stage(payload.node) or payload.node

    def _reject(self, payload: InterruptPayload, action: Reject) -> StageId:
        run = self._run
        node = payload.node
        if action.target_hint is not None:
            target = parse_stage_id(action.target_hint)
            if run.graph.index_of(target) > run.graph.index_of(node):
                raise ValueError(
                    f"Rejection of '{node.value}' cannot route forward to '{target.value}'"
                )
        else:
            target = route_rejection(action.reason, node)
            if run.graph.index_of(target) > run.graph.index_of(node):
                # Keywords pointed past the paused stage; retry it instead
                logger.debug(
                    "Routed target %s is after %s, retrying in place",
                    target.value,
                    node.value,
                )
                target = node

        run.reset_stage(target)
        if target != node:
            interrupted = run.stage(node)
            interrupted.status = StageStatus.FAILED
            interrupted.validation_status = ValidationStatus.INVALID
            interrupted.validation_errors = [
                f"Rejected: {action.reason}" if action.reason else "Rejected by reviewer"
            ]
        run.interrupt_payload = None
        run.graph_status = GraphStatus.IDLE
        return target
