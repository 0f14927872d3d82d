"""
Application layer for the stage pipeline.

Contains the run aggregate, the stage state machine, interrupt resolution
and the orchestrator that coordinates them.
"""

from stagewright.application.checkpoint_log import CheckpointLog
from stagewright.application.event_emitter import PipelineEventEmitter
from stagewright.application.interrupts import InterruptResolver
from stagewright.application.orchestrator import PipelineOrchestrator
from stagewright.application.pipeline import PipelineRun, PipelineStateMachine

__all__ = [
    "CheckpointLog",
    "InterruptResolver",
    "PipelineEventEmitter",
    "PipelineOrchestrator",
    "PipelineRun",
    "PipelineStateMachine",
]
