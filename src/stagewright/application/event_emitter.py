"""Pipeline event emission service."""

import logging
import uuid
from datetime import UTC, datetime

from stagewright.domain.events import PipelineEvent, PipelineEventType
from stagewright.domain.exceptions import PersistenceError
from stagewright.domain.interfaces import EventStoreInterface

logger = logging.getLogger(__name__)


class PipelineEventEmitter:
    """Emits pipeline events to a store.

    Convenience methods for the run's activity log, handling ID generation
    and timestamps.
    """

    def __init__(self, event_store: EventStoreInterface, run_id: str) -> None:
        self._store = event_store
        self._run_id = run_id

    def _emit(
        self,
        event_type: PipelineEventType,
        stage_id: str | None = None,
        message: str = "",
        tokens: int | None = None,
    ) -> str | None:
        event = PipelineEvent(
            event_id=str(uuid.uuid4()),
            event_type=event_type,
            run_id=self._run_id,
            stage_id=stage_id,
            message=message,
            tokens=tokens,
            created_at=datetime.now(UTC).isoformat(),
        )
        try:
            return self._store.store_event(event)
        except (PersistenceError, OSError) as e:
            logger.warning("Failed to store %s event: %s", event_type.value, e)
            return None

    def seeded(self, product_description: str) -> None:
        self._emit(PipelineEventType.SEEDED, message=product_description[:200])

    def stage_start(self, stage_id: str) -> None:
        self._emit(PipelineEventType.STAGE_START, stage_id, "Stage started")

    def stage_complete(self, stage_id: str, tokens: int) -> None:
        self._emit(
            PipelineEventType.STAGE_COMPLETE, stage_id, "Stage complete", tokens
        )

    def stage_fail(self, stage_id: str, error: str) -> None:
        self._emit(PipelineEventType.STAGE_FAIL, stage_id, error[:500])

    def interrupt(self, stage_id: str, message: str) -> None:
        self._emit(PipelineEventType.INTERRUPT, stage_id, message)

    def interrupt_resolved(self, stage_id: str, action: str, target: str) -> None:
        self._emit(
            PipelineEventType.INTERRUPT_RESOLVED,
            stage_id,
            f"{action} -> {target}",
        )

    def checkpoint_saved(self, stage_id: str | None, step: int) -> None:
        self._emit(
            PipelineEventType.CHECKPOINT_SAVED, stage_id, f"Checkpoint {step} saved"
        )

    def restored(self, step: int, truncated: int) -> None:
        self._emit(
            PipelineEventType.RESTORED,
            message=f"Restored to step {step}, {truncated} checkpoint(s) discarded",
        )
