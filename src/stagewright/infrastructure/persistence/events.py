"""Pipeline event store implementations."""

import json
from pathlib import Path
from typing import Any

from stagewright.domain.events import PipelineEvent, PipelineEventType
from stagewright.domain.exceptions import PersistenceError
from stagewright.domain.interfaces import EventStoreInterface


class InMemoryEventStore(EventStoreInterface):
    """In-memory implementation for testing."""

    def __init__(self) -> None:
        self._events: list[PipelineEvent] = []

    def store_event(self, event: PipelineEvent) -> str:
        self._events.append(event)
        return event.event_id

    def get_events(
        self, run_id: str, event_type: PipelineEventType | None = None
    ) -> list[PipelineEvent]:
        return [
            e
            for e in self._events
            if e.run_id == run_id and (event_type is None or e.event_type == event_type)
        ]


class FilesystemEventStore(EventStoreInterface):
    """Filesystem implementation storing events as JSONL, one file per run."""

    def __init__(self, base_path: str | Path) -> None:
        self.base_path = Path(base_path)
        self.events_dir = self.base_path / "events"
        self.events_dir.mkdir(parents=True, exist_ok=True)

    def _get_run_file(self, run_id: str) -> Path:
        return self.events_dir / f"{run_id}.jsonl"

    def store_event(self, event: PipelineEvent) -> str:
        path = self._get_run_file(event.run_id)
        try:
            with open(path, "a") as f:
                f.write(json.dumps(self._event_to_dict(event)) + "\n")
        except OSError as e:
            raise PersistenceError(f"Failed to store event: {e}") from e
        return event.event_id

    def get_events(
        self, run_id: str, event_type: PipelineEventType | None = None
    ) -> list[PipelineEvent]:
        path = self._get_run_file(run_id)
        if not path.exists():
            return []
        events: list[PipelineEvent] = []
        with open(path) as f:
            for line in f:
                if not line.strip():
                    continue
                event = self._dict_to_event(json.loads(line))
                if event_type and event.event_type != event_type:
                    continue
                events.append(event)
        return events

    def _event_to_dict(self, event: PipelineEvent) -> dict[str, Any]:
        return {
            "event_id": event.event_id,
            "event_type": event.event_type.value,
            "run_id": event.run_id,
            "stage_id": event.stage_id,
            "message": event.message,
            "tokens": event.tokens,
            "created_at": event.created_at,
        }

    def _dict_to_event(self, data: dict[str, Any]) -> PipelineEvent:
        return PipelineEvent(
            event_id=data["event_id"],
            event_type=PipelineEventType(data["event_type"]),
            run_id=data["run_id"],
            stage_id=data.get("stage_id"),
            message=data.get("message", ""),
            tokens=data.get("tokens"),
            created_at=data.get("created_at", ""),
        )
