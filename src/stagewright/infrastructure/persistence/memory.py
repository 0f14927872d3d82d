"""
In-memory checkpoint store.

Useful for testing and ephemeral runs.
"""

from __future__ import annotations

from stagewright.domain.interfaces import CheckpointStoreInterface
from stagewright.domain.models import Artifact, Checkpoint


class InMemoryCheckpointStore(CheckpointStoreInterface):
    """Simple in-memory checkpoint store for testing."""

    def __init__(self) -> None:
        self._checkpoints: dict[str, dict[int, Checkpoint]] = {}
        self._artifacts: dict[str, list[Artifact]] = {}

    def persist(self, checkpoint: Checkpoint) -> str:
        self._checkpoints.setdefault(checkpoint.run_id, {})[checkpoint.step] = checkpoint
        return checkpoint.checkpoint_id

    def list(self, run_id: str) -> list[Checkpoint]:
        by_step = self._checkpoints.get(run_id, {})
        return [by_step[step] for step in sorted(by_step)]

    def persist_artifact(self, run_id: str, artifact: Artifact) -> str:
        self._artifacts.setdefault(run_id, []).append(artifact)
        return artifact.artifact_id

    def fetch_artifacts(self, run_id: str) -> list[Artifact]:
        return list(self._artifacts.get(run_id, []))

    def truncate(self, run_id: str, after_step: int) -> int:
        by_step = self._checkpoints.get(run_id, {})
        doomed = [step for step in by_step if step > after_step]
        for step in doomed:
            del by_step[step]
        return len(doomed)

    def run_ids(self) -> list[str]:
        return sorted(self._checkpoints)
