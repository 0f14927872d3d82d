"""
Filesystem implementation of the checkpoint store.

Provides durable storage for run checkpoints and artifact history so a run
can be hydrated after the process exits.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from stagewright.domain.exceptions import PersistenceError
from stagewright.domain.interfaces import CheckpointStoreInterface
from stagewright.domain.models import Artifact, Checkpoint
from stagewright.domain.snapshot import (
    artifact_to_dict,
    checkpoint_to_row,
    dict_to_artifact,
    row_to_checkpoint,
)


class FilesystemCheckpointStore(CheckpointStoreInterface):
    """
    Persistent storage for checkpoints and artifacts.

    Directory structure:
    {base_dir}/
        runs/
            {run_id}/
                checkpoints/{step:06d}.json  # One checkpoint row per file
                artifacts.jsonl              # Append-only artifact history
        checkpoint_index.json  # Maps run_id -> step -> checkpoint metadata
    """

    def __init__(self, base_dir: str | Path):
        self._base_dir = Path(base_dir)
        self._runs_dir = self._base_dir / "runs"
        self._index_path = self._base_dir / "checkpoint_index.json"
        self._cache: dict[str, Checkpoint] = {}
        self._index: dict[str, Any] = self._load_or_create_index()

    def _load_or_create_index(self) -> dict[str, Any]:
        """Load existing index or create new one."""
        try:
            self._runs_dir.mkdir(parents=True, exist_ok=True)
            if self._index_path.exists():
                with open(self._index_path) as f:
                    result: dict[str, Any] = json.load(f)
                    return result
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(f"Cannot open checkpoint store: {e}") from e

        return {
            "version": "1.0",
            "runs": {},  # run_id -> {"steps": {step -> metadata}}
        }

    def _update_index_atomic(self) -> None:
        """Atomically update the index using write-to-temp + rename."""
        temp_path = self._index_path.with_suffix(".tmp")
        with open(temp_path, "w") as f:
            json.dump(self._index, f, indent=2)
        temp_path.replace(self._index_path)

    def _run_dir(self, run_id: str) -> Path:
        return self._runs_dir / run_id

    def _checkpoint_path(self, run_id: str, step: int) -> Path:
        return self._run_dir(run_id) / "checkpoints" / f"{step:06d}.json"

    def _steps(self, run_id: str) -> dict[str, Any]:
        run: dict[str, Any] = self._index["runs"].get(run_id, {})
        return run.get("steps", {})

    def persist(self, checkpoint: Checkpoint) -> str:
        """
        Store a checkpoint, replacing any existing one at the same step.

        Returns:
            The checkpoint_id
        """
        row = checkpoint_to_row(checkpoint)
        object_path = self._checkpoint_path(checkpoint.run_id, checkpoint.step)
        try:
            object_path.parent.mkdir(parents=True, exist_ok=True)
            with open(object_path, "w") as f:
                json.dump(row, f, indent=2)

            run = self._index["runs"].setdefault(checkpoint.run_id, {"steps": {}})
            run["steps"][str(checkpoint.step)] = {
                "checkpoint_id": checkpoint.checkpoint_id,
                "path": str(object_path.relative_to(self._base_dir)),
                "phase": row["phase"],
                "agent_id": checkpoint.agent,
                "is_interrupted": row["is_interrupted"],
                "created_at": checkpoint.timestamp,
            }
            self._update_index_atomic()
        except OSError as e:
            raise PersistenceError(
                f"Failed to persist checkpoint {checkpoint.step} "
                f"of run {checkpoint.run_id}: {e}"
            ) from e

        self._cache[self._cache_key(checkpoint.run_id, checkpoint.step)] = checkpoint
        return checkpoint.checkpoint_id

    def _cache_key(self, run_id: str, step: int) -> str:
        return f"{run_id}:{step}"

    def get(self, run_id: str, step: int) -> Checkpoint:
        """Retrieve one checkpoint by step (cache-first)."""
        key = self._cache_key(run_id, step)
        if key in self._cache:
            return self._cache[key]

        meta = self._steps(run_id).get(str(step))
        if meta is None:
            raise KeyError(f"Checkpoint not found: {run_id} step {step}")

        try:
            with open(self._base_dir / meta["path"]) as f:
                checkpoint = row_to_checkpoint(json.load(f))
        except (OSError, json.JSONDecodeError, KeyError, ValueError) as e:
            raise PersistenceError(
                f"Failed to load checkpoint {step} of run {run_id}: {e}"
            ) from e

        self._cache[key] = checkpoint
        return checkpoint

    def list(self, run_id: str) -> list[Checkpoint]:
        steps = sorted(int(s) for s in self._steps(run_id))
        return [self.get(run_id, step) for step in steps]

    def persist_artifact(self, run_id: str, artifact: Artifact) -> str:
        path = self._run_dir(run_id) / "artifacts.jsonl"
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "a") as f:
                f.write(json.dumps(artifact_to_dict(artifact)) + "\n")
        except OSError as e:
            raise PersistenceError(f"Failed to persist artifact: {e}") from e
        return artifact.artifact_id

    def fetch_artifacts(self, run_id: str) -> list[Artifact]:
        path = self._run_dir(run_id) / "artifacts.jsonl"
        if not path.exists():
            return []
        try:
            with open(path) as f:
                return [dict_to_artifact(json.loads(line)) for line in f if line.strip()]
        except (OSError, json.JSONDecodeError, KeyError, ValueError) as e:
            raise PersistenceError(f"Failed to read artifacts of run {run_id}: {e}") from e

    def truncate(self, run_id: str, after_step: int) -> int:
        steps = self._steps(run_id)
        doomed = [s for s in steps if int(s) > after_step]
        if not doomed:
            return 0
        try:
            for step in doomed:
                (self._base_dir / steps[step]["path"]).unlink(missing_ok=True)
                del steps[step]
                self._cache.pop(self._cache_key(run_id, int(step)), None)
            self._update_index_atomic()
        except OSError as e:
            raise PersistenceError(f"Failed to truncate run {run_id}: {e}") from e
        return len(doomed)

    def run_ids(self) -> list[str]:
        """List runs that have at least one stored checkpoint."""
        return sorted(r for r in self._index["runs"] if self._steps(r))
