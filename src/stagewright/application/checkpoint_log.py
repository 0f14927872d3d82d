"""
Checkpoint log: append-only ordered snapshots with truncating rollback.

Steps are 0-based and always equal the entry's index. Truncation removes
entries outright; there is no soft delete and no branching history.
"""

import logging
import time
import uuid
from collections.abc import Iterable, Iterator
from dataclasses import replace

from stagewright.domain.exceptions import CheckpointNotFound
from stagewright.domain.models import Checkpoint, PipelineSnapshot, StageId

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


class CheckpointLog:
    """
    Ordered checkpoint history for one run.

    Snapshots are immutable records, so saving one shares no mutable state
    with the live run and later mutation can never alter a saved entry.
    """

    def __init__(self, checkpoints: Iterable[Checkpoint] = ()) -> None:
        self._entries: list[Checkpoint] = []
        for checkpoint in checkpoints:
            self._append(checkpoint)

    def _append(self, checkpoint: Checkpoint) -> None:
        if checkpoint.step != len(self._entries):
            raise ValueError(
                f"Checkpoint step {checkpoint.step} does not match "
                f"log position {len(self._entries)}"
            )
        self._entries.append(checkpoint)

    def save(
        self,
        run_id: str,
        snapshot: PipelineSnapshot,
        *,
        agent: str,
        stage_id: StageId | None = None,
        is_interrupted: bool = False,
    ) -> Checkpoint:
        """
        Append a checkpoint for the given snapshot.

        Args:
            run_id: Owning run
            snapshot: Immutable pipeline state to record
            agent: Stage or actor that triggered the save
            stage_id: Stage the save relates to, if any
            is_interrupted: Whether the run was paused for approval

        Returns:
            The new checkpoint, with step == its index
        """
        timestamp = now_ms()
        if self._entries:
            timestamp = max(timestamp, self._entries[-1].timestamp)
        checkpoint = Checkpoint(
            checkpoint_id=str(uuid.uuid4()),
            run_id=run_id,
            step=len(self._entries),
            agent=agent,
            stage_id=stage_id,
            timestamp=timestamp,
            is_interrupted=is_interrupted,
            snapshot=snapshot,
        )
        self._append(checkpoint)
        logger.debug(
            "Checkpoint %d saved by %s (interrupted=%s)",
            checkpoint.step,
            agent,
            is_interrupted,
        )
        return checkpoint

    def mark_interrupted(self, step: int) -> Checkpoint:
        """
        Flag the checkpoint at step as taken before a paused stage.

        Only the flag changes; the entry keeps its id, step and snapshot.
        """
        checkpoint = replace(self.get(step), is_interrupted=True)
        self._entries[step] = checkpoint
        return checkpoint

    def get(self, ref: int | str) -> Checkpoint:
        """Look up a checkpoint by step index or by checkpoint id."""
        if isinstance(ref, int) and not isinstance(ref, bool):
            if 0 <= ref < len(self._entries):
                return self._entries[ref]
            raise CheckpointNotFound(ref)
        return self.find(ref)

    def find(self, checkpoint_id: str) -> Checkpoint:
        """
        Look up a checkpoint by id.

        Raises:
            CheckpointNotFound: If no checkpoint has this id
        """
        for checkpoint in self._entries:
            if checkpoint.checkpoint_id == checkpoint_id:
                return checkpoint
        raise CheckpointNotFound(checkpoint_id)

    def truncate_after(self, step: int) -> list[Checkpoint]:
        """Drop every checkpoint with a step greater than the given one."""
        dropped = self._entries[step + 1 :]
        del self._entries[step + 1 :]
        return dropped

    @property
    def latest(self) -> Checkpoint | None:
        return self._entries[-1] if self._entries else None

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Checkpoint]:
        return iter(tuple(self._entries))

    def __getitem__(self, index: int) -> Checkpoint:
        return self._entries[index]
