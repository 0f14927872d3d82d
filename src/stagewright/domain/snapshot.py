"""
Snapshot serialization.

A checkpoint's state_snapshot is a JSON object with exactly the fields
"stages", "artefacts" and "schemas". Keys inside use camelCase so that
persisted rows hydrate identically whichever client wrote them.
"""

import json
from typing import Any

from stagewright.domain.models import (
    Artifact,
    ArtifactType,
    Checkpoint,
    PipelineSnapshot,
    SchemaField,
    SchemaTable,
    StageId,
    StageSnapshot,
    StageStatus,
    ValidationStatus,
)

SNAPSHOT_FIELDS = ("stages", "artefacts", "schemas")


def stage_to_dict(stage: StageSnapshot) -> dict[str, Any]:
    return {
        "id": stage.id.value,
        "status": stage.status.value,
        "output": stage.output,
        "summary": stage.summary,
        "validationStatus": stage.validation_status.value,
        "validationErrors": list(stage.validation_errors),
        "userPrompt": stage.user_prompt,
    }


def dict_to_stage(data: dict[str, Any]) -> StageSnapshot:
    return StageSnapshot(
        id=StageId(data["id"]),
        status=StageStatus(data["status"]),
        output=data.get("output"),
        summary=data.get("summary"),
        validation_status=ValidationStatus(data.get("validationStatus", "pending")),
        validation_errors=tuple(data.get("validationErrors") or ()),
        user_prompt=data.get("userPrompt"),
    )


def artifact_to_dict(artifact: Artifact) -> dict[str, Any]:
    return {
        "id": artifact.artifact_id,
        "sourceStageId": artifact.source_stage_id.value,
        "targetStageId": artifact.target_stage_id.value,
        "type": artifact.type.value,
        "label": artifact.label,
        "content": artifact.content,
        "promptContext": artifact.prompt_context,
        "createdAt": artifact.created_at,
    }


def dict_to_artifact(data: dict[str, Any]) -> Artifact:
    return Artifact(
        artifact_id=data["id"],
        source_stage_id=StageId(data["sourceStageId"]),
        target_stage_id=StageId(data["targetStageId"]),
        type=ArtifactType(data["type"]),
        label=data.get("label", ""),
        content=data["content"],
        prompt_context=data.get("promptContext", ""),
        created_at=data.get("createdAt", 0),
    )


def schema_to_dict(table: SchemaTable) -> dict[str, Any]:
    return {
        "name": table.name,
        "module": table.module,
        "description": table.description,
        "fields": [
            {
                "name": f.name,
                "type": f.type,
                "required": f.required,
                "isKey": f.is_key,
                "description": f.description,
            }
            for f in table.fields
        ],
    }


def dict_to_schema(data: dict[str, Any]) -> SchemaTable:
    return SchemaTable(
        name=data["name"],
        module=data.get("module"),
        description=data.get("description"),
        fields=tuple(
            SchemaField(
                name=f["name"],
                type=f["type"],
                required=bool(f.get("required", False)),
                is_key=bool(f.get("isKey", False)),
                description=f.get("description"),
            )
            for f in data.get("fields", [])
        ),
    )


def snapshot_to_dict(snapshot: PipelineSnapshot) -> dict[str, Any]:
    return {
        "stages": [stage_to_dict(s) for s in snapshot.stages],
        "artefacts": [artifact_to_dict(a) for a in snapshot.artefacts],
        "schemas": [schema_to_dict(t) for t in snapshot.schemas],
    }


def dict_to_snapshot(data: dict[str, Any]) -> PipelineSnapshot:
    return PipelineSnapshot(
        stages=tuple(dict_to_stage(s) for s in data["stages"]),
        artefacts=tuple(dict_to_artifact(a) for a in data.get("artefacts", [])),
        schemas=tuple(dict_to_schema(t) for t in data.get("schemas", [])),
    )


def dumps_snapshot(snapshot: PipelineSnapshot) -> str:
    return json.dumps(snapshot_to_dict(snapshot))


def loads_snapshot(raw: str) -> PipelineSnapshot:
    return dict_to_snapshot(json.loads(raw))


def checkpoint_to_row(checkpoint: Checkpoint) -> dict[str, Any]:
    """Serialize a checkpoint to its persisted row shape."""
    return {
        "checkpoint_id": checkpoint.checkpoint_id,
        "run_id": checkpoint.run_id,
        "step": checkpoint.step,
        "agent_id": checkpoint.agent,
        "phase": checkpoint.stage_id.value if checkpoint.stage_id else None,
        "state_snapshot": dumps_snapshot(checkpoint.snapshot),
        "is_interrupted": 1 if checkpoint.is_interrupted else 0,
        "created_at": checkpoint.timestamp,
    }


def row_to_checkpoint(row: dict[str, Any]) -> Checkpoint:
    phase = row.get("phase")
    return Checkpoint(
        checkpoint_id=row["checkpoint_id"],
        run_id=row["run_id"],
        step=int(row["step"]),
        agent=row.get("agent_id", ""),
        stage_id=StageId(phase) if phase else None,
        timestamp=int(row["created_at"]),
        is_interrupted=bool(row.get("is_interrupted", 0)),
        snapshot=loads_snapshot(row["state_snapshot"]),
    )
