# src/tasktracker/api/serializers.py

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

from ..tasks.task_models import AnyTask, Epic, Subtask, Task, TaskKind, TaskStatus


class PayloadError(ValueError):
    """Request body cannot be turned into an item."""


def item_to_json(item: AnyTask) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": item.id,
        "type": item.kind.value,
        "name": item.name,
        "description": item.description,
        "status": item.status.value,
        "startTime": item.start_time.isoformat() if item.start_time else None,
        "endTime": item.end_time.isoformat() if item.end_time else None,
        "duration": int(item.duration.total_seconds() // 60),
    }
    if isinstance(item, Epic):
        data["subtaskIds"] = list(item.subtask_ids)
    elif isinstance(item, Subtask):
        data["epicId"] = item.epic_id
    return data


def _int_field(payload: dict[str, Any], key: str, default: int = 0) -> int:
    raw = payload.get(key, default)
    if raw is None:
        return default
    if isinstance(raw, bool) or not isinstance(raw, (int, str)):
        raise PayloadError(f"{key} must be an integer")
    try:
        return int(raw)
    except ValueError as e:
        raise PayloadError(f"{key} must be an integer") from e


def item_from_json(kind: TaskKind, payload: Any) -> AnyTask:
    """Build an item of `kind` from a JSON object (unknown keys are ignored)."""
    if not isinstance(payload, dict):
        raise PayloadError("JSON object expected")

    name = str(payload.get("name") or "").strip()
    description = str(payload.get("description") or "")
    item_id = _int_field(payload, "id")

    raw_status = payload.get("status")
    if raw_status is not None and not isinstance(raw_status, str):
        raise PayloadError("status must be a string")
    try:
        status = TaskStatus.parse(raw_status)
    except ValueError as e:
        raise PayloadError(f"Unknown status: {raw_status!r}") from e

    raw_start = payload.get("startTime")
    try:
        start = datetime.fromisoformat(raw_start) if raw_start else None
    except (TypeError, ValueError) as e:
        raise PayloadError("startTime must be an ISO-8601 timestamp") from e
    if start is not None and start.tzinfo is not None:
        raise PayloadError("startTime must be a local time without a UTC offset")

    minutes = _int_field(payload, "duration")
    if minutes < 0:
        raise PayloadError("duration must be non-negative")
    duration = timedelta(minutes=minutes)

    if kind is TaskKind.EPIC:
        return Epic(name=name, description=description, id=item_id)
    if kind is TaskKind.SUBTASK:
        if "epicId" not in payload:
            raise PayloadError("epicId is required")
        return Subtask(
            name=name,
            description=description,
            id=item_id,
            status=status,
            start_time=start,
            duration=duration,
            epic_id=_int_field(payload, "epicId"),
        )
    return Task(
        name=name,
        description=description,
        id=item_id,
        status=status,
        start_time=start,
        duration=duration,
    )
