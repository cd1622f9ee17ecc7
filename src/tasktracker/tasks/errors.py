# src/tasktracker/tasks/errors.py

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .task_models import AnyTask


class TaskTrackerError(Exception):
    """Base class for deliberate rejections raised by the tracker."""


class TaskReferenceError(TaskTrackerError):
    """An operation names an epic id that does not exist."""

    kind = "unknown epic"

    def __init__(self, epic_id: int) -> None:
        super().__init__(f"{self.kind}: {epic_id}")
        self.epic_id = epic_id


class SchedulingConflictError(TaskTrackerError):
    """A scheduled item's interval overlaps an item that is already scheduled."""

    def __init__(self, candidate: AnyTask, conflicting: AnyTask | None = None) -> None:
        if conflicting is not None:
            msg = (
                f"{candidate.kind.value.lower()} {candidate.name!r} "
                f"[{candidate.start_time} - {candidate.end_time}) overlaps "
                f"{conflicting.kind.value.lower()} id={conflicting.id}"
            )
        else:
            msg = f"{candidate.kind.value.lower()} {candidate.name!r} overlaps a scheduled item"
        super().__init__(msg)
        self.candidate = candidate
        self.conflicting = conflicting


class SnapshotError(TaskTrackerError):
    """Reading or writing a snapshot file failed."""
