# src/tasktracker/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import StrEnum
from typing import ClassVar, TypeAlias, final


class TaskStatus(StrEnum):
    NEW = "NEW"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"

    @classmethod
    def parse(cls, raw: str | None) -> TaskStatus:
        """Lenient parse for adapters: accepts any case, '-' or ' ' as separator."""
        if not raw:
            return cls.NEW
        return cls(raw.strip().upper().replace("-", "_").replace(" ", "_"))


class TaskKind(StrEnum):
    """Tag that discriminates the three item variants (also the on-disk type tag)."""

    TASK = "TASK"
    EPIC = "EPIC"
    SUBTASK = "SUBTASK"


@dataclass(frozen=True, slots=True, eq=False)
class _WorkItem:
    """
    Fields shared by every variant.

    Items are values: the store replaces them on update instead of mutating.
    Equality and hashing use only the id.
    """

    kind: ClassVar[TaskKind]

    name: str = ""
    description: str = ""
    id: int = 0
    status: TaskStatus = TaskStatus.NEW
    start_time: datetime | None = None
    duration: timedelta = timedelta(0)

    def __post_init__(self) -> None:
        if self.duration < timedelta(0):
            raise ValueError("duration must be non-negative")
        # Schedule keys must stay comparable: local wall-clock times only.
        if self.start_time is not None and self.start_time.tzinfo is not None:
            raise ValueError("start_time must be a naive local datetime (no UTC offset)")

    @property
    def end_time(self) -> datetime | None:
        if self.start_time is None:
            return None
        return self.start_time + self.duration

    @property
    def is_scheduled(self) -> bool:
        return self.start_time is not None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, _WorkItem):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)


@final
@dataclass(frozen=True, slots=True, eq=False)
class Task(_WorkItem):
    kind: ClassVar[TaskKind] = TaskKind.TASK


@final
@dataclass(frozen=True, slots=True, eq=False)
class Epic(_WorkItem):
    """
    Container item. status/start_time/duration/end are owned by the store and
    recomputed from the current subtasks; values passed in by callers are ignored.
    """

    kind: ClassVar[TaskKind] = TaskKind.EPIC

    subtask_ids: tuple[int, ...] = ()
    derived_end_time: datetime | None = field(default=None, repr=False)

    @property
    def end_time(self) -> datetime | None:
        return self.derived_end_time


@final
@dataclass(frozen=True, slots=True, eq=False)
class Subtask(_WorkItem):
    kind: ClassVar[TaskKind] = TaskKind.SUBTASK

    epic_id: int = 0


AnyTask: TypeAlias = Task | Epic | Subtask

# Plain tasks and subtasks are scheduled independently; epic time is derived.
SCHEDULABLE_KINDS: frozenset[TaskKind] = frozenset({TaskKind.TASK, TaskKind.SUBTASK})
