# src/tasktracker/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the adapters.

The console and HTTP adapters depend on this Protocol instead of a concrete
store, so an in-memory or a file-backed store can be wired in interchangeably.
"""

from typing import Protocol

from ..tasks.task_models import AnyTask, Subtask, TaskKind
from ..tasks.task_store import StoreSnapshot


class TaskRepo(Protocol):
    # Mutations (may raise TaskReferenceError / SchedulingConflictError)
    def create(self, item: AnyTask) -> AnyTask: ...
    def update(self, item: AnyTask) -> bool: ...
    def delete_by_id(self, item_id: int, kind: TaskKind | None = None) -> bool: ...
    def delete_all(self, kind: TaskKind) -> None: ...

    # Reads (get_by_id records a view)
    def get_by_id(self, item_id: int, kind: TaskKind | None = None) -> AnyTask | None: ...
    def peek(self, item_id: int, kind: TaskKind | None = None) -> AnyTask | None: ...
    def list_all(self, kind: TaskKind) -> list[AnyTask]: ...
    def list_subtasks_of_epic(self, epic_id: int) -> list[Subtask]: ...
    def has_epic(self, epic_id: int) -> bool: ...
    def prioritized_snapshot(self) -> list[AnyTask]: ...
    def history_snapshot(self) -> list[AnyTask]: ...

    # Persistence
    def count(self) -> int: ...
    def snapshot(self) -> StoreSnapshot: ...
