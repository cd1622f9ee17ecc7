# src/tasktracker/tasks/task_store.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta

from .errors import SchedulingConflictError, TaskReferenceError
from .history import HistoryTracker
from .prioritized import PrioritizedIndex
from .task_models import AnyTask, Epic, Subtask, Task, TaskKind, TaskStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StoreSnapshot:
    """Everything a persistence adapter needs to write (or rebuild) a store."""

    tasks: tuple[Task, ...] = ()
    epics: tuple[Epic, ...] = ()
    subtasks: tuple[Subtask, ...] = ()
    history_ids: tuple[int, ...] = field(default=())

    def items(self) -> list[AnyTask]:
        return [*self.tasks, *self.epics, *self.subtasks]

    def is_empty(self) -> bool:
        return not (self.tasks or self.epics or self.subtasks)


class TaskStore:
    """
    In-memory task store.

    Owns tasks/epics/subtasks, assigns ids, keeps the epic <-> subtask relation
    consistent, recomputes epic status/time after every subtask change and keeps
    the view history + prioritized index in sync with every mutation.

    Rejections (TaskReferenceError, SchedulingConflictError) happen before any
    state is touched. Unknown ids on update/delete are silent no-ops that
    return False.

    Thread-safety:
    - none; callers that share a store across threads wrap calls in one lock
    """

    def __init__(
        self,
        *,
        history: HistoryTracker | None = None,
        index: PrioritizedIndex | None = None,
    ) -> None:
        self._history = history if history is not None else HistoryTracker()
        self._index = index if index is not None else PrioritizedIndex()
        self._tasks: dict[int, Task] = {}
        self._epics: dict[int, Epic] = {}
        self._subtasks: dict[int, Subtask] = {}
        self._next_id = 1

    # ---- low-level helpers ----

    def _generate_id(self) -> int:
        new_id = self._next_id
        self._next_id += 1
        return new_id

    def _bump_next_id(self, item_id: int) -> None:
        if item_id >= self._next_id:
            self._next_id = item_id + 1

    def _check_schedule(self, candidate: AnyTask) -> None:
        if candidate.start_time is None:
            return
        conflict = self._index.find_conflict(candidate)
        if conflict is not None:
            logger.debug("Schedule conflict: candidate=%r conflicting id=%s", candidate, conflict.id)
            raise SchedulingConflictError(candidate, conflict)

    def _lookup(self, item_id: int) -> AnyTask | None:
        return self._tasks.get(item_id) or self._epics.get(item_id) or self._subtasks.get(item_id)

    def _store_epic(self, epic: Epic) -> Epic:
        self._epics[epic.id] = epic
        self._history.refresh(epic)
        return epic

    def _recompute_epic(self, epic_id: int) -> None:
        """
        Rebuild an epic's derived fields from its current children.

        status: NEW if no children or all NEW; DONE if all DONE; else IN_PROGRESS
        start: earliest child start, end: latest child end (scheduled children only)
        duration: sum over all children
        """
        epic = self._epics.get(epic_id)
        if epic is None:
            return

        children = [self._subtasks[sid] for sid in epic.subtask_ids if sid in self._subtasks]

        statuses = {c.status for c in children}
        if not statuses or statuses == {TaskStatus.NEW}:
            status = TaskStatus.NEW
        elif statuses == {TaskStatus.DONE}:
            status = TaskStatus.DONE
        else:
            status = TaskStatus.IN_PROGRESS

        start: datetime | None = None
        end: datetime | None = None
        total = timedelta(0)
        for child in children:
            total += child.duration
            child_start, child_end = child.start_time, child.end_time
            if child_start is None or child_end is None:
                continue
            if start is None or child_start < start:
                start = child_start
            if end is None or child_end > end:
                end = child_end

        self._store_epic(
            replace(
                epic,
                status=status,
                start_time=start,
                duration=total,
                derived_end_time=end,
            )
        )

    def _attach(self, epic_id: int, subtask_id: int) -> None:
        epic = self._epics[epic_id]
        if subtask_id not in epic.subtask_ids:
            self._epics[epic_id] = replace(epic, subtask_ids=(*epic.subtask_ids, subtask_id))

    def _detach(self, epic_id: int, subtask_id: int) -> None:
        epic = self._epics.get(epic_id)
        if epic is None:
            return
        ids = tuple(sid for sid in epic.subtask_ids if sid != subtask_id)
        self._epics[epic_id] = replace(epic, subtask_ids=ids)

    def _forget(self, item: AnyTask) -> None:
        """Drop an item from history and the index (not from the collections)."""
        self._history.remove_view(item.id)
        self._index.remove(item.id)

    # ---- create ----

    def create(self, item: AnyTask) -> AnyTask:
        """
        Store a new item under a fresh id and return the stored value.

        Raises TaskReferenceError (subtask with unknown epic) or
        SchedulingConflictError (interval overlaps a scheduled item); in both
        cases nothing is stored and no id is consumed.
        """
        match item:
            case Epic():
                stored_epic = replace(
                    item,
                    id=self._generate_id(),
                    subtask_ids=(),
                    status=TaskStatus.NEW,
                    start_time=None,
                    duration=timedelta(0),
                    derived_end_time=None,
                )
                self._epics[stored_epic.id] = stored_epic
                logger.debug("Epic created id=%s name=%r", stored_epic.id, stored_epic.name)
                return stored_epic

            case Subtask():
                if item.epic_id not in self._epics:
                    raise TaskReferenceError(item.epic_id)
                self._check_schedule(replace(item, id=0))
                stored_sub = replace(item, id=self._generate_id())
                self._subtasks[stored_sub.id] = stored_sub
                self._attach(stored_sub.epic_id, stored_sub.id)
                self._index.insert(stored_sub)
                self._recompute_epic(stored_sub.epic_id)
                logger.debug(
                    "Subtask created id=%s epic_id=%s start=%s",
                    stored_sub.id,
                    stored_sub.epic_id,
                    stored_sub.start_time,
                )
                return stored_sub

            case Task():
                self._check_schedule(replace(item, id=0))
                stored_task = replace(item, id=self._generate_id())
                self._tasks[stored_task.id] = stored_task
                self._index.insert(stored_task)
                logger.debug("Task created id=%s start=%s", stored_task.id, stored_task.start_time)
                return stored_task

        raise TypeError(f"Unsupported item type: {type(item).__name__}")

    # ---- update ----

    def update(self, item: AnyTask) -> bool:
        """
        Replace the stored value for item.id.

        Returns False (and changes nothing) when the id is unknown for that kind,
        or when a subtask is moved to an epic that does not exist.
        Raises SchedulingConflictError with the old value left in place.
        """
        match item:
            case Epic():
                old_epic = self._epics.get(item.id)
                if old_epic is None:
                    return False
                # Only descriptive fields come from the caller; the rest is derived.
                self._epics[item.id] = replace(old_epic, name=item.name, description=item.description)
                self._recompute_epic(item.id)
                logger.debug("Epic updated id=%s", item.id)
                return True

            case Subtask():
                old_sub = self._subtasks.get(item.id)
                if old_sub is None:
                    return False
                if item.epic_id not in self._epics:
                    logger.warning(
                        "Subtask id=%s not moved: epic id=%s does not exist",
                        item.id,
                        item.epic_id,
                    )
                    return False
                self._check_schedule(item)

                self._subtasks[item.id] = item
                self._index.insert(item)
                self._history.refresh(item)
                if old_sub.epic_id != item.epic_id:
                    self._detach(old_sub.epic_id, item.id)
                    self._attach(item.epic_id, item.id)
                    self._recompute_epic(old_sub.epic_id)
                    logger.debug(
                        "Subtask id=%s moved epic %s -> %s", item.id, old_sub.epic_id, item.epic_id
                    )
                self._recompute_epic(item.epic_id)
                return True

            case Task():
                if item.id not in self._tasks:
                    return False
                self._check_schedule(item)
                self._tasks[item.id] = item
                self._index.insert(item)
                self._history.refresh(item)
                logger.debug("Task updated id=%s", item.id)
                return True

        raise TypeError(f"Unsupported item type: {type(item).__name__}")

    # ---- delete ----

    def delete_by_id(self, item_id: int, kind: TaskKind | None = None) -> bool:
        """
        Delete an item (epics cascade to their subtasks). Idempotent.

        With `kind`, only an item of that kind is deleted.
        Returns True if something was removed.
        """
        item = self._lookup(item_id)
        if item is None or (kind is not None and item.kind != kind):
            return False

        match item:
            case Epic():
                for sid in item.subtask_ids:
                    sub = self._subtasks.pop(sid, None)
                    if sub is not None:
                        self._forget(sub)
                del self._epics[item_id]
                self._history.remove_view(item_id)
                logger.debug("Epic deleted id=%s (cascade=%d)", item_id, len(item.subtask_ids))

            case Subtask():
                del self._subtasks[item_id]
                self._forget(item)
                self._detach(item.epic_id, item_id)
                self._recompute_epic(item.epic_id)
                logger.debug("Subtask deleted id=%s epic_id=%s", item_id, item.epic_id)

            case Task():
                del self._tasks[item_id]
                self._forget(item)
                logger.debug("Task deleted id=%s", item_id)

        return True

    def delete_all(self, kind: TaskKind) -> None:
        if kind is TaskKind.TASK:
            for task in self._tasks.values():
                self._forget(task)
            self._tasks.clear()

        elif kind is TaskKind.SUBTASK:
            for sub in self._subtasks.values():
                self._forget(sub)
            self._subtasks.clear()
            for epic_id, epic in list(self._epics.items()):
                self._epics[epic_id] = replace(epic, subtask_ids=())
                self._recompute_epic(epic_id)

        elif kind is TaskKind.EPIC:
            for sub in self._subtasks.values():
                self._forget(sub)
            for epic in self._epics.values():
                self._history.remove_view(epic.id)
            self._subtasks.clear()
            self._epics.clear()

        logger.debug("Deleted all items of kind=%s", kind.value)

    # ---- reads ----

    def get_by_id(self, item_id: int, kind: TaskKind | None = None) -> AnyTask | None:
        """Look up an item. A hit is a view: it is recorded in the history."""
        item = self.peek(item_id, kind)
        if item is not None:
            self._history.record_view(item)
        return item

    def peek(self, item_id: int, kind: TaskKind | None = None) -> AnyTask | None:
        """Like get_by_id but without recording a view."""
        item = self._lookup(item_id)
        if item is None or (kind is not None and item.kind != kind):
            return None
        return item

    def list_all(self, kind: TaskKind) -> list[AnyTask]:
        if kind is TaskKind.TASK:
            return list(self._tasks.values())
        if kind is TaskKind.EPIC:
            return list(self._epics.values())
        return list(self._subtasks.values())

    def list_subtasks_of_epic(self, epic_id: int) -> list[Subtask]:
        epic = self._epics.get(epic_id)
        if epic is None:
            return []
        return [self._subtasks[sid] for sid in epic.subtask_ids if sid in self._subtasks]

    def has_epic(self, epic_id: int) -> bool:
        return epic_id in self._epics

    def prioritized_snapshot(self) -> list[AnyTask]:
        return self._index.snapshot()

    def history_snapshot(self) -> list[AnyTask]:
        return self._history.current_history()

    def count(self) -> int:
        return len(self._tasks) + len(self._epics) + len(self._subtasks)

    # ---- persistence hooks ----

    def snapshot(self) -> StoreSnapshot:
        """
        Subtasks are listed epic by epic in each epic's `subtask_ids` order, so
        load_snapshot rebuilds the same child order (moves append at the end).
        """
        ordered_subtasks = tuple(
            self._subtasks[sid]
            for epic in self._epics.values()
            for sid in epic.subtask_ids
            if sid in self._subtasks
        )
        return StoreSnapshot(
            tasks=tuple(self._tasks.values()),
            epics=tuple(self._epics.values()),
            subtasks=ordered_subtasks,
            history_ids=tuple(item.id for item in self._history),
        )

    def load_snapshot(self, snapshot: StoreSnapshot) -> None:
        """
        Bulk-load items with pre-assigned ids into an empty store, then replay
        the history ids through get_by_id so the visible history matches.

        Subtasks whose epic is missing are skipped. Epic derived fields are
        recomputed. On SchedulingConflictError the store is left empty.
        """
        if self.count():
            raise RuntimeError("load_snapshot requires an empty store")

        try:
            self._load_items(snapshot)
        except Exception:
            self._reset()
            raise

        for item_id in snapshot.history_ids:
            if self.get_by_id(item_id) is None:
                logger.warning("History id=%s does not match any loaded item; skipped.", item_id)

        logger.info(
            "Snapshot loaded: tasks=%d epics=%d subtasks=%d history=%d next_id=%d",
            len(self._tasks),
            len(self._epics),
            len(self._subtasks),
            len(self._history),
            self._next_id,
        )

    def _load_items(self, snapshot: StoreSnapshot) -> None:
        for epic in snapshot.epics:
            self._bump_next_id(epic.id)
            self._epics[epic.id] = replace(epic, subtask_ids=())

        for sub in snapshot.subtasks:
            self._bump_next_id(sub.id)
            if sub.epic_id not in self._epics:
                logger.warning("Subtask id=%s skipped: epic id=%s not loaded", sub.id, sub.epic_id)
                continue
            self._check_schedule(sub)
            self._subtasks[sub.id] = sub
            self._attach(sub.epic_id, sub.id)
            self._index.insert(sub)

        for task in snapshot.tasks:
            self._bump_next_id(task.id)
            self._check_schedule(task)
            self._tasks[task.id] = task
            self._index.insert(task)

        for epic_id in list(self._epics):
            self._recompute_epic(epic_id)

    def _reset(self) -> None:
        self._tasks.clear()
        self._epics.clear()
        self._subtasks.clear()
        self._history.clear()
        self._index.clear()
        self._next_id = 1

