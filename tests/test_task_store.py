# tests/test_task_store.py

from __future__ import annotations

from dataclasses import replace
from datetime import timezone

import pytest

from tasktracker.tasks.errors import SchedulingConflictError, TaskReferenceError
from tasktracker.tasks.history import HistoryTracker
from tasktracker.tasks.task_models import Epic, Subtask, Task, TaskKind, TaskStatus
from tasktracker.tasks.task_store import StoreSnapshot, TaskStore

from .helpers import T0, minutes, scheduled_subtask, scheduled_task


def _ids(items) -> list[int]:
    return [i.id for i in items]


# ---- create / get / update ----


def test_create_assigns_ids_and_get_returns_stored_value(store: TaskStore) -> None:
    t = store.create(Task(name="read", description="chapter 1"))
    e = store.create(Epic(name="move"))
    s = store.create(Subtask(name="pack", epic_id=e.id))

    assert (t.id, e.id, s.id) == (1, 2, 3)
    assert store.get_by_id(t.id) == t
    assert store.get_by_id(t.id).description == "chapter 1"  # type: ignore[union-attr]
    assert store.get_by_id(999) is None


def test_get_by_id_with_kind_filter(store: TaskStore) -> None:
    t = store.create(Task(name="t"))
    assert store.get_by_id(t.id, TaskKind.EPIC) is None
    assert store.get_by_id(t.id, TaskKind.TASK) == t
    # a miss is not a view
    assert _ids(store.history_snapshot()) == [t.id]


def test_caller_object_is_not_mutated(store: TaskStore) -> None:
    draft = Task(name="draft")
    stored = store.create(draft)
    assert draft.id == 0
    assert stored.id == 1


def test_update_replaces_value_in_place(store: TaskStore) -> None:
    t = store.create(Task(name="old"))
    assert store.update(replace(t, name="new", status=TaskStatus.DONE))
    got = store.get_by_id(t.id)
    assert got is not None
    assert got.name == "new"
    assert got.status is TaskStatus.DONE


def test_update_unknown_id_is_silent_noop(store: TaskStore) -> None:
    store.create(Task(name="a"))
    assert store.update(Task(name="ghost", id=42)) is False
    assert store.update(Epic(name="ghost", id=1)) is False  # id 1 is a task, not an epic
    assert _ids(store.list_all(TaskKind.TASK)) == [1]


def test_epic_update_keeps_children_and_derived_fields(store: TaskStore) -> None:
    e = store.create(Epic(name="e"))
    s = store.create(Subtask(name="s", epic_id=e.id, status=TaskStatus.DONE))

    caller_epic = Epic(name="renamed", description="d", id=e.id, status=TaskStatus.NEW, subtask_ids=())
    assert store.update(caller_epic)

    got = store.peek(e.id)
    assert isinstance(got, Epic)
    assert got.name == "renamed"
    assert got.description == "d"
    assert got.subtask_ids == (s.id,)
    assert got.status is TaskStatus.DONE


def test_create_epic_ignores_caller_derived_fields(store: TaskStore) -> None:
    e = store.create(Epic(name="e", status=TaskStatus.DONE, subtask_ids=(5, 6), start_time=T0))
    assert isinstance(e, Epic)
    assert e.status is TaskStatus.NEW
    assert e.subtask_ids == ()
    assert e.start_time is None
    assert e.end_time is None


# ---- subtasks and references ----


def test_subtask_with_unknown_epic_is_rejected(store: TaskStore) -> None:
    with pytest.raises(TaskReferenceError) as exc:
        store.create(Subtask(name="orphan", epic_id=77))
    assert exc.value.epic_id == 77
    assert exc.value.kind == "unknown epic"
    assert store.count() == 0
    # no id was consumed
    assert store.create(Task(name="t")).id == 1


def test_bidirectional_relation_and_listing(store: TaskStore) -> None:
    e = store.create(Epic(name="e"))
    s1 = store.create(Subtask(name="s1", epic_id=e.id))
    s2 = store.create(Subtask(name="s2", epic_id=e.id))

    epic = store.peek(e.id)
    assert isinstance(epic, Epic)
    assert epic.subtask_ids == (s1.id, s2.id)
    assert _ids(store.list_subtasks_of_epic(e.id)) == [s1.id, s2.id]
    assert store.list_subtasks_of_epic(999) == []
    # pure reads do not touch history
    assert store.history_snapshot() == []


def test_subtask_can_move_between_epics(store: TaskStore) -> None:
    a = store.create(Epic(name="a"))
    b = store.create(Epic(name="b"))
    s = store.create(Subtask(name="s", epic_id=a.id, status=TaskStatus.DONE))

    assert store.update(replace(s, epic_id=b.id))

    ea, eb = store.peek(a.id), store.peek(b.id)
    assert isinstance(ea, Epic) and isinstance(eb, Epic)
    assert ea.subtask_ids == ()
    assert ea.status is TaskStatus.NEW
    assert eb.subtask_ids == (s.id,)
    assert eb.status is TaskStatus.DONE


def test_subtask_move_to_missing_epic_is_refused(store: TaskStore) -> None:
    a = store.create(Epic(name="a"))
    s = store.create(Subtask(name="s", epic_id=a.id))

    assert store.update(replace(s, epic_id=999, name="moved")) is False

    got = store.peek(s.id)
    assert isinstance(got, Subtask)
    assert got.epic_id == a.id
    assert got.name == "s"


# ---- epic derivation ----


def test_epic_status_follows_subtasks(store: TaskStore) -> None:
    e = store.create(Epic(name="e"))
    assert store.peek(e.id).status is TaskStatus.NEW  # type: ignore[union-attr]

    s1 = store.create(Subtask(name="s1", epic_id=e.id))
    s2 = store.create(Subtask(name="s2", epic_id=e.id))
    assert store.peek(e.id).status is TaskStatus.NEW  # type: ignore[union-attr]

    store.update(replace(s1, status=TaskStatus.DONE))
    assert store.peek(e.id).status is TaskStatus.IN_PROGRESS  # type: ignore[union-attr]

    store.update(replace(s2, status=TaskStatus.DONE))
    assert store.peek(e.id).status is TaskStatus.DONE  # type: ignore[union-attr]

    store.update(replace(s2, status=TaskStatus.IN_PROGRESS))
    assert store.peek(e.id).status is TaskStatus.IN_PROGRESS  # type: ignore[union-attr]

    store.delete_by_id(s2.id)
    assert store.peek(e.id).status is TaskStatus.DONE  # type: ignore[union-attr]


def test_single_in_progress_subtask_makes_epic_in_progress(store: TaskStore) -> None:
    e = store.create(Epic(name="e"))
    store.create(Subtask(name="s", epic_id=e.id, status=TaskStatus.IN_PROGRESS))
    assert store.peek(e.id).status is TaskStatus.IN_PROGRESS  # type: ignore[union-attr]


def test_epic_time_aggregation(store: TaskStore) -> None:
    e = store.create(Epic(name="e"))
    store.create(scheduled_subtask("s1", e.id, 0, 30))
    store.create(scheduled_subtask("s2", e.id, 60, 45))
    store.create(Subtask(name="unscheduled", epic_id=e.id, duration=minutes(15)))

    epic = store.peek(e.id)
    assert isinstance(epic, Epic)
    assert epic.start_time == T0
    assert epic.end_time == T0 + minutes(105)
    # unscheduled subtasks still count towards the total
    assert epic.duration == minutes(90)


def test_epic_without_scheduled_subtasks_has_no_window(store: TaskStore) -> None:
    e = store.create(Epic(name="e"))
    s = store.create(scheduled_subtask("s", e.id, 0, 30))
    store.delete_by_id(s.id)

    epic = store.peek(e.id)
    assert isinstance(epic, Epic)
    assert epic.start_time is None
    assert epic.end_time is None
    assert epic.duration == minutes(0)
    assert epic.status is TaskStatus.NEW


def test_history_shows_current_epic_state(store: TaskStore) -> None:
    e = store.create(Epic(name="e"))
    store.get_by_id(e.id)
    s = store.create(Subtask(name="s", epic_id=e.id))
    store.update(replace(s, status=TaskStatus.DONE))

    (viewed,) = store.history_snapshot()
    assert viewed.status is TaskStatus.DONE


# ---- scheduling guard ----


def test_offset_aware_start_is_rejected_before_reaching_the_schedule(store: TaskStore) -> None:
    with pytest.raises(ValueError):
        store.create(Task(name="utc", start_time=T0.replace(tzinfo=timezone.utc), duration=minutes(30)))
    assert store.count() == 0

    a = store.create(scheduled_task("local", 0, 30))
    with pytest.raises(ValueError):
        store.update(replace(a, start_time=T0.replace(tzinfo=timezone.utc)))
    with pytest.raises(SchedulingConflictError):
        store.create(scheduled_task("naive overlap", 10, 10))
    assert _ids(store.prioritized_snapshot()) == [a.id]


def test_overlapping_task_is_rejected_without_side_effects(store: TaskStore) -> None:
    a = store.create(scheduled_task("A", 0, 30))

    with pytest.raises(SchedulingConflictError) as exc:
        store.create(scheduled_task("B", 15, 30))

    assert exc.value.conflicting == a
    assert _ids(store.prioritized_snapshot()) == [a.id]
    assert _ids(store.list_all(TaskKind.TASK)) == [a.id]
    assert store.create(Task(name="C")).id == a.id + 1


def test_subtasks_and_tasks_share_one_schedule(store: TaskStore) -> None:
    store.create(scheduled_task("A", 0, 30))
    e = store.create(Epic(name="e"))
    with pytest.raises(SchedulingConflictError):
        store.create(scheduled_subtask("s", e.id, 10, 10))
    epic = store.peek(e.id)
    assert isinstance(epic, Epic)
    assert epic.subtask_ids == ()


def test_epic_window_does_not_block_scheduling(store: TaskStore) -> None:
    e = store.create(Epic(name="e"))
    store.create(scheduled_subtask("s1", e.id, 0, 30))
    store.create(scheduled_subtask("s2", e.id, 120, 30))
    # inside the epic's [start, end) but between its subtasks
    store.create(scheduled_task("gap", 60, 30))
    assert len(store.prioritized_snapshot()) == 3


def test_adjacent_intervals_do_not_conflict(store: TaskStore) -> None:
    store.create(scheduled_task("A", 0, 30))
    store.create(scheduled_task("B", 30, 30))
    assert [t.name for t in store.prioritized_snapshot()] == ["A", "B"]


def test_update_checks_overlap_excluding_itself(store: TaskStore) -> None:
    a = store.create(scheduled_task("A", 0, 30))
    b = store.create(scheduled_task("B", 60, 30))

    # shifting A within its own slot is fine
    assert store.update(replace(a, start_time=T0 + minutes(5)))

    with pytest.raises(SchedulingConflictError):
        store.update(replace(b, start_time=T0 + minutes(20)))

    got = store.peek(b.id)
    assert got is not None and got.start_time == T0 + minutes(60)
    assert [t.start_time for t in store.prioritized_snapshot()] == [T0 + minutes(5), T0 + minutes(60)]


def test_conflicting_subtask_update_keeps_epic_links(store: TaskStore) -> None:
    store.create(scheduled_task("A", 0, 30))
    e1 = store.create(Epic(name="e1"))
    e2 = store.create(Epic(name="e2"))
    s = store.create(scheduled_subtask("s", e1.id, 60, 30))

    with pytest.raises(SchedulingConflictError):
        store.update(replace(s, epic_id=e2.id, start_time=T0))

    assert _ids(store.list_subtasks_of_epic(e1.id)) == [s.id]
    assert store.list_subtasks_of_epic(e2.id) == []


def test_unscheduling_removes_from_prioritized(store: TaskStore) -> None:
    a = store.create(scheduled_task("A", 0, 30))
    store.create(Task(name="free"))
    assert _ids(store.prioritized_snapshot()) == [a.id]

    store.update(replace(a, start_time=None))
    assert store.prioritized_snapshot() == []


# ---- delete ----


def test_delete_task_purges_history_and_index(store: TaskStore) -> None:
    a = store.create(scheduled_task("A", 0, 30))
    b = store.create(Task(name="B"))
    store.get_by_id(a.id)
    store.get_by_id(b.id)

    assert store.delete_by_id(a.id)

    assert _ids(store.history_snapshot()) == [b.id]
    assert store.prioritized_snapshot() == []
    assert store.get_by_id(a.id) is None


def test_cascade_delete_epic(store: TaskStore) -> None:
    other = store.create(scheduled_task("other", 200, 10))
    e = store.create(Epic(name="e"))
    s1 = store.create(scheduled_subtask("s1", e.id, 0, 30))
    s2 = store.create(Subtask(name="s2", epic_id=e.id))
    for item_id in (other.id, s1.id, s2.id, e.id):
        store.get_by_id(item_id)

    assert store.delete_by_id(e.id)

    assert store.peek(e.id) is None
    assert store.peek(s1.id) is None
    assert store.peek(s2.id) is None
    assert _ids(store.history_snapshot()) == [other.id]
    assert _ids(store.prioritized_snapshot()) == [other.id]


def test_delete_subtask_detaches_and_recomputes(store: TaskStore) -> None:
    e = store.create(Epic(name="e"))
    s1 = store.create(scheduled_subtask("s1", e.id, 0, 30))
    s2 = store.create(scheduled_subtask("s2", e.id, 60, 30))
    store.get_by_id(s1.id)

    store.delete_by_id(s1.id)

    epic = store.peek(e.id)
    assert isinstance(epic, Epic)
    assert epic.subtask_ids == (s2.id,)
    assert epic.start_time == T0 + minutes(60)
    assert store.history_snapshot() == []
    assert _ids(store.prioritized_snapshot()) == [s2.id]


def test_idempotent_deletes(store: TaskStore) -> None:
    t = store.create(Task(name="t"))
    before = store.snapshot()
    assert store.delete_by_id(404) is False
    assert store.delete_by_id(404) is False
    assert store.snapshot() == before
    assert store.delete_by_id(t.id, TaskKind.EPIC) is False
    assert store.peek(t.id) == t


def test_ids_are_never_reused(store: TaskStore) -> None:
    a = store.create(Task(name="a"))
    b = store.create(Task(name="b"))
    store.delete_by_id(b.id)
    c = store.create(Task(name="c"))
    assert c.id == b.id + 1
    store.delete_by_id(a.id)
    store.delete_by_id(c.id)
    assert store.create(Epic(name="d")).id == c.id + 1


# ---- delete_all ----


def test_delete_all_tasks(store: TaskStore) -> None:
    store.create(scheduled_task("A", 0, 30))
    t = store.create(Task(name="B"))
    e = store.create(Epic(name="e"))
    store.get_by_id(t.id)
    store.get_by_id(e.id)

    store.delete_all(TaskKind.TASK)

    assert store.list_all(TaskKind.TASK) == []
    assert store.prioritized_snapshot() == []
    assert _ids(store.history_snapshot()) == [e.id]


def test_delete_all_subtasks_resets_epics(store: TaskStore) -> None:
    e = store.create(Epic(name="e"))
    s = store.create(scheduled_subtask("s", e.id, 0, 30))
    store.update(replace(s, status=TaskStatus.DONE))
    store.get_by_id(s.id)

    store.delete_all(TaskKind.SUBTASK)

    epic = store.peek(e.id)
    assert isinstance(epic, Epic)
    assert epic.subtask_ids == ()
    assert epic.status is TaskStatus.NEW
    assert epic.start_time is None and epic.end_time is None
    assert store.history_snapshot() == []
    assert store.prioritized_snapshot() == []


def test_delete_all_epics_cascades(store: TaskStore) -> None:
    t = store.create(scheduled_task("keep", 100, 10))
    e = store.create(Epic(name="e"))
    s = store.create(scheduled_subtask("s", e.id, 0, 30))
    store.get_by_id(e.id)
    store.get_by_id(s.id)
    store.get_by_id(t.id)

    store.delete_all(TaskKind.EPIC)

    assert store.list_all(TaskKind.EPIC) == []
    assert store.list_all(TaskKind.SUBTASK) == []
    assert _ids(store.prioritized_snapshot()) == [t.id]
    assert _ids(store.history_snapshot()) == [t.id]


# ---- history through the store ----


def test_history_dedup_through_lookups(store: TaskStore) -> None:
    x = store.create(Task(name="x"))
    y = store.create(Task(name="y"))
    store.get_by_id(x.id)
    store.get_by_id(y.id)
    store.get_by_id(x.id)
    assert _ids(store.history_snapshot()) == [y.id, x.id]


def test_history_reflects_updates(store: TaskStore) -> None:
    t = store.create(Task(name="v1"))
    store.get_by_id(t.id)
    store.update(replace(t, name="v2"))
    assert [i.name for i in store.history_snapshot()] == ["v2"]


def test_store_honours_history_limit() -> None:
    store = TaskStore(history=HistoryTracker(limit=2))
    ids = [store.create(Task(name=str(i))).id for i in range(3)]
    for item_id in ids:
        store.get_by_id(item_id)
    assert _ids(store.history_snapshot()) == ids[1:]


# ---- snapshot / bulk load ----


def test_snapshot_and_load_round_trip() -> None:
    src = TaskStore()
    t = src.create(scheduled_task("t", 0, 30))
    e = src.create(Epic(name="e"))
    s = src.create(scheduled_subtask("s", e.id, 60, 15))
    src.get_by_id(s.id)
    src.get_by_id(t.id)
    src.delete_by_id(src.create(Task(name="gone")).id)

    snap = src.snapshot()
    assert snap.history_ids == (s.id, t.id)

    dst = TaskStore()
    dst.load_snapshot(snap)

    assert _ids(dst.history_snapshot()) == [s.id, t.id]
    assert _ids(dst.prioritized_snapshot()) == [t.id, s.id]
    epic = dst.peek(e.id)
    assert isinstance(epic, Epic)
    assert epic.subtask_ids == (s.id,)
    assert epic.start_time == T0 + minutes(60)
    # counter continues after the highest loaded id
    assert dst.create(Task(name="next")).id == s.id + 1


def test_load_skips_orphan_subtasks_and_unknown_history() -> None:
    snap = StoreSnapshot(
        subtasks=(Subtask(name="orphan", id=5, epic_id=9),),
        tasks=(Task(name="t", id=2),),
        history_ids=(5, 2, 77),
    )
    store = TaskStore()
    store.load_snapshot(snap)
    assert store.list_all(TaskKind.SUBTASK) == []
    assert _ids(store.history_snapshot()) == [2]
    # ids of skipped records are still never handed out
    assert store.create(Task(name="n")).id == 6


def test_load_with_conflicting_items_leaves_store_empty() -> None:
    snap = StoreSnapshot(
        tasks=(
            replace(scheduled_task("a", 0, 30), id=1),
            replace(scheduled_task("b", 10, 30), id=2),
        )
    )
    store = TaskStore()
    with pytest.raises(SchedulingConflictError):
        store.load_snapshot(snap)
    assert store.count() == 0
    assert store.prioritized_snapshot() == []
    assert store.create(Task(name="fresh")).id == 1


def test_round_trip_keeps_subtask_order_after_moves() -> None:
    src = TaskStore()
    a = src.create(Epic(name="a"))
    b = src.create(Epic(name="b"))
    s1 = src.create(Subtask(name="s1", epic_id=a.id))
    s2 = src.create(Subtask(name="s2", epic_id=b.id))
    s3 = src.create(Subtask(name="s3", epic_id=a.id))
    src.update(replace(s2, epic_id=a.id))

    dst = TaskStore()
    dst.load_snapshot(src.snapshot())

    epic = dst.peek(a.id)
    assert isinstance(epic, Epic)
    assert epic.subtask_ids == (s1.id, s3.id, s2.id)
    assert _ids(dst.list_subtasks_of_epic(a.id)) == [s1.id, s3.id, s2.id]


def test_load_requires_empty_store(store: TaskStore) -> None:
    store.create(Task(name="t"))
    with pytest.raises(RuntimeError):
        store.load_snapshot(StoreSnapshot())
