# src/tasktracker/tasks/snapshot_file.py

from __future__ import annotations

"""
CSV snapshot persistence.

File layout:
    id,type,name,status,description,epic,duration,startTime
    <one row per task, then epics, then subtasks>
    <empty row>
    <history ids, oldest first>   (omitted when history is empty)

duration is whole minutes, startTime is ISO-8601; both may be empty.
"""

import contextlib
import csv
import io
import logging
import os
from datetime import datetime, timedelta
from pathlib import Path

from .errors import SnapshotError
from .history import HistoryTracker
from .prioritized import PrioritizedIndex
from .task_models import AnyTask, Epic, Subtask, Task, TaskKind, TaskStatus
from .task_store import StoreSnapshot, TaskStore

logger = logging.getLogger(__name__)

HEADER = ["id", "type", "name", "status", "description", "epic", "duration", "startTime"]


def encode_item(item: AnyTask) -> list[str]:
    epic_ref = str(item.epic_id) if isinstance(item, Subtask) else ""
    minutes = int(item.duration.total_seconds() // 60)
    start = item.start_time.isoformat() if item.start_time is not None else ""
    return [
        str(item.id),
        item.kind.value,
        item.name,
        item.status.value,
        item.description,
        epic_ref,
        str(minutes),
        start,
    ]


def decode_item(row: list[str]) -> AnyTask:
    if len(row) < 5:
        raise SnapshotError(f"Malformed record (expected {len(HEADER)} fields): {row!r}")

    padded = row + [""] * (len(HEADER) - len(row))
    raw_id, raw_kind, name, raw_status, description, raw_epic, raw_minutes, raw_start = padded[
        : len(HEADER)
    ]

    try:
        item_id = int(raw_id)
        kind = TaskKind(raw_kind)
        status = TaskStatus(raw_status)
        duration = timedelta(minutes=int(raw_minutes)) if raw_minutes else timedelta(0)
        start = datetime.fromisoformat(raw_start) if raw_start else None
        if start is not None and start.tzinfo is not None:
            raise ValueError("startTime carries a UTC offset")
        if duration < timedelta(0):
            raise ValueError("negative duration")
    except ValueError as e:
        raise SnapshotError(f"Malformed record {row!r}: {e}") from e

    if kind is TaskKind.TASK:
        return Task(
            name=name,
            description=description,
            id=item_id,
            status=status,
            start_time=start,
            duration=duration,
        )
    if kind is TaskKind.EPIC:
        # Derived fields are rebuilt by the store from the subtasks.
        return Epic(name=name, description=description, id=item_id, status=status)

    try:
        epic_id = int(raw_epic)
    except ValueError as e:
        raise SnapshotError(f"Subtask record without epic id: {row!r}") from e
    return Subtask(
        name=name,
        description=description,
        id=item_id,
        status=status,
        start_time=start,
        duration=duration,
        epic_id=epic_id,
    )


def dump_snapshot(snapshot: StoreSnapshot) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(HEADER)
    for item in snapshot.items():
        writer.writerow(encode_item(item))
    writer.writerow([])
    if snapshot.history_ids:
        writer.writerow([str(i) for i in snapshot.history_ids])
    return buf.getvalue()


def parse_snapshot(text: str) -> StoreSnapshot:
    rows = list(csv.reader(io.StringIO(text)))
    if len(rows) <= 1:
        return StoreSnapshot()

    tasks: list[Task] = []
    epics: list[Epic] = []
    subtasks: list[Subtask] = []

    idx = 1  # header
    while idx < len(rows) and rows[idx]:
        item = decode_item(rows[idx])
        match item:
            case Epic():
                epics.append(item)
            case Subtask():
                subtasks.append(item)
            case Task():
                tasks.append(item)
        idx += 1

    history_ids: list[int] = []
    # Skip the separator, then read the (single) history row if present.
    for row in rows[idx + 1 :]:
        if not row:
            continue
        try:
            history_ids.extend(int(v) for v in row if v.strip())
        except ValueError as e:
            raise SnapshotError(f"Malformed history row {row!r}") from e
        break

    return StoreSnapshot(
        tasks=tuple(tasks),
        epics=tuple(epics),
        subtasks=tuple(subtasks),
        history_ids=tuple(history_ids),
    )


def save_snapshot(store: TaskStore, path: str | Path) -> None:
    """Write the store atomically (temp file + os.replace)."""
    path = Path(path)
    snap = store.snapshot()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(path.suffix + ".tmp")
        tmp.write_text(dump_snapshot(snap), "utf-8")
        os.replace(tmp, path)
    except OSError as e:
        with contextlib.suppress(OSError):
            path.with_suffix(path.suffix + ".tmp").unlink()
        raise SnapshotError(f"Failed to save snapshot to {path}") from e
    logger.debug(
        "Snapshot saved to %s (items=%d history=%d)",
        path,
        len(snap.items()),
        len(snap.history_ids),
    )


def load_snapshot(path: str | Path) -> StoreSnapshot:
    path = Path(path)
    if not path.exists():
        return StoreSnapshot()
    try:
        text = path.read_text("utf-8")
    except OSError as e:
        raise SnapshotError(f"Failed to read snapshot {path}") from e
    return parse_snapshot(text)


class FileBackedTaskStore(TaskStore):
    """TaskStore that writes a snapshot file after every successful mutation."""

    def __init__(
        self,
        path: str | Path,
        *,
        history: HistoryTracker | None = None,
        index: PrioritizedIndex | None = None,
    ) -> None:
        super().__init__(history=history, index=index)
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    @classmethod
    def load(
        cls,
        path: str | Path,
        *,
        history: HistoryTracker | None = None,
        index: PrioritizedIndex | None = None,
    ) -> FileBackedTaskStore:
        store = cls(path, history=history, index=index)
        snap = load_snapshot(path)
        if not snap.is_empty():
            store.load_snapshot(snap)
            store.save()
        logger.info("FileBackedTaskStore ready path=%s items=%d", store.path, store.count())
        return store

    def save(self) -> None:
        save_snapshot(self, self._path)

    def create(self, item: AnyTask) -> AnyTask:
        stored = super().create(item)
        self.save()
        return stored

    def update(self, item: AnyTask) -> bool:
        applied = super().update(item)
        if applied:
            self.save()
        return applied

    def delete_by_id(self, item_id: int, kind: TaskKind | None = None) -> bool:
        removed = super().delete_by_id(item_id, kind)
        if removed:
            self.save()
        return removed

    def delete_all(self, kind: TaskKind) -> None:
        super().delete_all(kind)
        self.save()
