# tests/helpers.py

from __future__ import annotations

from datetime import datetime, timedelta

from tasktracker.tasks.task_models import Subtask, Task

T0 = datetime(2025, 3, 10, 9, 0)


def minutes(n: int) -> timedelta:
    return timedelta(minutes=n)


def scheduled_task(name: str, offset_min: int, duration_min: int) -> Task:
    return Task(name=name, start_time=T0 + minutes(offset_min), duration=minutes(duration_min))


def scheduled_subtask(name: str, epic_id: int, offset_min: int, duration_min: int) -> Subtask:
    return Subtask(
        name=name,
        epic_id=epic_id,
        start_time=T0 + minutes(offset_min),
        duration=minutes(duration_min),
    )
