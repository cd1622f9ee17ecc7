# src/tasktracker/tasks/prioritized.py

from __future__ import annotations

"""
Prioritized index: every scheduled plain task / subtask ordered by start time.

Unscheduled items are never tracked. Ties on start time are broken by id, so
zero-length items sharing an instant are all kept.
"""

import logging
from datetime import datetime

from sortedcontainers import SortedKeyList

from .task_models import SCHEDULABLE_KINDS, AnyTask

logger = logging.getLogger(__name__)


def _sort_key(item: AnyTask) -> tuple[datetime, int]:
    if item.start_time is None:
        raise ValueError(f"item id={item.id} has no start time")
    return (item.start_time, item.id)


def intervals_overlap(a: AnyTask, b: AnyTask) -> bool:
    """Half-open [start, end) intersection; unscheduled items overlap nothing."""
    a_start, a_end = a.start_time, a.end_time
    b_start, b_end = b.start_time, b.end_time
    if a_start is None or b_start is None or a_end is None or b_end is None:
        return False
    return a_start < b_end and b_start < a_end


class PrioritizedIndex:
    def __init__(self) -> None:
        self._items: SortedKeyList = SortedKeyList(key=_sort_key)
        self._by_id: dict[int, AnyTask] = {}

    def __len__(self) -> int:
        return len(self._by_id)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._by_id

    def insert(self, item: AnyTask) -> None:
        """Track `item` (replacing any older value with the same id)."""
        if item.kind not in SCHEDULABLE_KINDS:
            raise ValueError(f"{item.kind} items are not scheduled independently")

        self.remove(item)
        if item.start_time is None:
            return
        self._items.add(item)
        self._by_id[item.id] = item

    def remove(self, item: AnyTask | int) -> None:
        item_id = item if isinstance(item, int) else item.id
        old = self._by_id.pop(item_id, None)
        if old is not None:
            self._items.remove(old)

    def snapshot(self) -> list[AnyTask]:
        return list(self._items)

    def find_conflict(self, candidate: AnyTask) -> AnyTask | None:
        """
        First tracked item whose interval overlaps `candidate`, ignoring the
        candidate's own id (so an update can be checked in place).
        """
        start, end = candidate.start_time, candidate.end_time
        if start is None or end is None:
            return None

        # Only items starting before the candidate ends can overlap it.
        for other in self._items.irange_key(max_key=(end, -1), inclusive=(True, False)):
            if other.id == candidate.id:
                continue
            if intervals_overlap(candidate, other):
                return other
        return None

    def overlaps(self, candidate: AnyTask) -> bool:
        return self.find_conflict(candidate) is not None

    def clear(self) -> None:
        self._items.clear()
        self._by_id.clear()
