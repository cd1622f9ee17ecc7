# src/tasktracker/tasks/history.py

from __future__ import annotations

"""
View history.

Doubly linked list of entries + id -> entry table:
- record_view: O(1) (unlink the old entry if any, append at the tail)
- remove_view: O(1), touches only the target's neighbours
- current_history: O(n), oldest first

Unbounded by default; with `limit` the oldest entry is evicted once the
limit is exceeded.
"""

import logging
from collections.abc import Iterator

from .task_models import AnyTask

logger = logging.getLogger(__name__)


class _Node:
    __slots__ = ("item", "prev", "next")

    def __init__(self, item: AnyTask) -> None:
        self.item = item
        self.prev: _Node | None = None
        self.next: _Node | None = None


class HistoryTracker:
    def __init__(self, limit: int | None = None) -> None:
        if limit is not None and limit <= 0:
            limit = None
        self._limit = limit
        self._nodes: dict[int, _Node] = {}
        self._head: _Node | None = None
        self._tail: _Node | None = None

    @property
    def limit(self) -> int | None:
        return self._limit

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._nodes

    def __iter__(self) -> Iterator[AnyTask]:
        node = self._head
        while node is not None:
            yield node.item
            node = node.next

    # ---- linked list primitives ----

    def _link_last(self, item: AnyTask) -> None:
        node = _Node(item)
        node.prev = self._tail
        if self._tail is None:
            self._head = node
        else:
            self._tail.next = node
        self._tail = node
        self._nodes[item.id] = node

    def _unlink(self, node: _Node) -> None:
        if node.prev is None:
            self._head = node.next
        else:
            node.prev.next = node.next

        if node.next is None:
            self._tail = node.prev
        else:
            node.next.prev = node.prev

        node.prev = node.next = None
        del self._nodes[node.item.id]

    # ---- public API ----

    def record_view(self, item: AnyTask | None) -> None:
        if item is None:
            return

        old = self._nodes.get(item.id)
        if old is not None:
            self._unlink(old)
        self._link_last(item)

        if self._limit is not None and len(self._nodes) > self._limit and self._head is not None:
            evicted = self._head.item
            self._unlink(self._head)
            logger.debug("History limit=%s reached, evicted id=%s", self._limit, evicted.id)

    def remove_view(self, item_id: int) -> None:
        node = self._nodes.get(item_id)
        if node is not None:
            self._unlink(node)

    def refresh(self, item: AnyTask) -> None:
        """Swap in a newer value for an already tracked id without moving it."""
        node = self._nodes.get(item.id)
        if node is not None:
            node.item = item

    def current_history(self) -> list[AnyTask]:
        return list(self)

    def clear(self) -> None:
        self._nodes.clear()
        self._head = self._tail = None
