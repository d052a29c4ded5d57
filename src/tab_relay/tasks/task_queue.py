# src/tab_relay/tasks/task_queue.py

from __future__ import annotations

from collections import deque
from collections.abc import Callable

from .task_models import Task


class TaskQueue:
    """
    Pending tasks in submission order.

    Strict FIFO: no priorities, no cancellation, no reordering. Validation happens in
    the dispatch service before anything reaches the queue.
    """

    def __init__(self) -> None:
        self._queue: deque[Task] = deque()

    def __len__(self) -> int:
        return len(self._queue)

    def submit(self, task: Task) -> None:
        self._queue.append(task)

    def take_next(self) -> Task | None:
        """Remove and return the head, or None when the queue is empty."""
        if not self._queue:
            return None
        return self._queue.popleft()

    def peek(self) -> Task | None:
        return self._queue[0] if self._queue else None

    def contains(self, predicate: Callable[[Task], bool]) -> bool:
        return any(predicate(t) for t in self._queue)
