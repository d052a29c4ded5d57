# src/tab_relay/tasks/rendezvous.py

from __future__ import annotations

"""
Rendezvous table.

Pairs an asynchronous completion report with the submitter suspended on it:
- register_wait() parks an asyncio.Future under the task id with a deadline,
- resolve()/reject() complete it when the agent reports back,
- the deadline timer rejects it with TaskTimeoutError if nobody reports.

Exactly one terminal transition happens per id; the entry is removed at that moment,
so a second report for the same id is a silent no-op (the network can double-report).
All methods must be called from the event loop that owns the futures.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from ..core.errors import ConflictError, TaskTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


@dataclass(slots=True)
class _PendingWait:
    task_id: str
    future: asyncio.Future[Any]
    deadline: float
    timer: asyncio.TimerHandle | None = None


class RendezvousTable:
    def __init__(self, *, default_timeout: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        self._default_timeout = float(default_timeout)
        self._waits: dict[str, _PendingWait] = {}

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._waits

    def __len__(self) -> int:
        return len(self._waits)

    def register_wait(self, task_id: str, timeout: float | None = None) -> asyncio.Future[Any]:
        """
        Create a pending wait for task_id and return its future.

        The future completes with the reported data, or fails with the rejection error
        or TaskTimeoutError once `timeout` seconds have passed.
        """
        if task_id in self._waits:
            raise ConflictError(f"Task {task_id} is already awaiting a result.")

        loop = asyncio.get_running_loop()
        seconds = self._default_timeout if timeout is None else max(0.0, float(timeout))

        wait = _PendingWait(task_id=task_id, future=loop.create_future(), deadline=loop.time() + seconds)
        wait.timer = loop.call_at(wait.deadline, self._expire, task_id, wait.future)
        self._waits[task_id] = wait

        logger.debug("Registered wait task_id=%s timeout=%.1fs", task_id, seconds)
        return wait.future

    def resolve(self, task_id: str, result: Any) -> bool:
        wait = self._pop(task_id)
        if wait is None:
            logger.debug("No pending wait for task_id=%s; result dropped", task_id)
            return False
        if not wait.future.done():
            wait.future.set_result(result)
        return True

    def reject(self, task_id: str, error: BaseException) -> bool:
        wait = self._pop(task_id)
        if wait is None:
            logger.debug("No pending wait for task_id=%s; error dropped", task_id)
            return False
        if not wait.future.done():
            wait.future.set_exception(error)
        return True

    def discard(self, task_id: str) -> None:
        """Forget a wait whose submitter is gone (e.g. its coroutine was cancelled)."""
        wait = self._pop(task_id)
        if wait is not None and not wait.future.done():
            wait.future.cancel()

    def reject_all(self, error: BaseException) -> int:
        ids = list(self._waits)
        for task_id in ids:
            self.reject(task_id, error)
        if ids:
            logger.warning("Rejected %d outstanding waits: %s", len(ids), error)
        return len(ids)

    def _pop(self, task_id: str) -> _PendingWait | None:
        wait = self._waits.pop(task_id, None)
        if wait is not None and wait.timer is not None:
            wait.timer.cancel()
        return wait

    def _expire(self, task_id: str, future: asyncio.Future[Any]) -> None:
        # Only expire the wait this timer was created for; the id may have been re-registered.
        wait = self._waits.get(task_id)
        if wait is None or wait.future is not future:
            return
        self._waits.pop(task_id, None)
        if not future.done():
            future.set_exception(TaskTimeoutError("Task timed out."))
        logger.warning("Task %s timed out waiting for a report", task_id)
