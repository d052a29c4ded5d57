# src/tab_relay/tasks/dispatch.py

from __future__ import annotations

"""
Dispatch service.

The façade the HTTP layer talks to. It composes:
- TaskQueue: pending tasks, pulled FIFO by the polling agent,
- RendezvousTable: submitters suspended until the agent reports back,
- TabStore: reconciled tab/window state, fed by task results and ambient events.

Every mutation runs synchronously on the event loop with no await in between, so
the queue and the rendezvous table always agree about which tasks exist.
"""

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from ..core.errors import ConflictError, ExecutionError, ShutdownError, ValidationError
from ..tabs.tab_models import TabInfo, TrackedTab
from ..tabs.tab_store import TabStore
from .rendezvous import DEFAULT_TIMEOUT_SECONDS, RendezvousTable
from .task_models import Task, TaskCommand, is_tab_id, parse_task
from .task_queue import TaskQueue

logger = logging.getLogger(__name__)


def tab_info_from_result(data: Any) -> TabInfo | None:
    """Result payloads of open-tab/find-tab (and ambient open/update/move events) carry tab identity."""
    if not isinstance(data, Mapping):
        return None
    tab_id = data.get("tabId")
    window_id = data.get("windowId")
    url = data.get("url")
    if is_tab_id(tab_id) and is_tab_id(window_id) and isinstance(url, str) and url:
        return TabInfo(tab_id=tab_id, window_id=window_id, url=url)
    return None


def closed_tab_from_result(data: Any) -> int | None:
    if not isinstance(data, Mapping):
        return None
    closed = data.get("closedTabId")
    return closed if is_tab_id(closed) else None


def parse_resync_tabs(tabs: Any) -> list[TabInfo]:
    if not isinstance(tabs, list):
        raise ValidationError("Invalid tabs format. Expected an array.")
    out: list[TabInfo] = []
    for i, item in enumerate(tabs):
        if isinstance(item, TabInfo):
            out.append(item)
            continue
        if not isinstance(item, Mapping):
            raise ValidationError(f"Invalid tab at index {i}. Expected an object.")
        tab_id = item.get("tabId")
        window_id = item.get("windowId")
        url = item.get("url")
        if not is_tab_id(tab_id) or not is_tab_id(window_id):
            raise ValidationError(f"Invalid tab at index {i}. 'tabId' and 'windowId' must be numbers.")
        if url is not None and not isinstance(url, str):
            raise ValidationError(f"Invalid tab at index {i}. 'url' must be a string.")
        out.append(TabInfo(tab_id=tab_id, window_id=window_id, url=url or ""))
    return out


class DispatchService:
    def __init__(
        self,
        tab_store: TabStore,
        *,
        task_timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        queue: TaskQueue | None = None,
        rendezvous: RendezvousTable | None = None,
    ) -> None:
        self.tab_store = tab_store
        self.queue = queue if queue is not None else TaskQueue()
        self.rendezvous = rendezvous if rendezvous is not None else RendezvousTable(
            default_timeout=task_timeout_seconds
        )
        self.task_timeout_seconds = float(task_timeout_seconds)
        self._closed = False

    @property
    def queued_count(self) -> int:
        return len(self.queue)

    @property
    def pending_count(self) -> int:
        return len(self.rendezvous)

    # ---- submitter side ----

    def _admit(self, spec: Mapping[str, Any] | Task) -> Task:
        if self._closed:
            raise ShutdownError("Dispatch service is shutting down.")

        task = spec if isinstance(spec, Task) else parse_task(spec)

        if task.command == TaskCommand.SWITCH_TAB and self.queue.contains(
            lambda t: t.command == TaskCommand.SWITCH_TAB and t.tab_id == task.tab_id
        ):
            raise ConflictError(f"A switch-tab task for tabId {task.tab_id} is already pending.")

        if task.id in self.rendezvous or self.queue.contains(lambda t: t.id == task.id):
            raise ConflictError(f"Task {task.id} is already pending.")

        return task

    async def submit_task(
        self, spec: Mapping[str, Any] | Task, *, timeout: float | None = None
    ) -> tuple[Task, Any]:
        """
        Enqueue a task and suspend until the agent reports on it.

        Returns (task, result data). Raises:
        - ValidationError / ConflictError before anything is enqueued,
        - ExecutionError when the agent reports a failure,
        - TaskTimeoutError when nothing is reported in time,
        - ShutdownError when the service closes while waiting.
        """
        task = self._admit(spec)

        self.queue.submit(task)
        future = self.rendezvous.register_wait(task.id, self.task_timeout_seconds if timeout is None else timeout)
        logger.info("Added task %s command=%s", task.id, task.command.value)

        try:
            result = await future
        except asyncio.CancelledError:
            self.rendezvous.discard(task.id)
            raise
        return task, result

    # ---- agent side ----

    def pull_next_task(self) -> Task | None:
        task = self.queue.take_next()
        if task is None:
            logger.debug("No tasks available to provide")
        else:
            logger.info("Providing next task %s command=%s", task.id, task.command.value)
        return task

    def apply_result(self, data: Any) -> None:
        """Reconcile the tab store with whatever tab identity a report carries."""
        info = tab_info_from_result(data)
        if info is not None:
            self.tab_store.upsert_tab(info.tab_id, info.window_id, info.url)

        closed = closed_tab_from_result(data)
        if closed is not None:
            self.tab_store.remove_tab(closed)

    def report_success(self, task_id: str, data: Any) -> bool:
        logger.info("Task %s completed successfully", task_id)
        self.apply_result(data)

        resolved = self.rendezvous.resolve(task_id, data)
        if not resolved:
            logger.debug("Report for task %s has no waiter (ambient event or late report)", task_id)
        return resolved

    def report_failure(self, task_id: str, message: str) -> bool:
        logger.error("Task %s failed with error: %s", task_id, message)
        return self.rendezvous.reject(task_id, ExecutionError(str(message)))

    def resync(self, tabs: Any) -> list[TabInfo]:
        parsed = parse_resync_tabs(tabs)
        self.tab_store.replace_all(parsed)
        logger.info("Synchronized %d tabs from the agent", len(parsed))
        return parsed

    def list_tabs(self) -> list[TrackedTab]:
        return self.tab_store.list_tabs()

    # ---- lifecycle ----

    async def close(self) -> None:
        """Fail every outstanding submitter, then wait for the last snapshot write."""
        self._closed = True
        self.rendezvous.reject_all(ShutdownError("Dispatch service shut down before the task completed."))
        await self.tab_store.flush()
