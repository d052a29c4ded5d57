# src/tab_relay/agent/poller.py

"""
Agent poll loop and ambient event reporting.

The agent:
- resyncs its full tab list once at startup,
- every interval_seconds pulls one task, executes it and reports the outcome,
- forwards tab created/removed/updated/moved events as fire-and-forget reports.

Transport failures are logged and retried on the next tick; command failures are
reported as errors. Nothing here is allowed to kill the loop.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

import httpx

from ..core.errors import ExecutionError
from ..core.ports import BrowserBackend, RelayTransport
from .executor import execute_task

logger = logging.getLogger(__name__)


async def sync_opened_tabs(client: RelayTransport, backend: BrowserBackend) -> bool:
    """Push the browser's full tab list; the server replaces its snapshot with it."""
    try:
        tabs = await backend.list_tabs()
        synced = await client.sync_tabs(tabs)
        logger.info("Synced %d tabs with the server", synced)
        return True
    except Exception:
        logger.exception("Sync opened tabs failed")
        return False


async def poll_once(client: RelayTransport, backend: BrowserBackend) -> str | None:
    """
    One poll tick. Returns the id of the task handled, or None when there was nothing
    to do (or the fetch failed and will be retried next tick).
    """
    try:
        task = await client.fetch_task()
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("Failed to fetch task: %r", e)
        return None

    if task is None:
        logger.debug("No task available at this time")
        return None

    task_id = str(task.get("taskId"))
    logger.info("Executing task %s: %s", task_id, task.get("command"))

    try:
        result = await execute_task(task, backend)
    except ExecutionError as e:
        logger.warning("Task execution error for %s: %s", task_id, e.message)
        try:
            await client.report_error(task_id, e.message)
        except Exception:
            logger.exception("Failed to report error for task %s", task_id)
        return task_id

    try:
        await client.report_result(task_id, result)
        logger.info("Task %s executed successfully", task_id)
    except Exception:
        logger.exception("Failed to report result for task %s", task_id)
    return task_id


async def run_agent_poller(
        client: RelayTransport,
        backend: BrowserBackend,
        *,
        interval_seconds: float = 3.0,
        sync_on_start: bool = True,
) -> None:
    """
    Poll the relay forever.

    To stop the poller, cancel the coroutine/task.
    """
    sleep_s = max(0.01, float(interval_seconds))
    logger.info("Started polling every %.1f seconds", sleep_s)

    if sync_on_start:
        await sync_opened_tabs(client, backend)

    while True:
        try:
            await poll_once(client, backend)
        except Exception:
            # poll_once handles its own failures; this guards against backend surprises.
            logger.exception("Poll tick failed")
        await asyncio.sleep(sleep_s)


class AmbientReporter:
    """
    Turns browser tab events into one-shot reports nobody waits for.

    Each report gets a synthetic id (auto-<kind>-<tabId>-<ms>) so the server treats it
    as a pure state update. Report failures are logged, never raised.
    """

    def __init__(self, client: RelayTransport, backend: BrowserBackend) -> None:
        self._client = client
        self._backend = backend

    @staticmethod
    def _event_id(kind: str, tab_id: int) -> str:
        return f"auto-{kind}-{tab_id}-{int(time.time() * 1000)}"

    async def _send(self, kind: str, tab_id: int, data: dict[str, Any]) -> None:
        event_id = self._event_id(kind, tab_id)
        try:
            await self._client.report_result(event_id, data)
        except Exception:
            logger.exception("Failed to report %s event for tab %s", kind, tab_id)

    async def on_tab_created(self, tab_id: int, window_id: int, url: str) -> None:
        logger.info("Tab created: id=%s window=%s url=%s", tab_id, window_id, url)
        await self._send("open", tab_id, {"tabId": tab_id, "windowId": window_id, "url": url})

    async def on_tab_removed(self, tab_id: int) -> None:
        logger.info("Tab closed: id=%s", tab_id)
        await self._send("close", tab_id, {"closedTabId": tab_id})

    async def on_tab_updated(self, tab_id: int, window_id: int, changed_url: str | None) -> None:
        if not changed_url:
            return
        logger.info("Tab updated: id=%s url=%s", tab_id, changed_url)
        await self._send("update", tab_id, {"tabId": tab_id, "windowId": window_id, "url": changed_url})

    async def on_tab_moved(self, tab_id: int) -> None:
        try:
            info = await self._backend.get_tab(tab_id)
        except Exception:
            logger.exception("Error fetching moved tab %s", tab_id)
            return
        if info is None:
            logger.warning("Moved tab %s no longer exists", tab_id)
            return
        logger.info("Tab moved: id=%s window=%s", tab_id, info.window_id)
        await self._send("move", tab_id, info.to_wire())
