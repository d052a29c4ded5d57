# src/tab_relay/agent/executor.py

from __future__ import annotations

import fnmatch
import logging
from typing import Any

from ..core.errors import ExecutionError, NotFoundError
from ..core.ports import BrowserBackend
from ..tasks.task_models import TaskCommand, is_tab_id

logger = logging.getLogger(__name__)


def _require_tab_id(task: dict[str, Any], command: TaskCommand) -> int:
    tab_id = task.get("tabId")
    if not is_tab_id(tab_id):
        raise ExecutionError(f"No tabId provided to {command.value} command")
    return tab_id


def _url_matches(url: str, pattern: str) -> bool:
    return url == pattern or fnmatch.fnmatchcase(url, pattern)


async def execute_task(task: dict[str, Any], backend: BrowserBackend) -> dict[str, Any]:
    """
    Run one wire-shaped task against the browser and return the result payload.

    Result payloads double as state updates on the server:
    - {tabId, windowId, url} for open-tab / find-tab
    - {closedTabId} for close-tab

    Any failure is raised as ExecutionError with a message suitable for reporting.
    """
    raw_command = task.get("command")
    try:
        command = TaskCommand(raw_command)
    except ValueError:
        raise ExecutionError(f"Unknown command: {raw_command}") from None

    try:
        if command == TaskCommand.OPEN_TAB:
            url = task.get("url")
            if not isinstance(url, str) or not url:
                raise ExecutionError("No url provided to open-tab command")
            info = await backend.open_tab(url)
            return info.to_wire()

        if command == TaskCommand.CLOSE_TAB:
            tab_id = _require_tab_id(task, command)
            await backend.close_tab(tab_id)
            return {"closedTabId": tab_id}

        if command == TaskCommand.SWITCH_TAB:
            tab_id = _require_tab_id(task, command)
            if await backend.get_tab(tab_id) is None:
                raise NotFoundError(f"Tab with ID {tab_id} does not exist.")
            await backend.activate_tab(tab_id)
            return {"switchedToTabId": tab_id}

        if command == TaskCommand.EXECUTE_JS:
            tab_id = _require_tab_id(task, command)
            script = task.get("jsFunction")
            if not isinstance(script, str) or not script:
                raise ExecutionError("No jsFunction provided for execution")
            return {"result": await backend.execute_script(tab_id, script)}

        # find-tab
        pattern = task.get("url")
        if not isinstance(pattern, str) or not pattern:
            raise ExecutionError("No url provided to find-tab command")
        for info in await backend.list_tabs():
            if _url_matches(info.url, pattern):
                await backend.activate_tab(info.tab_id)
                return info.to_wire()
        raise NotFoundError(f"No tab matches {pattern}")

    except ExecutionError:
        raise
    except NotFoundError as e:
        raise ExecutionError(e.message) from e
    except Exception as e:
        target = task.get("tabId")
        where = f" in tab {target}" if target is not None else ""
        raise ExecutionError(f"Failed to {command.value}{where}: {e}") from e
