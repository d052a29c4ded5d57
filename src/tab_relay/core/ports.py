# src/tab_relay/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the agent.

The agent depends on Protocols instead of concrete implementations.
This keeps the browser binding (extension bridge, CDP, test fake) swappable
and keeps the relay transport mockable in tests.
"""

from typing import Any, Protocol

from ..tabs.tab_models import TabInfo


class BrowserBackend(Protocol):
    """
    The raw tab API the agent drives.

    Methods raise NotFoundError for an unknown tab and any other exception for
    browser-side failures; the executor turns both into ExecutionError reports.
    """

    async def open_tab(self, url: str) -> TabInfo: ...
    async def close_tab(self, tab_id: int) -> None: ...
    async def activate_tab(self, tab_id: int) -> None: ...
    async def execute_script(self, tab_id: int, script: str) -> Any: ...
    async def get_tab(self, tab_id: int) -> TabInfo | None: ...
    async def list_tabs(self) -> list[TabInfo]: ...


class RelayTransport(Protocol):
    """Agent-side view of the relay server (implemented by RelayClient)."""

    async def fetch_task(self) -> dict[str, Any] | None: ...
    async def report_result(self, task_id: str, data: Any) -> None: ...
    async def report_error(self, task_id: str, message: str) -> None: ...
    async def sync_tabs(self, tabs: list[TabInfo]) -> int: ...
