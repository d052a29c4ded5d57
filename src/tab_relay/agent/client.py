# src/tab_relay/agent/client.py

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..tabs.tab_models import TabInfo

logger = logging.getLogger(__name__)


class RelayClient:
    """
    httpx client for the relay API, used by the agent.

    Transport errors and non-2xx statuses propagate as httpx exceptions; the poller
    decides whether to retry (fetch) or just log (reports).
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings, *, transport: httpx.AsyncBaseTransport | None = None) -> RelayClient:
        return cls(
            str(getattr(settings, "api_base_url", "http://localhost:3000")),
            timeout=float(getattr(settings, "http_timeout_seconds", 10.0)),
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> RelayClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def fetch_task(self) -> dict[str, Any] | None:
        """Next task as a wire dict, or None when the server has nothing queued."""
        resp = await self._client.get("/get-task")
        resp.raise_for_status()
        task = resp.json()
        if not isinstance(task, dict) or not task.get("taskId"):
            return None
        return task

    async def report_result(self, task_id: str, data: Any) -> None:
        resp = await self._client.post("/report-result", json={"taskId": task_id, "data": data})
        resp.raise_for_status()
        logger.debug("Reported result for task %s", task_id)

    async def report_error(self, task_id: str, message: str) -> None:
        resp = await self._client.post("/report-result/error", json={"taskId": task_id, "error": message})
        resp.raise_for_status()
        logger.debug("Reported error for task %s", task_id)

    async def sync_tabs(self, tabs: list[TabInfo]) -> int:
        resp = await self._client.post("/sync-tabs", json={"tabs": [t.to_wire() for t in tabs]})
        resp.raise_for_status()
        body = resp.json()
        if not body.get("success"):
            raise RuntimeError(f"Sync opened tabs failed: {body.get('error')}")
        return len(body.get("syncedTabs") or [])
