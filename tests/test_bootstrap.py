# tests/test_bootstrap.py

from __future__ import annotations

import asyncio
import logging
from types import SimpleNamespace

import httpx
import pytest

from tab_relay.agent.client import RelayClient
from tab_relay.cli.bootstrap import create_dispatch_service, create_relay_app, run_agent
from tab_relay.config import Settings
from tab_relay.logging_setup import _ConsoleNoiseFilter, setup_logging
from tab_relay.tabs.tab_models import TabInfo

from .fakes import FakeBrowser, FakeRelay


def test_settings_from_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    monkeypatch.setenv("RELAY_PORT", "4100")
    monkeypatch.setenv("RELAY_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("RELAY_TASK_TIMEOUT_SECONDS", "not-a-number")
    monkeypatch.setenv("RELAY_API_BASE_URL", "http://relay.local:4100/")
    monkeypatch.delenv("RELAY_SNAPSHOT_PATH", raising=False)

    s = Settings.from_env()

    assert s.port == 4100
    assert s.snapshot_path == tmp_path / "openedTabs.json"
    assert s.task_timeout_seconds == 30.0
    assert s.api_base_url == "http://relay.local:4100"
    assert s.poll_interval_seconds > 0


def test_create_dispatch_service_loads_existing_snapshot(settings: SimpleNamespace) -> None:
    first = create_dispatch_service(settings=settings)
    first.resync([{"tabId": 3, "windowId": 1, "url": "https://x"}])

    second = create_dispatch_service(settings=settings)

    assert [t.tab_id for t in second.list_tabs()] == [3]
    assert second.task_timeout_seconds == settings.task_timeout_seconds


@pytest.mark.asyncio
async def test_create_relay_app_serves_tabs(settings: SimpleNamespace) -> None:
    app = create_relay_app(settings=settings)
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://relay") as c:
        resp = await c.get("/opened-tabs")
    assert resp.json() == {"success": True, "tabs": []}
    await app.state.service.close()


def test_console_filter_keeps_own_logs_and_quiets_third_party() -> None:
    f = _ConsoleNoiseFilter()

    def rec(name: str, level: int) -> logging.LogRecord:
        return logging.LogRecord(name, level, __file__, 1, "msg", None, None)

    assert f.filter(rec("tab_relay.tasks.dispatch", logging.DEBUG))
    assert not f.filter(rec("uvicorn.access", logging.INFO))
    assert f.filter(rec("uvicorn.error", logging.INFO))
    assert not f.filter(rec("httpx", logging.INFO))
    assert f.filter(rec("httpx", logging.WARNING))


def test_setup_logging_writes_log_file(tmp_path) -> None:
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        setup_logging(log_dir=tmp_path, console_level=logging.WARNING)
        logging.getLogger("tab_relay.test").debug("hello file")
        for h in root.handlers:
            h.flush()
        assert "hello file" in (tmp_path / "server.log").read_text("utf-8")
    finally:
        for h in list(root.handlers):
            root.removeHandler(h)
            h.close()
        for h in saved_handlers:
            root.addHandler(h)
        root.setLevel(saved_level)
        logging.captureWarnings(False)


@pytest.mark.asyncio
async def test_relay_client_from_settings_targets_api_base_url(settings: SimpleNamespace) -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, json={})

    async with RelayClient.from_settings(settings, transport=httpx.MockTransport(handler)) as client:
        assert await client.fetch_task() is None

    assert seen == ["http://relay/get-task"]


async def _cancel(runner: asyncio.Task) -> None:
    runner.cancel()
    with pytest.raises(asyncio.CancelledError):
        await runner


@pytest.mark.asyncio
async def test_run_agent_polls_with_configured_interval(settings: SimpleNamespace) -> None:
    relay = FakeRelay(tasks=[{"taskId": "t1", "command": "switch-tab", "tabId": 1}])
    browser = FakeBrowser([TabInfo(tab_id=1, window_id=1, url="https://x")])

    runner = asyncio.create_task(run_agent(browser, settings=settings, client=relay))
    for _ in range(100):
        if relay.results:
            break
        await asyncio.sleep(0.01)
    await _cancel(runner)

    assert [[t.tab_id for t in batch] for batch in relay.synced] == [[1]]
    assert relay.results == [("t1", {"switchedToTabId": 1})]
    assert browser.active == 1


@pytest.mark.asyncio
async def test_run_agent_serves_relay_app_end_to_end(settings: SimpleNamespace) -> None:
    app = create_relay_app(settings=settings)
    service = app.state.service
    browser = FakeBrowser([TabInfo(tab_id=1, window_id=1, url="https://x")])

    async with RelayClient.from_settings(settings, transport=httpx.ASGITransport(app=app)) as client:
        runner = asyncio.create_task(run_agent(browser, settings=settings, client=client))
        try:
            task, result = await asyncio.wait_for(
                service.submit_task({"command": "open-tab", "url": "https://new"}), timeout=2.0
            )
        finally:
            await _cancel(runner)

    assert task.command == "open-tab"
    assert result == {"tabId": 101, "windowId": 1, "url": "https://new"}
    assert [t.tab_id for t in service.list_tabs()] == [1, 101]
    await service.close()
