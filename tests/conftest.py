# tests/conftest.py

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path
from types import SimpleNamespace

import pytest
import pytest_asyncio

from tab_relay.tabs.tab_store import TabStore
from tab_relay.tasks.dispatch import DispatchService


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with the bootstrap helpers.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the environment.
    """
    return SimpleNamespace(
        app_name="tab-relay-test",
        log_level="DEBUG",
        data_dir=tmp_path,
        snapshot_path=tmp_path / "openedTabs.json",
        task_timeout_seconds=2.0,
        api_base_url="http://relay",
        poll_interval_seconds=0.01,
        http_timeout_seconds=5.0,
    )


@pytest.fixture()
def tab_store(settings: SimpleNamespace) -> TabStore:
    return TabStore(settings.snapshot_path)


@pytest_asyncio.fixture()
async def service(settings: SimpleNamespace, tab_store: TabStore) -> AsyncIterator[DispatchService]:
    """
    DispatchService with a real TabStore on a tmp snapshot file.

    Closing on teardown fails leftover waits and drains the coalesced writer,
    so no write task outlives the test's event loop.
    """
    svc = DispatchService(tab_store, task_timeout_seconds=settings.task_timeout_seconds)
    yield svc
    await svc.close()
