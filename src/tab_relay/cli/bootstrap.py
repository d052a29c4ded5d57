# src/tab_relay/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- ensures local (gitignored) directories exist,
- wires TabStore and DispatchService from settings,
- builds the FastAPI app around them,
- runs the polling agent against an injected browser backend.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI

from ..agent.client import RelayClient
from ..agent.poller import run_agent_poller
from ..api.server import create_app
from ..config import get_settings
from ..core.ports import BrowserBackend, RelayTransport
from ..tabs.tab_store import TabStore
from ..tasks.dispatch import DispatchService

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.snapshot_path.parent.mkdir(parents=True, exist_ok=True)


def create_dispatch_service(*, settings=None) -> DispatchService:
    """
    Build a DispatchService from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    tab_store = TabStore(settings.snapshot_path)
    service = DispatchService(tab_store, task_timeout_seconds=float(settings.task_timeout_seconds))
    logger.info(
        "Dispatch service ready snapshot=%s timeout=%.1fs",
        settings.snapshot_path,
        float(settings.task_timeout_seconds),
    )
    return service


def create_relay_app(*, settings=None) -> FastAPI:
    return create_app(create_dispatch_service(settings=settings))


async def run_agent(
        backend: BrowserBackend,
        *,
        settings=None,
        client: RelayTransport | None = None,
        sync_on_start: bool = True,
) -> None:
    """
    Run the polling agent until cancelled.

    The browser backend is always injected. When no client is given, a RelayClient is
    built from settings and closed when the poller stops.
    """
    if settings is None:
        settings = get_settings()

    interval = float(getattr(settings, "poll_interval_seconds", 3.0))
    if client is not None:
        await run_agent_poller(client, backend, interval_seconds=interval, sync_on_start=sync_on_start)
        return

    async with RelayClient.from_settings(settings) as relay:
        logger.info("Agent polling %s", settings.api_base_url)
        await run_agent_poller(relay, backend, interval_seconds=interval, sync_on_start=sync_on_start)
