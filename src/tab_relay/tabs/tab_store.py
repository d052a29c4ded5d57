# src/tab_relay/tabs/tab_store.py

from __future__ import annotations

import contextlib
import json
import logging
import os
from collections.abc import Iterable, Mapping
from dataclasses import replace
from pathlib import Path
from typing import Any

from .coalescer import WriteCoalescer
from .tab_models import TabInfo, TrackedTab, TrackedWindow, utc_now_iso

logger = logging.getLogger(__name__)


class TabStore:
    """
    Reconciled snapshot of the agent's tabs and windows, mirrored to a JSON file.

    Invariants:
    - every tab is listed in exactly its own window's tab list
    - a window with no tabs does not exist

    In-memory state is authoritative. Each mutation schedules a coalesced write of
    `{"openedTabs": [...], "openedWindows": [...]}`; write failures are only logged.
    Mutations are expected to run on a single event loop (or a single thread).
    """

    def __init__(self, snapshot_path: str | Path | None = "openedTabs.json") -> None:
        self._path = Path(snapshot_path) if snapshot_path is not None else None
        self._tabs: dict[int, TrackedTab] = {}
        self._windows: dict[int, TrackedWindow] = {}
        self._saver: WriteCoalescer[dict[str, Any]] = WriteCoalescer(
            self.snapshot, self._write_snapshot, name="tab snapshot"
        )
        if self._path is not None:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._load()

    @property
    def saver(self) -> WriteCoalescer[dict[str, Any]]:
        return self._saver

    # ---- persistence ----

    def _load(self) -> None:
        if self._path is None or not self._path.exists():
            return
        try:
            data = json.loads(self._path.read_text("utf-8"))
            if not isinstance(data, dict):
                raise ValueError("Expected JSON object")
            tabs = [TrackedTab.from_wire(t) for t in data.get("openedTabs") or [] if isinstance(t, dict)]
            window_opened = {
                int(w["windowId"]): str(w.get("openedAt") or "")
                for w in data.get("openedWindows") or []
                if isinstance(w, dict) and "windowId" in w
            }
        except Exception:
            logger.exception("Failed to read tab snapshot %s; starting empty", self._path)
            return

        # Membership is rebuilt from the tabs so the invariant holds for any file.
        for tab in tabs:
            self._tabs[tab.tab_id] = tab
            self._attach(tab.tab_id, tab.window_id, window_opened.get(tab.window_id) or tab.opened_at)
        logger.info(
            "Loaded %d tabs and %d windows from %s", len(self._tabs), len(self._windows), self._path
        )

    def snapshot(self) -> dict[str, Any]:
        return {
            "openedTabs": [t.to_wire() for t in self._tabs.values()],
            "openedWindows": [w.to_wire() for w in self._windows.values()],
        }

    def _write_snapshot(self, doc: dict[str, Any]) -> None:
        if self._path is None:
            return
        tmp = self._path.with_suffix(".tmp")
        tmp.write_text(json.dumps(doc, ensure_ascii=False, indent=2), "utf-8")
        os.replace(tmp, self._path)

    def _schedule_save(self) -> None:
        self._saver.schedule()

    async def flush(self) -> None:
        await self._saver.flush()

    # ---- membership helpers ----

    def _attach(self, tab_id: int, window_id: int, opened_at: str) -> None:
        window = self._windows.get(window_id)
        if window is None:
            self._windows[window_id] = TrackedWindow(window_id=window_id, opened_at=opened_at, tab_ids=[tab_id])
            logger.debug("Created window %s with tab %s", window_id, tab_id)
        elif tab_id not in window.tab_ids:
            window.tab_ids.append(tab_id)

    def _detach(self, tab_id: int, window_id: int) -> None:
        window = self._windows.get(window_id)
        if window is None:
            return
        with contextlib.suppress(ValueError):
            window.tab_ids.remove(tab_id)
        if not window.tab_ids:
            del self._windows[window_id]
            logger.info("Removed window %s as it has no more tabs", window_id)

    # ---- public API ----

    def upsert_tab(self, tab_id: int, window_id: int, url: str) -> TrackedTab:
        now = utc_now_iso()
        tab = self._tabs.get(tab_id)
        if tab is not None:
            if tab.window_id != window_id:
                self._detach(tab_id, tab.window_id)
                logger.info("Moved tab %s from window %s to %s", tab_id, tab.window_id, window_id)
            tab.url = url
            tab.window_id = window_id
            tab.last_updated = now
            logger.info("Updated tab %s url=%s", tab_id, url)
        else:
            tab = TrackedTab(tab_id=tab_id, window_id=window_id, url=url, opened_at=now, last_updated=now)
            self._tabs[tab_id] = tab
            logger.info("Added tab %s window=%s url=%s", tab_id, window_id, url)

        self._attach(tab_id, window_id, now)
        self._schedule_save()
        return replace(tab)

    def remove_tab(self, tab_id: int) -> bool:
        tab = self._tabs.pop(tab_id, None)
        if tab is None:
            logger.warning("Attempted to remove non-existent tab %s", tab_id)
            return False

        self._detach(tab_id, tab.window_id)
        logger.info("Removed tab %s", tab_id)
        self._schedule_save()
        return True

    def replace_all(self, tabs: Iterable[TabInfo | Mapping[str, Any]]) -> int:
        """
        Discard the current snapshot and rebuild it from `tabs` (full resync).

        Last write wins: nothing of the previous state survives, timestamps included.
        A tab id listed twice keeps its last occurrence.
        """
        now = utc_now_iso()
        new_tabs: dict[int, TrackedTab] = {}
        for item in tabs:
            info = item if isinstance(item, TabInfo) else TabInfo(
                tab_id=int(item["tabId"]), window_id=int(item["windowId"]), url=str(item.get("url") or "")
            )
            new_tabs[info.tab_id] = TrackedTab(
                tab_id=info.tab_id, window_id=info.window_id, url=info.url, opened_at=now, last_updated=now
            )

        self._tabs = new_tabs
        self._windows = {}
        for tab in new_tabs.values():
            self._attach(tab.tab_id, tab.window_id, now)

        logger.info("Replaced all tabs and windows with %d tabs", len(new_tabs))
        self._schedule_save()
        return len(new_tabs)

    def clear_all(self) -> None:
        self._tabs = {}
        self._windows = {}
        logger.info("Cleared all tracked tabs and windows")
        self._schedule_save()

    def list_tabs(self) -> list[TrackedTab]:
        return [replace(t) for t in self._tabs.values()]

    def get_tab(self, tab_id: int) -> TrackedTab | None:
        tab = self._tabs.get(tab_id)
        return replace(tab) if tab is not None else None

    def list_windows(self) -> list[TrackedWindow]:
        return [replace(w, tab_ids=list(w.tab_ids)) for w in self._windows.values()]

    def get_window(self, window_id: int) -> TrackedWindow | None:
        window = self._windows.get(window_id)
        return replace(window, tab_ids=list(window.tab_ids)) if window is not None else None
