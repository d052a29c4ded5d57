# src/tab_relay/tabs/tab_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(slots=True, frozen=True)
class TabInfo:
    """A tab as the agent sees it: identity plus current URL."""

    tab_id: int
    window_id: int
    url: str

    def to_wire(self) -> dict[str, Any]:
        return {"tabId": self.tab_id, "windowId": self.window_id, "url": self.url}


@dataclass(slots=True)
class TrackedTab:
    tab_id: int
    window_id: int
    url: str
    opened_at: str
    last_updated: str

    def to_wire(self) -> dict[str, Any]:
        return {
            "tabId": self.tab_id,
            "windowId": self.window_id,
            "url": self.url,
            "openedAt": self.opened_at,
            "lastUpdated": self.last_updated,
        }

    @classmethod
    def from_wire(cls, raw: dict[str, Any]) -> TrackedTab:
        now = utc_now_iso()
        opened_at = str(raw.get("openedAt") or now)
        return cls(
            tab_id=int(raw["tabId"]),
            window_id=int(raw["windowId"]),
            url=str(raw.get("url") or ""),
            opened_at=opened_at,
            last_updated=str(raw.get("lastUpdated") or opened_at),
        )


@dataclass(slots=True)
class TrackedWindow:
    window_id: int
    opened_at: str
    # ordered, no duplicates
    tab_ids: list[int] = field(default_factory=list)

    def to_wire(self) -> dict[str, Any]:
        return {"windowId": self.window_id, "tabs": list(self.tab_ids), "openedAt": self.opened_at}
