# src/tab_relay/api/schemas.py

"""Request bodies of the HTTP API (wire names are camelCase, as the extension sends them)."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, StrictInt, StrictStr


class _Body(BaseModel):
    model_config = ConfigDict(extra="ignore")


class AddTaskRequest(_Body):
    # command is checked by the dispatch service so unknown commands get a domain error message.
    taskId: StrictStr | None = None
    command: StrictStr | None = None
    url: StrictStr | None = None
    jsFunction: StrictStr | None = None
    tabId: StrictInt | None = None


class SwitchTabRequest(_Body):
    tabId: StrictInt


class ExecuteJsRequest(_Body):
    tabId: StrictInt
    jsFunction: StrictStr


class ReportResultRequest(_Body):
    taskId: StrictStr
    data: Any = None


class ReportErrorRequest(_Body):
    taskId: StrictStr
    error: Any = None


class SyncTabsRequest(_Body):
    tabs: Any = None
