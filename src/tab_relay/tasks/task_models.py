# src/tab_relay/tasks/task_models.py

from __future__ import annotations

import time
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from ..core.errors import ValidationError


class TaskCommand(StrEnum):
    """
    Commands the remote agent knows how to execute.

    Notes:
    - find-tab matches tabs by URL (exact or fnmatch glob) and activates the first hit.
    """

    OPEN_TAB = "open-tab"
    CLOSE_TAB = "close-tab"
    SWITCH_TAB = "switch-tab"
    EXECUTE_JS = "execute-js"
    FIND_TAB = "find-tab"

    @classmethod
    def parse(cls, raw: Any) -> TaskCommand:
        if not isinstance(raw, str) or not raw.strip():
            raise ValidationError("Missing 'command'.")
        try:
            return cls(raw.strip())
        except ValueError:
            raise ValidationError(f"Invalid command: {raw}") from None


# command -> wire fields that must be present
REQUIRED_FIELDS: dict[TaskCommand, tuple[str, ...]] = {
    TaskCommand.OPEN_TAB: ("url",),
    TaskCommand.CLOSE_TAB: ("tabId",),
    TaskCommand.SWITCH_TAB: ("tabId",),
    TaskCommand.EXECUTE_JS: ("tabId", "jsFunction"),
    TaskCommand.FIND_TAB: ("url",),
}


@dataclass(slots=True, frozen=True)
class Task:
    id: str
    command: TaskCommand
    tab_id: int | None = None
    url: str | None = None
    js_function: str | None = None

    def to_wire(self) -> dict[str, Any]:
        return {
            "taskId": self.id,
            "command": self.command.value,
            "tabId": self.tab_id,
            "url": self.url,
            "jsFunction": self.js_function,
        }


def new_task_id(prefix: str = "task") -> str:
    """Millisecond timestamp plus a random suffix: unique even for concurrent submissions."""
    return f"{prefix}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


def is_tab_id(value: Any) -> bool:
    # bool is an int subclass; a JSON `true` is not a tab id.
    return isinstance(value, int) and not isinstance(value, bool)


def _opt_str(spec: Mapping[str, Any], key: str) -> str | None:
    value = spec.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"Invalid '{key}'. It should be a string.")
    return value


def parse_task(spec: Mapping[str, Any]) -> Task:
    """
    Build a Task from a wire-shaped submission (`taskId`, `command`, `tabId`, `url`, `jsFunction`).

    Raises ValidationError when the command is unknown or a field the command needs is
    missing or has the wrong type. An id is generated when `taskId` is absent.
    """
    if not isinstance(spec, Mapping):
        raise ValidationError("Task submission must be an object.")

    command = TaskCommand.parse(spec.get("command"))

    tab_id = spec.get("tabId")
    if tab_id is not None and not is_tab_id(tab_id):
        raise ValidationError("Invalid 'tabId'. It should be a number.")

    url = _opt_str(spec, "url")
    js_function = _opt_str(spec, "jsFunction")
    values = {"tabId": tab_id, "url": url or None, "jsFunction": js_function or None}

    for field_name in REQUIRED_FIELDS[command]:
        if values[field_name] is None:
            raise ValidationError(f"Command '{command.value}' requires '{field_name}'.")

    task_id = _opt_str(spec, "taskId")
    task_id = (task_id or "").strip() or new_task_id()

    return Task(
        id=task_id,
        command=command,
        tab_id=tab_id,
        url=values["url"],
        js_function=values["jsFunction"],
    )
