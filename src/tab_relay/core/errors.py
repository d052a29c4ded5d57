# src/tab_relay/core/errors.py

"""
Domain errors shared by the dispatch service, the HTTP layer and the agent.

Each error carries the HTTP status the API answers with, so the server can map
any DispatchError to a `{success: false, error}` response in one place.
"""

from __future__ import annotations


class DispatchError(Exception):
    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(DispatchError):
    """Malformed submission or resync payload. Never retried."""

    status_code = 400


class ConflictError(DispatchError):
    """An equivalent task (same id, or switch-tab for the same target) is already in flight."""

    status_code = 409


class TaskTimeoutError(DispatchError):
    """No report arrived before the rendezvous deadline."""

    status_code = 504


class ExecutionError(DispatchError):
    """The remote executor failed the command; message is the executor's reason."""

    status_code = 500


class NotFoundError(DispatchError):
    status_code = 404


class ShutdownError(DispatchError):
    status_code = 503
