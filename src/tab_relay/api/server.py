# src/tab_relay/api/server.py

"""
HTTP API, FastAPI implementation.

Thin layer over DispatchService:
- the backend submits tasks and waits for their result (/add-task, /switch-tab, /execute-js),
- the agent polls (/get-task), reports (/report-result, /report-result/error)
  and resyncs its full tab list (/sync-tabs),
- anyone can read the tracked tabs (/opened-tabs).

Handlers are `async def` so every service call runs on the single event loop.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..core.errors import DispatchError
from ..tasks.dispatch import DispatchService
from ..tasks.task_models import new_task_id
from .schemas import (
    AddTaskRequest,
    ExecuteJsRequest,
    ReportErrorRequest,
    ReportResultRequest,
    SwitchTabRequest,
    SyncTabsRequest,
)

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc or 'body'}: {err.get('msg', 'invalid')}")
    return "Invalid request: " + "; ".join(parts) if parts else "Invalid request."


def create_app(service: DispatchService) -> FastAPI:
    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        logger.info("Relay API started")
        yield
        await service.close()
        logger.info("Relay API stopped")

    app = FastAPI(title="Tab Relay", version="0.1.0", lifespan=lifespan)
    app.state.service = service

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info("%s %s", request.method, request.url.path)
        if logger.isEnabledFor(logging.DEBUG):
            body = await request.body()
            if body:
                logger.debug("%s %s body=%s", request.method, request.url.path, body.decode("utf-8", "replace"))
        return await call_next(request)

    @app.exception_handler(DispatchError)
    async def dispatch_error_handler(request: Request, exc: DispatchError) -> JSONResponse:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return _error(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        message = _validation_message(exc)
        logger.warning("%s %s rejected: %s", request.method, request.url.path, message)
        return _error(400, message)

    async def _submit(spec: dict[str, Any]) -> dict[str, Any]:
        task, result = await service.submit_task(spec)
        return {"success": True, "task": task.to_wire(), "result": result}

    @app.post("/add-task")
    async def add_task(body: AddTaskRequest) -> dict[str, Any]:
        return await _submit(body.model_dump())

    @app.post("/switch-tab")
    async def switch_tab(body: SwitchTabRequest) -> dict[str, Any]:
        return await _submit(
            {"taskId": new_task_id(f"switch-tab-{body.tabId}"), "command": "switch-tab", "tabId": body.tabId}
        )

    @app.post("/execute-js")
    async def execute_js(body: ExecuteJsRequest) -> dict[str, Any]:
        return await _submit(
            {
                "taskId": new_task_id(f"execute-js-{body.tabId}"),
                "command": "execute-js",
                "tabId": body.tabId,
                "jsFunction": body.jsFunction,
            }
        )

    @app.get("/get-task")
    async def get_task() -> dict[str, Any]:
        task = service.pull_next_task()
        return task.to_wire() if task is not None else {}

    @app.post("/report-result")
    async def report_result(body: ReportResultRequest) -> dict[str, Any]:
        service.report_success(body.taskId, body.data)
        return {"success": True}

    @app.post("/report-result/error")
    async def report_error(body: ReportErrorRequest) -> dict[str, Any]:
        message = "Unknown error" if body.error is None else str(body.error)
        service.report_failure(body.taskId, message)
        return {"success": True}

    @app.post("/sync-tabs")
    async def sync_tabs(body: SyncTabsRequest) -> dict[str, Any]:
        synced = service.resync(body.tabs)
        return {"success": True, "syncedTabs": [t.to_wire() for t in synced]}

    @app.get("/opened-tabs")
    async def opened_tabs() -> dict[str, Any]:
        return {"success": True, "tabs": [t.to_wire() for t in service.list_tabs()]}

    return app
