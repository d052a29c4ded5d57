# src/tab_relay/tabs/coalescer.py

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class WriteCoalescer(Generic[T]):
    """
    Single-flight write-behind with latest-state superseding.

    - render(): builds the document to persist. Runs on the event loop when a write
      starts, so every write reflects the state at that moment.
    - write(doc): blocking persistence, run in a worker thread.

    While a write is in flight, any number of schedule() calls collapse into one
    follow-up write. Failures are logged and swallowed: the caller's in-memory state
    stays authoritative and the next schedule() tries again.
    """

    def __init__(self, render: Callable[[], T], write: Callable[[T], None], *, name: str = "store") -> None:
        self._render = render
        self._write = write
        self._name = name
        self._task: asyncio.Task[None] | None = None
        self._dirty = False
        self.writes = 0

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    def schedule(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No event loop (scripts, sync tests): write inline.
            self._write_once_sync()
            return

        if self.in_flight:
            self._dirty = True
            return

        self._dirty = False
        self._task = loop.create_task(self._run(), name=f"coalesced-write:{self._name}")

    async def flush(self) -> None:
        """Wait until nothing is being written and nothing is pending."""
        while self.in_flight:
            task = self._task
            if task is None:
                break
            await asyncio.shield(task)

    async def _run(self) -> None:
        while True:
            self._dirty = False
            doc = self._render()
            try:
                await asyncio.to_thread(self._write, doc)
                self.writes += 1
                logger.debug("Saved %s (write #%d)", self._name, self.writes)
            except Exception:
                logger.exception("Failed to save %s", self._name)
            if not self._dirty:
                return

    def _write_once_sync(self) -> None:
        try:
            self._write(self._render())
            self.writes += 1
        except Exception:
            logger.exception("Failed to save %s", self._name)
