# tests/test_rendezvous.py

from __future__ import annotations

import asyncio

import pytest

from tab_relay.core.errors import ConflictError, ExecutionError, ShutdownError, TaskTimeoutError
from tab_relay.tasks.rendezvous import RendezvousTable


@pytest.mark.asyncio
async def test_resolve_completes_wait_once() -> None:
    table = RendezvousTable()
    fut = table.register_wait("t1", timeout=5)
    assert "t1" in table

    assert table.resolve("t1", {"ok": 1}) is True
    assert await fut == {"ok": 1}
    assert "t1" not in table

    # double report: silent no-op
    assert table.resolve("t1", {"ok": 2}) is False
    assert table.reject("t1", ExecutionError("late")) is False


@pytest.mark.asyncio
async def test_reject_propagates_error() -> None:
    table = RendezvousTable()
    fut = table.register_wait("t1", timeout=5)

    table.reject("t1", ExecutionError("No tab with id: 9."))
    with pytest.raises(ExecutionError, match="No tab with id: 9."):
        await fut
    assert len(table) == 0


@pytest.mark.asyncio
async def test_unknown_id_is_noop() -> None:
    table = RendezvousTable()
    assert table.resolve("auto-open-1-123", {}) is False
    assert table.reject("missing", ExecutionError("x")) is False


@pytest.mark.asyncio
async def test_timeout_rejects_and_removes_entry() -> None:
    table = RendezvousTable()
    loop = asyncio.get_running_loop()
    started = loop.time()
    fut = table.register_wait("slow", timeout=0.05)

    with pytest.raises(TaskTimeoutError):
        await fut
    assert loop.time() - started >= 0.04  # loop clock resolution slack
    assert "slow" not in table

    # a report arriving after the timeout changes nothing
    assert table.resolve("slow", {"late": True}) is False


@pytest.mark.asyncio
async def test_resolved_wait_never_times_out() -> None:
    table = RendezvousTable()
    fut = table.register_wait("t1", timeout=0.02)
    table.resolve("t1", "done")
    await asyncio.sleep(0.05)
    assert await fut == "done"


@pytest.mark.asyncio
async def test_duplicate_registration_conflicts() -> None:
    table = RendezvousTable()
    table.register_wait("t1", timeout=5)
    with pytest.raises(ConflictError):
        table.register_wait("t1", timeout=5)
    table.discard("t1")
    assert len(table) == 0


@pytest.mark.asyncio
async def test_reject_all_fails_every_waiter() -> None:
    table = RendezvousTable()
    futs = [table.register_wait(f"t{i}", timeout=5) for i in range(3)]

    assert table.reject_all(ShutdownError("bye")) == 3
    for fut in futs:
        with pytest.raises(ShutdownError):
            await fut
    assert len(table) == 0
