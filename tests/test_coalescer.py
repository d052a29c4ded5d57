# tests/test_coalescer.py

from __future__ import annotations

import asyncio
import logging
import threading

import pytest

from tab_relay.tabs.coalescer import WriteCoalescer


@pytest.mark.asyncio
async def test_burst_during_write_collapses_into_one_follow_up() -> None:
    started = threading.Event()
    release = threading.Event()
    written: list[dict[str, int]] = []
    state = {"n": 0}

    def write(doc: dict[str, int]) -> None:
        started.set()
        release.wait(5)
        written.append(doc)

    saver = WriteCoalescer(lambda: dict(state), write, name="test")
    saver.schedule()
    assert await asyncio.to_thread(started.wait, 5)

    for i in range(1, 6):
        state["n"] = i
        saver.schedule()
    assert saver.in_flight

    release.set()
    await saver.flush()

    assert written == [{"n": 0}, {"n": 5}]
    assert saver.writes == 2
    assert not saver.in_flight


@pytest.mark.asyncio
async def test_failed_write_is_logged_and_next_schedule_retries(caplog: pytest.LogCaptureFixture) -> None:
    calls = {"n": 0}
    written: list[int] = []

    def write(doc: int) -> None:
        calls["n"] += 1
        if calls["n"] == 1:
            raise OSError("disk full")
        written.append(doc)

    saver = WriteCoalescer(lambda: calls["n"], write, name="flaky")

    with caplog.at_level(logging.ERROR, logger="tab_relay.tabs.coalescer"):
        saver.schedule()
        await saver.flush()
    assert "Failed to save flaky" in caplog.text
    assert saver.writes == 0

    saver.schedule()
    await saver.flush()
    assert written == [1]


def test_schedule_without_loop_writes_inline() -> None:
    written: list[str] = []
    saver = WriteCoalescer(lambda: "doc", written.append)

    saver.schedule()
    saver.schedule()

    assert written == ["doc", "doc"]
