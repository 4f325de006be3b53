from __future__ import annotations

import asyncio

import pytest

from fleetreplay.services.playback.scheduler import ManualScheduler, ensure_scheduler


def test_advance_runs_due_callbacks_in_order() -> None:
    scheduler = ManualScheduler()
    calls: list[str] = []
    scheduler.call_later(2.0, lambda: calls.append("late"))
    scheduler.call_later(1.0, lambda: calls.append("early"))
    scheduler.call_later(1.0, lambda: calls.append("early-second"))

    assert scheduler.advance(1.5) == 2
    assert calls == ["early", "early-second"]
    assert scheduler.time() == 1.5
    assert scheduler.pending == 1


def test_cancelled_timer_never_runs() -> None:
    scheduler = ManualScheduler()
    calls: list[int] = []
    handle = scheduler.call_later(1.0, lambda: calls.append(1))
    handle.cancel()

    assert scheduler.pending == 0
    assert scheduler.advance(5.0) == 0
    assert scheduler.run_next() is False
    assert calls == []


def test_callbacks_scheduled_while_advancing_run_when_due() -> None:
    scheduler = ManualScheduler()
    calls: list[float] = []

    def _rearm() -> None:
        calls.append(scheduler.time())
        scheduler.call_later(1.0, _rearm)

    scheduler.call_later(1.0, _rearm)
    scheduler.advance(3.0)

    assert calls == [1.0, 2.0, 3.0]
    assert scheduler.pending == 1


def test_run_next_jumps_clock() -> None:
    scheduler = ManualScheduler(start=10.0)
    calls: list[float] = []
    scheduler.call_later(4.0, lambda: calls.append(scheduler.time()))

    assert scheduler.run_next() is True
    assert calls == [14.0]


def test_ensure_scheduler_prefers_explicit_instance() -> None:
    scheduler = ManualScheduler()
    assert ensure_scheduler(scheduler) is scheduler


def test_ensure_scheduler_outside_loop_raises() -> None:
    with pytest.raises(RuntimeError):
        ensure_scheduler(None)


@pytest.mark.asyncio
async def test_ensure_scheduler_uses_running_loop() -> None:
    assert ensure_scheduler(None) is asyncio.get_running_loop()
