"""Timer facilities that drive playback ticks."""

from __future__ import annotations

import asyncio
import heapq
import itertools
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None:
        """Prevent the callback from running if it has not run yet."""


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], object]) -> TimerHandle:
        """Run ``callback`` once after ``delay`` seconds."""


@dataclass(order=True)
class ManualTimer:
    due: float
    order: int
    callback: Callable[[], object] = field(compare=False)
    cancelled: bool = field(default=False, compare=False)

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Deterministic scheduler advanced explicitly by the caller."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = float(start)
        self._queue: list[ManualTimer] = []
        self._counter = itertools.count()

    def time(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], object]) -> ManualTimer:
        timer = ManualTimer(self._now + max(float(delay), 0.0), next(self._counter), callback)
        heapq.heappush(self._queue, timer)
        return timer

    @property
    def pending(self) -> int:
        return sum(1 for timer in self._queue if not timer.cancelled)

    def run_next(self) -> bool:
        """Jump to the next due timer and run it. Returns False when idle."""

        while self._queue:
            timer = heapq.heappop(self._queue)
            if timer.cancelled:
                continue
            self._now = max(self._now, timer.due)
            timer.callback()
            return True
        return False

    def advance(self, seconds: float) -> int:
        """Move the clock forward, running every timer that falls due."""

        deadline = self._now + max(float(seconds), 0.0)
        ran = 0
        while self._queue:
            timer = self._queue[0]
            if timer.cancelled:
                heapq.heappop(self._queue)
                continue
            if timer.due > deadline:
                break
            heapq.heappop(self._queue)
            self._now = max(self._now, timer.due)
            timer.callback()
            ran += 1
        self._now = deadline
        return ran


def ensure_scheduler(scheduler: Scheduler | None) -> Scheduler:
    if scheduler is not None:
        return scheduler
    return asyncio.get_running_loop()
