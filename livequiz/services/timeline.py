"""Cooperative event timeline driving one learner runtime."""

from __future__ import annotations

import heapq
import itertools
import time
from typing import Callable


class ScheduledCall:
    """Handle for a delayed callback; cancel() is idempotent."""

    __slots__ = ("due", "callback", "cancelled")

    def __init__(self, due: float, callback: Callable[[], None]) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class Timeline:
    """
    Single-threaded scheduler: callbacks run only from run_due(), in due order.
    The clock is injectable so tests can advance time deterministically.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._queue: list[tuple[float, int, ScheduledCall]] = []
        self._counter = itertools.count()

    def now(self) -> float:
        return self._clock()

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledCall:
        call = ScheduledCall(self._clock() + max(0.0, delay), callback)
        heapq.heappush(self._queue, (call.due, next(self._counter), call))
        return call

    def run_due(self) -> int:
        """Run every callback whose due time has passed; returns how many ran."""
        ran = 0
        now = self._clock()
        while self._queue and self._queue[0][0] <= now:
            _, _, call = heapq.heappop(self._queue)
            if call.cancelled:
                continue
            call.cancelled = True
            call.callback()
            ran += 1
        return ran

    def pending(self) -> int:
        return sum(1 for _, _, call in self._queue if not call.cancelled)

    def clear(self) -> None:
        for _, _, call in self._queue:
            call.cancel()
        self._queue.clear()
