"""Deterministic virtual-time scheduler for headless runs and tests."""

from __future__ import annotations

import heapq
import itertools
from dataclasses import dataclass, field

from weldcell.scheduling.base import TimerCallback, validate_delay, validate_period


@dataclass(slots=True, eq=False)
class VirtualTimer:
    """Timer entry owned by a `VirtualScheduler`."""

    callback: TimerCallback
    due_ms: float
    period_ms: float | None = None
    _cancelled: bool = field(default=False, repr=False)

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled


class VirtualScheduler:
    """Run timer callbacks against a manually advanced clock.

    Callbacks due at the same instant run in the order they were scheduled,
    which mirrors a single-threaded event queue.
    """

    def __init__(self, start_ms: int = 0) -> None:
        self._now_ms = float(start_ms)
        self._queue: list[tuple[float, int, VirtualTimer]] = []
        self._sequence = itertools.count()

    def now_ms(self) -> int:
        return int(self._now_ms)

    def call_later(self, delay_ms: float, callback: TimerCallback) -> VirtualTimer:
        validate_delay(delay_ms)
        timer = VirtualTimer(callback=callback, due_ms=self._now_ms + delay_ms)
        self._push(timer)
        return timer

    def call_every(self, period_ms: float, callback: TimerCallback) -> VirtualTimer:
        validate_period(period_ms)
        timer = VirtualTimer(callback=callback, due_ms=self._now_ms + period_ms, period_ms=period_ms)
        self._push(timer)
        return timer

    def pending_count(self) -> int:
        """Number of timers that are still armed."""
        return sum(1 for _, _, timer in self._queue if not timer.cancelled())

    def advance(self, delta_ms: float) -> int:
        """Move the clock forward and fire every timer that falls due."""
        validate_delay(delta_ms, field_name="delta_ms")
        return self.run_until(self._now_ms + delta_ms)

    def run_until(self, target_ms: float) -> int:
        """Fire timers due at or before `target_ms`; returns the number fired."""
        if target_ms < self._now_ms:
            raise ValueError("target_ms cannot be earlier than the current time")

        fired = 0
        while self._queue and self._queue[0][0] <= target_ms:
            due_ms, _, timer = heapq.heappop(self._queue)
            if timer.cancelled():
                continue
            self._now_ms = due_ms
            if timer.period_ms is not None:
                timer.due_ms = due_ms + timer.period_ms
                self._push(timer)
            timer.callback()
            fired += 1
        self._now_ms = target_ms
        return fired

    def _push(self, timer: VirtualTimer) -> None:
        heapq.heappush(self._queue, (timer.due_ms, next(self._sequence), timer))
