"""Real-time scheduler backed by an asyncio event loop."""

from __future__ import annotations

import asyncio

from weldcell.scheduling.base import TimerCallback, validate_delay, validate_period


class _PeriodicTimer:
    """Re-arms itself on absolute deadlines so ticks do not drift."""

    def __init__(self, loop: asyncio.AbstractEventLoop, period_s: float, callback: TimerCallback) -> None:
        self._loop = loop
        self._period_s = period_s
        self._callback = callback
        self._next_deadline = loop.time() + period_s
        self._cancelled = False
        self._handle: asyncio.TimerHandle = loop.call_at(self._next_deadline, self._run)

    def _run(self) -> None:
        if self._cancelled:
            return
        self._next_deadline += self._period_s
        self._handle = self._loop.call_at(self._next_deadline, self._run)
        self._callback()

    def cancel(self) -> None:
        self._cancelled = True
        self._handle.cancel()

    def cancelled(self) -> bool:
        return self._cancelled


class AsyncioScheduler:
    """Schedule engine callbacks on one asyncio loop.

    All callbacks execute on the loop thread, so engine state never sees
    concurrent mutation.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now_ms(self) -> int:
        return int(self.loop.time() * 1000)

    def call_later(self, delay_ms: float, callback: TimerCallback) -> asyncio.TimerHandle:
        validate_delay(delay_ms)
        return self.loop.call_later(delay_ms / 1000.0, callback)

    def call_every(self, period_ms: float, callback: TimerCallback) -> _PeriodicTimer:
        validate_period(period_ms)
        return _PeriodicTimer(self.loop, period_ms / 1000.0, callback)
