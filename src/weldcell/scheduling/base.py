"""Timer contracts consumed by the simulation engine."""

from __future__ import annotations

from typing import Callable, Protocol

TimerCallback = Callable[[], None]


class TimerHandle(Protocol):
    """Cancel-able reference to a scheduled callback."""

    def cancel(self) -> None: ...

    def cancelled(self) -> bool: ...


class Scheduler(Protocol):
    """Single-threaded timer source with a monotonic millisecond clock."""

    def now_ms(self) -> int: ...

    def call_later(self, delay_ms: float, callback: TimerCallback) -> TimerHandle: ...

    def call_every(self, period_ms: float, callback: TimerCallback) -> TimerHandle: ...


def validate_delay(delay_ms: float, *, field_name: str = "delay_ms") -> None:
    if delay_ms < 0:
        raise ValueError(f"{field_name} must be >= 0")


def validate_period(period_ms: float) -> None:
    if period_ms <= 0:
        raise ValueError("period_ms must be > 0")
