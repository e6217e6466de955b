"""Fire-and-forget fan-out of telemetry snapshots."""

from __future__ import annotations

import logging
from typing import Callable

from weldcell.domain.models import TelemetrySnapshot

logger = logging.getLogger(__name__)

TelemetrySubscriber = Callable[[TelemetrySnapshot], None]


class TelemetryPublisher:
    """Observer list for passive snapshot consumers (renderer, charts, assistant)."""

    def __init__(self) -> None:
        self._subscribers: list[TelemetrySubscriber] = []

    def subscribe(self, subscriber: TelemetrySubscriber) -> None:
        if subscriber not in self._subscribers:
            self._subscribers.append(subscriber)

    def unsubscribe(self, subscriber: TelemetrySubscriber) -> None:
        if subscriber in self._subscribers:
            self._subscribers.remove(subscriber)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, snapshot: TelemetrySnapshot) -> None:
        for subscriber in tuple(self._subscribers):
            try:
                subscriber(snapshot)
            except Exception:
                logger.exception("telemetry subscriber %r failed on tick %d", subscriber, snapshot.tick)
