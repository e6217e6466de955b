"""Bounded telemetry history for trend detection and chart sinks."""

from __future__ import annotations

from collections import deque
from typing import Iterator

import numpy as np
import numpy.typing as npt

from weldcell.domain.models import Channel, TelemetrySnapshot


class TelemetryHistory:
    """Fixed-capacity sequence of snapshots; the oldest entry is evicted on overflow."""

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be > 0")
        self._entries: deque[TelemetrySnapshot] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._entries.maxlen or 0

    def append(self, snapshot: TelemetrySnapshot) -> None:
        self._entries.append(snapshot)

    def latest(self) -> TelemetrySnapshot | None:
        return self._entries[-1] if self._entries else None

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[TelemetrySnapshot]:
        return iter(self._entries)

    def as_series(self, channel: Channel) -> npt.NDArray[np.float64]:
        """Channel values oldest-first, for chart rendering."""
        return np.array([entry.sensors.get(channel) for entry in self._entries], dtype=np.float64)

    def stability_series(self) -> npt.NDArray[np.float64]:
        return np.array([entry.stability for entry in self._entries], dtype=np.float64)
