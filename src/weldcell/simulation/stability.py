"""Stability scoring and the operating-state machine."""

from __future__ import annotations

from weldcell.config import SimulationConfig
from weldcell.domain.models import Channel, ChannelStatus, ExcursionDirection, OperatingState, SensorReading
from weldcell.simulation.state import CellState


class StabilityScorer:
    """Derive a 0-100 stability score and operating state from channel readings."""

    def __init__(self, state: CellState, config: SimulationConfig) -> None:
        self._state = state
        self._config = config

    def classify(self, channel: Channel, value: float | None = None) -> ChannelStatus:
        """Classify a channel against its one-sided thresholds."""
        policy = self._config.channel(channel)
        reading = self._state.sensors.get(channel) if value is None else value

        if policy.direction == ExcursionDirection.HIGH:
            if reading >= policy.critical_threshold:
                return ChannelStatus.CRITICAL
            if reading >= policy.warning_threshold:
                return ChannelStatus.WARNING
            return ChannelStatus.NOMINAL

        if reading <= policy.critical_threshold:
            return ChannelStatus.CRITICAL
        if reading <= policy.warning_threshold:
            return ChannelStatus.WARNING
        return ChannelStatus.NOMINAL

    def statuses(self) -> dict[Channel, ChannelStatus]:
        return {channel: self.classify(channel) for channel in Channel}

    def any_critical(self) -> bool:
        return any(status == ChannelStatus.CRITICAL for status in self.statuses().values())

    def compute(self, previous: SensorReading | None, history_length: int) -> float:
        """Score the current readings and store the result on the cell state.

        `previous` is the most recent history entry; the trend penalty applies
        only once history holds at least two entries.
        """
        policy = self._config.stability
        statuses = self.statuses().values()
        score = 100.0

        if ChannelStatus.WARNING in statuses:
            score -= policy.penalty_warning
        if ChannelStatus.CRITICAL in statuses:
            score -= policy.penalty_critical
        if previous is not None and history_length >= 2 and self._worsening(previous):
            score -= policy.penalty_trend

        self._state.stability = max(0.0, min(100.0, score))
        return self._state.stability

    def _worsening(self, previous: SensorReading) -> bool:
        current = self._state.sensors
        for channel in Channel:
            policy = self._config.channel(channel)
            trend = current.get(channel) - previous.get(channel)
            value = current.get(channel)
            if policy.direction == ExcursionDirection.LOW and trend < 0 and value < policy.trend_limit:
                return True
            if policy.direction == ExcursionDirection.HIGH and trend > 0 and value > policy.trend_limit:
                return True
        return False

    def state_for_score(self, score: float) -> OperatingState:
        policy = self._config.stability
        if score >= policy.threshold_normal:
            return OperatingState.NORMAL
        if score >= policy.threshold_degraded:
            return OperatingState.DEGRADED
        return OperatingState.CRITICAL

    def update_state(self) -> OperatingState:
        """Apply the score-to-state mapping; PAUSED is left untouched."""
        state = self._state
        if state.paused:
            return state.operating_state

        state.operating_state = self.state_for_score(state.stability)
        if state.operating_state == OperatingState.NORMAL:
            state.stable_tick_count += 1
        else:
            state.stable_tick_count = 0
        return state.operating_state

    def check_auto_stop(self) -> bool:
        """Return True when the line has been CRITICAL long enough to force a pause."""
        policy = self._config.auto_stop
        if not policy.enabled:
            return False

        state = self._state
        if state.operating_state != OperatingState.CRITICAL:
            state.critical_tick_count = 0
            return False
        state.critical_tick_count += 1
        return state.critical_tick_count >= policy.critical_ticks
