"""Tick-driven model of the three sensor channels and the battery pair."""

from __future__ import annotations

import logging

import numpy as np

from weldcell.config import SimulationConfig
from weldcell.domain.models import Channel, ExcursionDirection, ScenarioKind
from weldcell.simulation.state import CellState

logger = logging.getLogger(__name__)


class SensorModel:
    """Advance sensor channels by one tick under the active fault and ambient noise."""

    def __init__(self, state: CellState, config: SimulationConfig, rng: np.random.Generator) -> None:
        self._state = state
        self._config = config
        self._rng = rng

    def update(self) -> None:
        state = self._state
        state.batteries = state.batteries.recharge_inactive(self._config.battery.recharge_per_tick)

        scenario = state.scenario
        if scenario.active:
            self._apply_fault(scenario.kind)

        for channel in Channel:
            policy = self._config.channel(channel)
            noise = (self._rng.random() - 0.5) * 2.0 * policy.noise_amplitude
            state.set_channel(channel, policy.clamp(state.sensors.get(channel) + noise))

        logger.debug(
            "sensors: P=%.1fkW Pr=%.1fbar T=%.1f°C scenario=%s",
            state.sensors.power,
            state.sensors.pressure,
            state.sensors.temperature,
            scenario.kind.value,
        )

    def _apply_fault(self, kind: ScenarioKind) -> None:
        state = self._state
        profile = self._config.fault(kind)
        policy = self._config.channel(profile.channel)

        step = float(self._rng.uniform(profile.min_step, profile.max_step))
        signed = -step if policy.direction == ExcursionDirection.LOW else step
        state.set_channel(profile.channel, state.sensors.get(profile.channel) + signed)

        if kind == ScenarioKind.POWER_SAG:
            battery = self._config.battery
            drain = float(self._rng.uniform(battery.drain_min, battery.drain_max))
            state.batteries = state.batteries.drain_active(drain)
            logger.debug(
                "power sag: %+.1f%s, %s battery at %.0f%%",
                signed,
                policy.unit,
                "backup" if state.batteries.backup_active else "main",
                state.batteries.active_level,
            )
