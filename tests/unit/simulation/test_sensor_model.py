"""Unit tests for the sensor channel model."""

from __future__ import annotations

import numpy as np
import pytest

from weldcell.config import SimulationConfig
from weldcell.domain.models import BatteryPair, Channel, ScenarioKind, ScenarioState
from weldcell.simulation.sensors import SensorModel
from weldcell.simulation.state import CellState


class _ScriptedRng:
    """Deterministic stand-in for `np.random.Generator` draws used by the model."""

    def __init__(self, *, unit: float = 0.5, pick_high: bool = True) -> None:
        self._unit = unit
        self._pick_high = pick_high

    def random(self) -> float:
        return self._unit

    def uniform(self, low: float, high: float) -> float:
        return high if self._pick_high else low


def _make_model(rng: object, *, kind: ScenarioKind = ScenarioKind.NONE) -> tuple[SensorModel, CellState]:
    config = SimulationConfig()
    state = CellState.nominal(config)
    if kind != ScenarioKind.NONE:
        state.scenario = ScenarioState.started(kind)
    return SensorModel(state, config, rng), state  # type: ignore[arg-type]


def test_idle_cell_with_zero_noise_stays_nominal() -> None:
    model, state = _make_model(_ScriptedRng())
    state.batteries = BatteryPair(main_level=100.0, backup_level=90.0)

    model.update()

    assert state.sensors.power == 42.0
    assert state.sensors.pressure == 140.0
    assert state.sensors.temperature == 70.0
    assert state.batteries.backup_level == 92.0


@pytest.mark.parametrize(
    ("kind", "channel", "expected"),
    [
        (ScenarioKind.POWER_SAG, Channel.POWER, 36.0),
        (ScenarioKind.PRESSURE_DRIFT, Channel.PRESSURE, 135.0),
        (ScenarioKind.OVERHEAT, Channel.TEMPERATURE, 74.0),
    ],
)
def test_fault_moves_its_channel_away_from_nominal(kind: ScenarioKind, channel: Channel, expected: float) -> None:
    model, state = _make_model(_ScriptedRng(), kind=kind)

    model.update()

    assert state.sensors.get(channel) == expected


def test_power_sag_drains_the_active_battery() -> None:
    model, state = _make_model(_ScriptedRng(pick_high=False), kind=ScenarioKind.POWER_SAG)

    model.update()

    assert state.sensors.power == 40.0
    assert state.batteries.main_level == 95.0
    assert state.batteries.backup_level == 100.0


def test_values_are_clamped_to_hardware_range() -> None:
    model, state = _make_model(_ScriptedRng(unit=0.0), kind=ScenarioKind.POWER_SAG)
    state.set_channel(Channel.POWER, 3.0)
    state.set_channel(Channel.PRESSURE, 100.4)

    model.update()

    assert state.sensors.power == 0.0
    assert state.sensors.pressure == 100.0

    overheat, hot = _make_model(_ScriptedRng(unit=1.0), kind=ScenarioKind.OVERHEAT)
    hot.set_channel(Channel.TEMPERATURE, 119.0)
    overheat.update()

    assert hot.sensors.temperature == 120.0


def test_noise_stays_within_channel_amplitude() -> None:
    config = SimulationConfig()
    model, state = _make_model(np.random.default_rng(11))

    for _ in range(300):
        before = state.sensors
        model.update()
        for channel in Channel:
            amplitude = config.channel(channel).noise_amplitude
            assert abs(state.sensors.get(channel) - before.get(channel)) <= amplitude + 1e-9


@pytest.mark.parametrize("kind", [ScenarioKind.POWER_SAG, ScenarioKind.PRESSURE_DRIFT, ScenarioKind.OVERHEAT])
def test_long_faults_never_leave_hardware_range(kind: ScenarioKind) -> None:
    config = SimulationConfig()
    model, state = _make_model(np.random.default_rng(5), kind=kind)

    for _ in range(200):
        model.update()
        for channel in Channel:
            policy = config.channel(channel)
            assert policy.min_value <= state.sensors.get(channel) <= policy.max_value
        assert 0.0 <= state.batteries.main_level <= 100.0
