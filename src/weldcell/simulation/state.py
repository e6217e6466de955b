"""Mutable state owned by one simulation instance."""

from __future__ import annotations

from dataclasses import dataclass, field

from weldcell.config import SimulationConfig
from weldcell.domain.models import BatteryPair, Channel, OperatingState, ScenarioState, SensorReading


@dataclass(slots=True)
class CellState:
    """Everything the engine mutates; components receive it explicitly."""

    sensors: SensorReading
    previous_sensors: SensorReading
    batteries: BatteryPair = field(default_factory=BatteryPair.full)
    scenario: ScenarioState = field(default_factory=ScenarioState.idle)
    stability: float = 100.0
    operating_state: OperatingState = OperatingState.NORMAL
    cooling_level: float = 30.0
    started_at_ms: int = 0
    tick_count: int = 0
    stable_tick_count: int = 0
    critical_tick_count: int = 0
    last_scenario_end_ms: int = 0
    scenario_scheduled: bool = False
    anchored: bool = False
    scenarios_started: int = 0
    scenarios_ended: int = 0

    @classmethod
    def nominal(cls, config: SimulationConfig, *, now_ms: int = 0) -> CellState:
        """Fresh cell at nominal values; the first scenario waits a full delay."""
        reading = SensorReading(**{channel.value: config.channel(channel).nominal for channel in Channel})
        return cls(
            sensors=reading,
            previous_sensors=reading,
            cooling_level=config.recovery.cooling_default,
            started_at_ms=now_ms,
            last_scenario_end_ms=now_ms,
        )

    def set_channel(self, channel: Channel, value: float) -> None:
        self.sensors = self.sensors.with_value(channel, value)

    @property
    def paused(self) -> bool:
        return self.operating_state == OperatingState.PAUSED
