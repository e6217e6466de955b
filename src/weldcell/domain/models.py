"""Core domain models for the welding cell simulation."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum, StrEnum
from typing import Any


class Channel(StrEnum):
    """Continuous sensor channels sampled on every tick."""

    POWER = "power"
    PRESSURE = "pressure"
    TEMPERATURE = "temperature"


class ChannelStatus(IntEnum):
    """Ordered severity of a single channel reading."""

    NOMINAL = 0
    WARNING = 1
    CRITICAL = 2


class ExcursionDirection(StrEnum):
    """Side of the nominal band a channel is checked (and faulted) on."""

    LOW = "low"
    HIGH = "high"


class ScenarioKind(StrEnum):
    """Fault scenarios that can be injected into the cell."""

    NONE = "NONE"
    POWER_SAG = "POWER_SAG"
    PRESSURE_DRIFT = "PRESSURE_DRIFT"
    OVERHEAT = "OVERHEAT"


class OperatingState(StrEnum):
    """Discrete machine state derived from the stability score."""

    NORMAL = "NORMAL"
    DEGRADED = "DEGRADED"
    CRITICAL = "CRITICAL"
    PAUSED = "PAUSED"


class OperatorAction(StrEnum):
    """Named corrective actions accepted by the engine."""

    SWITCH_BACKUP_POWER = "switch_backup_power"
    INCREASE_PRESSURE = "increase_pressure"
    DECREASE_PRESSURE = "decrease_pressure"
    INCREASE_COOLING = "increase_cooling"
    PAUSE_LINE = "pause_line"
    RESUME_LINE = "resume_line"


@dataclass(frozen=True, slots=True)
class SensorDeltas:
    """Per-channel change between two consecutive readings."""

    power: float = 0.0
    pressure: float = 0.0
    temperature: float = 0.0

    def get(self, channel: Channel) -> float:
        return float(getattr(self, channel.value))


@dataclass(frozen=True, slots=True)
class SensorReading:
    """Values of the three sensor channels at one instant."""

    power: float
    pressure: float
    temperature: float

    def get(self, channel: Channel) -> float:
        """Return the value of one channel."""
        return float(getattr(self, channel.value))

    def with_value(self, channel: Channel, value: float) -> SensorReading:
        """Return a copy with one channel replaced."""
        values = {item.value: self.get(item) for item in Channel}
        values[channel.value] = float(value)
        return SensorReading(**values)

    def minus(self, other: SensorReading) -> SensorDeltas:
        """Return `self - other` channel by channel."""
        return SensorDeltas(
            power=self.power - other.power,
            pressure=self.pressure - other.pressure,
            temperature=self.temperature - other.temperature,
        )


@dataclass(frozen=True, slots=True)
class ScenarioState:
    """Currently injected fault, if any."""

    kind: ScenarioKind = ScenarioKind.NONE
    active: bool = False
    ticks_elapsed: int = 0

    def __post_init__(self) -> None:
        if self.active and self.kind == ScenarioKind.NONE:
            raise ValueError("active scenario must have a fault kind")
        if not self.active and self.kind != ScenarioKind.NONE:
            raise ValueError("inactive scenario must have kind NONE")
        if self.ticks_elapsed < 0:
            raise ValueError("ticks_elapsed must be >= 0")

    @classmethod
    def idle(cls) -> ScenarioState:
        return cls()

    @classmethod
    def started(cls, kind: ScenarioKind) -> ScenarioState:
        return cls(kind=kind, active=True, ticks_elapsed=0)

    def advanced(self) -> ScenarioState:
        """Return a copy with one more elapsed tick."""
        if not self.active:
            return self
        return ScenarioState(kind=self.kind, active=True, ticks_elapsed=self.ticks_elapsed + 1)


@dataclass(frozen=True, slots=True)
class BatteryPair:
    """Main and backup battery charge levels in percent."""

    main_level: float = 100.0
    backup_level: float = 100.0
    backup_active: bool = False

    def __post_init__(self) -> None:
        for name, level in (("main_level", self.main_level), ("backup_level", self.backup_level)):
            if not 0.0 <= level <= 100.0:
                raise ValueError(f"{name} must be within [0, 100]")

    @classmethod
    def full(cls) -> BatteryPair:
        return cls()

    @property
    def active_level(self) -> float:
        return self.backup_level if self.backup_active else self.main_level

    def recharge_inactive(self, rate: float) -> BatteryPair:
        """Charge whichever battery is not powering the line."""
        if self.backup_active:
            return BatteryPair(min(100.0, self.main_level + rate), self.backup_level, True)
        return BatteryPair(self.main_level, min(100.0, self.backup_level + rate), False)

    def drain_active(self, amount: float) -> BatteryPair:
        """Drain the battery currently powering the line, floored at 0."""
        if self.backup_active:
            return BatteryPair(self.main_level, max(0.0, self.backup_level - amount), True)
        return BatteryPair(max(0.0, self.main_level - amount), self.backup_level, False)

    def switch_to_backup(self) -> BatteryPair:
        """Move the load onto the backup battery; the main pack is swapped for a full one."""
        return BatteryPair(main_level=100.0, backup_level=self.backup_level, backup_active=True)


@dataclass(frozen=True, slots=True)
class ActionResult:
    """Synchronous outcome of an operator action."""

    success: bool
    message: str


@dataclass(frozen=True, slots=True)
class TelemetrySnapshot:
    """Immutable view of the cell emitted once per tick."""

    tick: int
    timestamp_ms: int
    sensors: SensorReading
    deltas: SensorDeltas
    stability: float
    operating_state: OperatingState
    scenario: ScenarioState
    cooling_level: float
    backup_power: bool
    main_battery_level: float
    backup_battery_level: float


def snapshot_to_jsonable(snapshot: TelemetrySnapshot) -> dict[str, Any]:
    """Convert a snapshot into a JSON-serializable payload."""
    return {
        "tick": snapshot.tick,
        "timestamp_ms": snapshot.timestamp_ms,
        "state": snapshot.operating_state.value,
        "stability": snapshot.stability,
        "sensors": {channel.value: snapshot.sensors.get(channel) for channel in Channel},
        "deltas": {channel.value: snapshot.deltas.get(channel) for channel in Channel},
        "scenario": {
            "type": snapshot.scenario.kind.value,
            "active": snapshot.scenario.active,
            "ticks_elapsed": snapshot.scenario.ticks_elapsed,
        },
        "cooling": snapshot.cooling_level,
        "backup_power": snapshot.backup_power,
        "main_battery_level": snapshot.main_battery_level,
        "backup_battery_level": snapshot.backup_battery_level,
    }
