"""Simulation policies and JSON configuration loading."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from pathlib import Path
from typing import Any, Mapping

from weldcell.domain.models import Channel, ExcursionDirection, ScenarioKind


@dataclass(frozen=True, slots=True)
class ClockPolicy:
    """Tick period and scenario scheduling windows."""

    tick_interval_ms: int = 6_000
    startup_stable_ms: int = 15_000
    scenario_delay_ms: int = 10_000
    history_size: int = 60

    def __post_init__(self) -> None:
        if self.tick_interval_ms <= 0:
            raise ValueError("tick_interval_ms must be > 0")
        if self.startup_stable_ms < 0:
            raise ValueError("startup_stable_ms must be >= 0")
        if self.scenario_delay_ms < 0:
            raise ValueError("scenario_delay_ms must be >= 0")
        if self.history_size < 2:
            raise ValueError("history_size must be >= 2")


@dataclass(frozen=True, slots=True)
class ChannelPolicy:
    """Nominal value, hardware range and alert thresholds for one channel."""

    channel: Channel
    nominal: float
    min_value: float
    max_value: float
    warning_threshold: float
    critical_threshold: float
    trend_limit: float
    direction: ExcursionDirection
    unit: str
    noise_amplitude: float

    def __post_init__(self) -> None:
        if self.min_value > self.max_value:
            raise ValueError("min_value cannot be greater than max_value")
        if not self.min_value <= self.nominal <= self.max_value:
            raise ValueError(f"nominal for {self.channel.value} must be within [min_value, max_value]")
        if self.direction == ExcursionDirection.LOW and self.critical_threshold > self.warning_threshold:
            raise ValueError("critical_threshold must be <= warning_threshold for low-side channels")
        if self.direction == ExcursionDirection.HIGH and self.critical_threshold < self.warning_threshold:
            raise ValueError("critical_threshold must be >= warning_threshold for high-side channels")
        if self.noise_amplitude < 0:
            raise ValueError("noise_amplitude must be >= 0")

    def clamp(self, value: float) -> float:
        """Force a value back into the hardware range."""
        return max(self.min_value, min(self.max_value, value))


@dataclass(frozen=True, slots=True)
class FaultProfile:
    """How one scenario kind perturbs its target channel each tick."""

    kind: ScenarioKind
    channel: Channel
    min_step: float
    max_step: float
    weight: float

    def __post_init__(self) -> None:
        if self.kind == ScenarioKind.NONE:
            raise ValueError("fault profile kind cannot be NONE")
        if self.min_step < 0:
            raise ValueError("min_step must be >= 0")
        if self.max_step < self.min_step:
            raise ValueError("max_step must be >= min_step")
        if self.weight < 0:
            raise ValueError("weight must be >= 0")


@dataclass(frozen=True, slots=True)
class BatteryPolicy:
    """Recharge and drain rates of the battery pair, in percent per tick."""

    recharge_per_tick: float = 2.0
    drain_min: float = 5.0
    drain_max: float = 13.0

    def __post_init__(self) -> None:
        if self.recharge_per_tick < 0:
            raise ValueError("recharge_per_tick must be >= 0")
        if self.drain_min < 0:
            raise ValueError("drain_min must be >= 0")
        if self.drain_max < self.drain_min:
            raise ValueError("drain_max must be >= drain_min")


@dataclass(frozen=True, slots=True)
class StabilityPolicy:
    """Score penalties and the score thresholds of each operating state."""

    penalty_warning: float = 10.0
    penalty_critical: float = 25.0
    penalty_trend: float = 5.0
    threshold_normal: float = 86.0
    threshold_degraded: float = 71.0

    def __post_init__(self) -> None:
        for name in ("penalty_warning", "penalty_critical", "penalty_trend"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0")
        if not 0.0 <= self.threshold_degraded <= self.threshold_normal <= 100.0:
            raise ValueError("thresholds must satisfy 0 <= threshold_degraded <= threshold_normal <= 100")


@dataclass(frozen=True, slots=True)
class RecoveryPolicy:
    """Timing of operator recovery actions and cooling settings."""

    backup_power_delay_ms: int = 2_000
    pressure_ramp_ms: int = 5_000
    cooling_ramp_ms: int = 10_000
    ramp_steps: int = 10
    cooling_default: float = 30.0
    cooling_increment: float = 35.0
    cooling_max: float = 100.0
    pause_cancels_ramps: bool = True

    def __post_init__(self) -> None:
        if self.backup_power_delay_ms < 0:
            raise ValueError("backup_power_delay_ms must be >= 0")
        if self.pressure_ramp_ms <= 0:
            raise ValueError("pressure_ramp_ms must be > 0")
        if self.cooling_ramp_ms <= 0:
            raise ValueError("cooling_ramp_ms must be > 0")
        if self.ramp_steps <= 0:
            raise ValueError("ramp_steps must be > 0")
        if not 0.0 <= self.cooling_default <= self.cooling_max:
            raise ValueError("cooling_default must be within [0, cooling_max]")
        if self.cooling_increment < 0:
            raise ValueError("cooling_increment must be >= 0")


@dataclass(frozen=True, slots=True)
class AutoStopPolicy:
    """Optional forced pause after a run of CRITICAL ticks."""

    enabled: bool = False
    critical_ticks: int = 10

    def __post_init__(self) -> None:
        if self.critical_ticks <= 0:
            raise ValueError("critical_ticks must be > 0")


def default_channel_policies() -> dict[Channel, ChannelPolicy]:
    return {
        Channel.POWER: ChannelPolicy(
            channel=Channel.POWER,
            nominal=42.0,
            min_value=0.0,
            max_value=100.0,
            warning_threshold=38.0,
            critical_threshold=32.0,
            trend_limit=38.0,
            direction=ExcursionDirection.LOW,
            unit="kW",
            noise_amplitude=1.0,
        ),
        Channel.PRESSURE: ChannelPolicy(
            channel=Channel.PRESSURE,
            nominal=140.0,
            min_value=100.0,
            max_value=200.0,
            warning_threshold=135.0,
            critical_threshold=125.0,
            trend_limit=135.0,
            direction=ExcursionDirection.LOW,
            unit="bar",
            noise_amplitude=1.0,
        ),
        Channel.TEMPERATURE: ChannelPolicy(
            channel=Channel.TEMPERATURE,
            nominal=70.0,
            min_value=20.0,
            max_value=120.0,
            warning_threshold=75.0,
            critical_threshold=85.0,
            trend_limit=75.0,
            direction=ExcursionDirection.HIGH,
            unit="°C",
            noise_amplitude=0.5,
        ),
    }


def default_fault_profiles() -> dict[ScenarioKind, FaultProfile]:
    return {
        ScenarioKind.POWER_SAG: FaultProfile(
            kind=ScenarioKind.POWER_SAG, channel=Channel.POWER, min_step=2.0, max_step=6.0, weight=0.40
        ),
        ScenarioKind.PRESSURE_DRIFT: FaultProfile(
            kind=ScenarioKind.PRESSURE_DRIFT, channel=Channel.PRESSURE, min_step=2.0, max_step=5.0, weight=0.35
        ),
        ScenarioKind.OVERHEAT: FaultProfile(
            kind=ScenarioKind.OVERHEAT, channel=Channel.TEMPERATURE, min_step=2.0, max_step=4.0, weight=0.25
        ),
    }


@dataclass(frozen=True, slots=True)
class SimulationConfig:
    """Complete set of tunables for one simulation instance."""

    clock: ClockPolicy = field(default_factory=ClockPolicy)
    channels: dict[Channel, ChannelPolicy] = field(default_factory=default_channel_policies)
    faults: dict[ScenarioKind, FaultProfile] = field(default_factory=default_fault_profiles)
    battery: BatteryPolicy = field(default_factory=BatteryPolicy)
    stability: StabilityPolicy = field(default_factory=StabilityPolicy)
    recovery: RecoveryPolicy = field(default_factory=RecoveryPolicy)
    auto_stop: AutoStopPolicy = field(default_factory=AutoStopPolicy)

    def __post_init__(self) -> None:
        if set(self.channels) != set(Channel):
            raise ValueError("channels must define exactly power, pressure and temperature")
        for key, policy in self.channels.items():
            if policy.channel != key:
                raise ValueError(f"channel policy keyed as {key.value} describes {policy.channel.value}")

        fault_kinds = set(ScenarioKind) - {ScenarioKind.NONE}
        if set(self.faults) != fault_kinds:
            raise ValueError("faults must define exactly POWER_SAG, PRESSURE_DRIFT and OVERHEAT")
        for key, profile in self.faults.items():
            if profile.kind != key:
                raise ValueError(f"fault profile keyed as {key.value} describes {profile.kind.value}")
        if sum(profile.weight for profile in self.faults.values()) <= 0:
            raise ValueError("fault weights must sum to > 0")

    def channel(self, channel: Channel) -> ChannelPolicy:
        return self.channels[channel]

    def fault(self, kind: ScenarioKind) -> FaultProfile:
        return self.faults[kind]


_SECTIONS: tuple[str, ...] = ("clock", "battery", "stability", "recovery", "auto_stop")
_TOP_LEVEL_KEYS = frozenset(_SECTIONS) | {"channels", "faults"}


def _coerce(current: Any, value: Any) -> Any:
    if isinstance(current, Enum):
        return type(current)(value)
    if isinstance(current, bool):
        if not isinstance(value, bool):
            raise ValueError(f"expected boolean, got {value!r}")
        return value
    if isinstance(current, int) and not isinstance(value, bool) and isinstance(value, (int, float)):
        if float(value) != int(value):
            raise ValueError(f"expected integer, got {value!r}")
        return int(value)
    if isinstance(current, float) and not isinstance(value, bool) and isinstance(value, (int, float)):
        return float(value)
    if isinstance(current, str) and isinstance(value, str):
        return value
    raise ValueError(f"invalid value {value!r}")


def _override(base: Any, payload: Any, *, section: str, frozen_keys: frozenset[str] = frozenset()) -> Any:
    if not isinstance(payload, Mapping):
        raise ValueError(f"{section} must be a JSON object")
    allowed = {item.name for item in fields(base)} - frozen_keys
    unknown = sorted(set(payload) - allowed)
    if unknown:
        raise ValueError(f"unknown {section} keys: {', '.join(unknown)}")

    changes: dict[str, Any] = {}
    for key, value in payload.items():
        try:
            changes[key] = _coerce(getattr(base, key), value)
        except ValueError as exc:
            raise ValueError(f"{section}.{key}: {exc}") from exc
    return replace(base, **changes)


def simulation_config_from_mapping(payload: Mapping[str, Any]) -> SimulationConfig:
    """Build a config from (possibly partial) overrides of the defaults."""
    unknown = sorted(set(payload) - _TOP_LEVEL_KEYS)
    if unknown:
        raise ValueError(f"unknown config sections: {', '.join(unknown)}")

    defaults = SimulationConfig()
    sections = {
        name: _override(getattr(defaults, name), payload[name], section=name)
        for name in _SECTIONS
        if name in payload
    }

    channels = dict(defaults.channels)
    channel_overrides = payload.get("channels", {})
    if not isinstance(channel_overrides, Mapping):
        raise ValueError("channels must be a JSON object")
    for name, override in channel_overrides.items():
        try:
            channel = Channel(name)
        except ValueError as exc:
            raise ValueError(f"unknown channel: {name}") from exc
        channels[channel] = _override(
            channels[channel], override, section=f"channels.{name}", frozen_keys=frozenset({"channel"})
        )

    faults = dict(defaults.faults)
    fault_overrides = payload.get("faults", {})
    if not isinstance(fault_overrides, Mapping):
        raise ValueError("faults must be a JSON object")
    for name, override in fault_overrides.items():
        try:
            kind = ScenarioKind(name)
        except ValueError as exc:
            raise ValueError(f"unknown fault kind: {name}") from exc
        if kind == ScenarioKind.NONE:
            raise ValueError("unknown fault kind: NONE")
        faults[kind] = _override(faults[kind], override, section=f"faults.{name}", frozen_keys=frozenset({"kind"}))

    return SimulationConfig(channels=channels, faults=faults, **sections)


def load_simulation_config(path: Path) -> SimulationConfig:
    """Load a JSON config file layered over the defaults."""
    payload = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError(f"config root must be a JSON object: {path}")
    return simulation_config_from_mapping(payload)


def _policy_to_jsonable(policy: Any, *, skip: frozenset[str] = frozenset()) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    for item in fields(policy):
        if item.name in skip:
            continue
        value = getattr(policy, item.name)
        payload[item.name] = value.value if isinstance(value, Enum) else value
    return payload


def simulation_config_to_jsonable(config: SimulationConfig) -> dict[str, Any]:
    """Serialize a config into the same layout `load_simulation_config` reads."""
    payload: dict[str, Any] = {name: _policy_to_jsonable(getattr(config, name)) for name in _SECTIONS}
    payload["channels"] = {
        channel.value: _policy_to_jsonable(policy, skip=frozenset({"channel"}))
        for channel, policy in config.channels.items()
    }
    payload["faults"] = {
        kind.value: _policy_to_jsonable(profile, skip=frozenset({"kind"}))
        for kind, profile in config.faults.items()
    }
    return payload
