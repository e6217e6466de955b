"""Unit tests for simulation policies and JSON config loading."""

from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path

import pytest

from weldcell.config import (
    ChannelPolicy,
    ClockPolicy,
    SimulationConfig,
    StabilityPolicy,
    default_channel_policies,
    load_simulation_config,
    simulation_config_from_mapping,
    simulation_config_to_jsonable,
)
from weldcell.domain.models import Channel, ExcursionDirection, ScenarioKind


def test_defaults_match_reference_constants() -> None:
    config = SimulationConfig()

    assert config.clock.tick_interval_ms == 6_000
    assert config.clock.startup_stable_ms == 15_000
    assert config.clock.scenario_delay_ms == 10_000
    assert config.channel(Channel.POWER).nominal == 42.0
    assert config.channel(Channel.PRESSURE).critical_threshold == 125.0
    assert config.channel(Channel.TEMPERATURE).direction == ExcursionDirection.HIGH
    assert config.fault(ScenarioKind.POWER_SAG).weight == pytest.approx(0.40)
    assert config.recovery.ramp_steps == 10
    assert config.auto_stop.enabled is False


def test_clock_policy_rejects_non_positive_tick() -> None:
    with pytest.raises(ValueError, match="tick_interval_ms"):
        ClockPolicy(tick_interval_ms=0)


def test_low_side_channel_rejects_inverted_thresholds() -> None:
    with pytest.raises(ValueError, match="low-side"):
        ChannelPolicy(
            channel=Channel.POWER,
            nominal=42.0,
            min_value=0.0,
            max_value=100.0,
            warning_threshold=30.0,
            critical_threshold=35.0,
            trend_limit=38.0,
            direction=ExcursionDirection.LOW,
            unit="kW",
            noise_amplitude=1.0,
        )


def test_stability_thresholds_must_be_ordered() -> None:
    with pytest.raises(ValueError, match="thresholds"):
        StabilityPolicy(threshold_normal=80.0, threshold_degraded=90.0)


def test_config_requires_all_channels() -> None:
    channels = default_channel_policies()
    del channels[Channel.PRESSURE]

    with pytest.raises(ValueError, match="channels must define"):
        SimulationConfig(channels=channels)


def test_config_rejects_mismatched_channel_key() -> None:
    channels = default_channel_policies()
    channels[Channel.PRESSURE] = replace(channels[Channel.POWER])

    with pytest.raises(ValueError, match="keyed as pressure"):
        SimulationConfig(channels=channels)


def test_load_applies_partial_overrides(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "clock": {"tick_interval_ms": 1000},
                "channels": {"power": {"nominal": 45}},
                "faults": {"OVERHEAT": {"weight": 0}},
                "auto_stop": {"enabled": True, "critical_ticks": 4},
            }
        ),
        encoding="utf-8",
    )

    config = load_simulation_config(path)

    assert config.clock.tick_interval_ms == 1000
    assert config.clock.scenario_delay_ms == 10_000
    assert config.channel(Channel.POWER).nominal == 45.0
    assert config.channel(Channel.POWER).warning_threshold == 38.0
    assert config.fault(ScenarioKind.OVERHEAT).weight == 0.0
    assert config.auto_stop.enabled is True
    assert config.auto_stop.critical_ticks == 4


def test_unknown_keys_are_rejected() -> None:
    with pytest.raises(ValueError, match="unknown clock keys: tick_ms"):
        simulation_config_from_mapping({"clock": {"tick_ms": 10}})
    with pytest.raises(ValueError, match="unknown config sections"):
        simulation_config_from_mapping({"sensors": {}})
    with pytest.raises(ValueError, match="unknown channel"):
        simulation_config_from_mapping({"channels": {"humidity": {}}})


def test_channel_identity_cannot_be_overridden() -> None:
    with pytest.raises(ValueError, match="unknown channels.power keys: channel"):
        simulation_config_from_mapping({"channels": {"power": {"channel": "pressure"}}})


def test_overrides_are_still_validated() -> None:
    with pytest.raises(ValueError, match="high-side"):
        simulation_config_from_mapping({"channels": {"temperature": {"critical_threshold": 60}}})
    with pytest.raises(ValueError, match="clock.tick_interval_ms"):
        simulation_config_from_mapping({"clock": {"tick_interval_ms": 1500.5}})
    with pytest.raises(ValueError, match="auto_stop.enabled"):
        simulation_config_from_mapping({"auto_stop": {"enabled": "yes"}})


def test_jsonable_payload_loads_back_to_equal_config() -> None:
    config = simulation_config_from_mapping({"recovery": {"pause_cancels_ramps": False, "ramp_steps": 4}})

    payload = json.loads(json.dumps(simulation_config_to_jsonable(config)))

    assert payload["channels"]["temperature"]["direction"] == "high"
    assert simulation_config_from_mapping(payload) == config
