"""Human-readable telemetry text for operator feeds and assistant prompts."""

from __future__ import annotations

from typing import Mapping

from weldcell.config import SimulationConfig
from weldcell.domain.models import Channel, ChannelStatus, TelemetrySnapshot

_CHANNEL_LABELS: dict[Channel, str] = {
    Channel.POWER: "Power",
    Channel.PRESSURE: "Pressure",
    Channel.TEMPERATURE: "Temp",
}


def format_value(value: float, unit: str) -> str:
    """Round to whole units; degree units attach without a space."""
    separator = "" if unit.startswith("°") else " "
    return f"{value:.0f}{separator}{unit}"


def format_delta(delta: float) -> str:
    if abs(delta) < 0.1:
        return "→"
    return f"{delta:+.1f}"


def format_action_label(action: str) -> str:
    """`switch_backup_power` -> `Switch Backup Power`."""
    return " ".join(word[:1].upper() + word[1:] for word in action.split("_"))


def format_telemetry_message(
    snapshot: TelemetrySnapshot,
    statuses: Mapping[Channel, ChannelStatus],
    config: SimulationConfig,
) -> str:
    """One-line summary: an alert listing non-nominal channels, or an all-clear."""
    alerts = [
        f"{channel.value.capitalize()}: "
        f"{format_value(snapshot.sensors.get(channel), config.channel(channel).unit)} is {statuses[channel].name}"
        for channel in Channel
        if statuses[channel] != ChannelStatus.NOMINAL
    ]
    if alerts:
        return f"⚠️ ALERT: {', '.join(alerts)}. Please respond with recommendation."

    readings = " | ".join(
        f"{_CHANNEL_LABELS[channel]}: {format_value(snapshot.sensors.get(channel), config.channel(channel).unit)}"
        for channel in Channel
    )
    return f"TELEMETRY | {readings} | All NOMINAL"
