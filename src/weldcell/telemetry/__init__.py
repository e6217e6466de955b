"""Telemetry history, fan-out and text formatting."""

from weldcell.telemetry.formatting import (
    format_action_label,
    format_delta,
    format_telemetry_message,
    format_value,
)
from weldcell.telemetry.history import TelemetryHistory
from weldcell.telemetry.publisher import TelemetryPublisher, TelemetrySubscriber

__all__ = [
    "TelemetryHistory",
    "TelemetryPublisher",
    "TelemetrySubscriber",
    "format_action_label",
    "format_delta",
    "format_telemetry_message",
    "format_value",
]
