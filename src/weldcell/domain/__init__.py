"""Domain models for the welding cell simulation."""

from weldcell.domain.models import (
    ActionResult,
    BatteryPair,
    Channel,
    ChannelStatus,
    ExcursionDirection,
    OperatingState,
    OperatorAction,
    ScenarioKind,
    ScenarioState,
    SensorDeltas,
    SensorReading,
    TelemetrySnapshot,
    snapshot_to_jsonable,
)

__all__ = [
    "ActionResult",
    "BatteryPair",
    "Channel",
    "ChannelStatus",
    "ExcursionDirection",
    "OperatingState",
    "OperatorAction",
    "ScenarioKind",
    "ScenarioState",
    "SensorDeltas",
    "SensorReading",
    "TelemetrySnapshot",
    "snapshot_to_jsonable",
]
