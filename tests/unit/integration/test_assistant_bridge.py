"""Unit tests for the operator assistant bridge."""

from __future__ import annotations

import json
from typing import Any, Mapping

import numpy as np
import pytest

from weldcell.domain.models import Channel, OperatingState, OperatorAction
from weldcell.integration.assistant import NO_ACTION_MESSAGE, AssistantPolicy, OperatorAssistantBridge
from weldcell.scheduling.virtual import VirtualScheduler
from weldcell.simulation.engine import WeldCellSimulation


class _RecordingChannel:
    def __init__(self) -> None:
        self.messages: list[tuple[str, bool]] = []
        self.outputs: list[tuple[str, Mapping[str, Any]]] = []

    def send_message(self, text: str, *, trigger_response: bool) -> None:
        self.messages.append((text, trigger_response))

    def send_function_output(self, call_id: str, output: Mapping[str, Any]) -> None:
        self.outputs.append((call_id, output))


def _make_bridge(
    **policy_overrides: Any,
) -> tuple[OperatorAssistantBridge, WeldCellSimulation, _RecordingChannel, VirtualScheduler]:
    scheduler = VirtualScheduler()
    simulation = WeldCellSimulation(scheduler=scheduler, rng=np.random.default_rng(0))
    channel = _RecordingChannel()
    policy = AssistantPolicy(**{"startup_snapshots": 0, **policy_overrides})
    return OperatorAssistantBridge(simulation, channel, policy), simulation, channel, scheduler


def _function_call(action: str | None, call_id: str = "call-1") -> dict[str, Any]:
    arguments = {} if action is None else {"action": action}
    return {
        "type": "NAPSTER_SPACES_FUNCTION_CALL",
        "payload": {"name": "factory_control", "arguments": arguments, "callId": call_id},
    }


def test_first_snapshots_are_never_sent() -> None:
    bridge, simulation, channel, _ = _make_bridge(startup_snapshots=2)
    simulation.state.set_channel(Channel.POWER, 30.0)

    assert bridge.send_telemetry() is None
    assert bridge.send_telemetry() is None
    assert channel.messages == []

    alert = bridge.send_telemetry()
    assert alert is not None
    assert alert.channel == Channel.POWER


def test_alert_text_recommends_fix_once_per_change() -> None:
    bridge, simulation, channel, _ = _make_bridge()
    simulation.state.set_channel(Channel.POWER, 30.0)

    alert = bridge.send_telemetry()

    assert alert is not None
    assert alert.text == "⚠️ POWER: 30kW is CRITICAL. Recommend: switch to backup power."
    assert alert.recommended_action == OperatorAction.SWITCH_BACKUP_POWER
    assert channel.messages == [(alert.text, True)]
    assert bridge.send_telemetry() is None


def test_recovery_is_announced() -> None:
    bridge, simulation, channel, _ = _make_bridge()
    simulation.state.set_channel(Channel.TEMPERATURE, 80.0)
    bridge.send_telemetry()

    simulation.state.set_channel(Channel.TEMPERATURE, 70.0)
    alert = bridge.send_telemetry()

    assert alert is not None
    assert alert.recovered is True
    assert alert.text == "✅ TEMPERATURE: 70°C has returned to NOMINAL."
    assert len(channel.messages) == 2


def test_simultaneous_changes_are_announced_on_later_calls() -> None:
    bridge, simulation, channel, _ = _make_bridge()
    simulation.state.set_channel(Channel.POWER, 30.0)
    simulation.state.set_channel(Channel.PRESSURE, 130.0)

    first = bridge.send_telemetry()
    second = bridge.send_telemetry()
    third = bridge.send_telemetry()

    assert first is not None and first.channel == Channel.POWER
    assert second is not None and second.channel == Channel.PRESSURE
    assert second.text == "⚠️ PRESSURE: 130bar is WARNING. Recommend: increase pressure."
    assert third is None
    assert len(channel.messages) == 2


def test_function_call_executes_action_and_reports_new_state() -> None:
    bridge, simulation, channel, _ = _make_bridge()

    result = bridge.handle_data(_function_call("pause_line", "abc"))

    assert result is not None and result.success is True
    assert simulation.state.operating_state == OperatingState.PAUSED
    call_id, output = channel.outputs[0]
    assert call_id == "abc"
    assert output["success"] is True
    assert output["action"] == "pause_line"
    assert output["message"] == "Production line paused"
    assert output["newState"]["state"] == "PAUSED"
    json.dumps(output)


def test_data_message_with_json_content_is_parsed() -> None:
    bridge, simulation, channel, _ = _make_bridge()
    event = {
        "type": "NAPSTER_SPACES_DATA_MESSAGES",
        "payload": {
            "data": {
                "message": {
                    "type": "function_call",
                    "name": "factory_control",
                    "content": json.dumps({"action": "increase_cooling"}),
                    "call_id": "c2",
                }
            }
        },
    }

    result = bridge.handle_data(event)

    assert result is not None
    assert result.message == "Cooling system engaged..."
    assert simulation.state.cooling_level == 65.0
    assert channel.outputs[0][0] == "c2"


def test_missing_action_reports_error() -> None:
    bridge, simulation, channel, _ = _make_bridge()

    result = bridge.handle_data(_function_call(None, "c3"))

    assert result is not None
    assert result.success is False
    assert result.message == NO_ACTION_MESSAGE
    assert channel.outputs == [("c3", {"success": False, "error": NO_ACTION_MESSAGE})]
    assert len(bridge.feed) == 0
    assert simulation.state.operating_state == OperatingState.NORMAL


def test_unparseable_content_is_treated_as_missing_action() -> None:
    bridge, _, channel, _ = _make_bridge()
    event = {
        "type": "NAPSTER_SPACES_DATA_MESSAGES",
        "payload": {"data": {"message": {"type": "function_call", "content": "{not json", "call_id": "c4"}}},
    }

    result = bridge.handle_data(event)

    assert result is not None and result.success is False
    assert channel.outputs[0][1]["error"] == NO_ACTION_MESSAGE


def test_unknown_function_and_event_types_are_ignored() -> None:
    bridge, _, channel, _ = _make_bridge()
    other_function = _function_call("pause_line")
    other_function["payload"]["name"] = "open_doors"

    assert bridge.handle_data(other_function) is None
    assert bridge.handle_data({"type": "NAPSTER_SPACES_TRANSCRIPT", "payload": {}}) is None
    assert channel.outputs == []


def test_unknown_action_is_recorded_as_failure() -> None:
    bridge, _, channel, _ = _make_bridge()

    result = bridge.process_control_action({"action": "self_destruct"}, "c5")

    assert result.success is False
    assert result.message == "Unknown action"
    assert bridge.feed.entries()[0].success is False
    assert channel.outputs[0][1]["success"] is False


def test_feed_is_newest_first_and_bounded() -> None:
    bridge, _, _, _ = _make_bridge(feed_size=2)

    for action in ("increase_cooling", "increase_pressure", "pause_line"):
        bridge.process_control_action({"action": action})

    entries = bridge.feed.entries()
    assert len(entries) == 2
    assert entries[0].text == "[ACTION] Pause Line: Production line paused"
    assert entries[1].action == "increase_pressure"


def test_periodic_sending_stops_with_bridge() -> None:
    bridge, simulation, channel, scheduler = _make_bridge()
    bridge.start(scheduler)
    simulation.state.set_channel(Channel.POWER, 30.0)

    scheduler.advance(3_000)
    assert len(channel.messages) == 1

    bridge.stop()
    simulation.state.set_channel(Channel.POWER, 42.0)
    scheduler.advance(30_000)
    assert len(channel.messages) == 1


@pytest.mark.parametrize(
    "event",
    [
        {"type": "NAPSTER_SPACES_FUNCTION_CALL", "payload": "pause_line"},
        {"type": "NAPSTER_SPACES_FUNCTION_CALL", "payload": ["pause_line"]},
        {"type": "NAPSTER_SPACES_DATA_MESSAGES", "payload": "raw"},
        {"type": "NAPSTER_SPACES_DATA_MESSAGES", "payload": {"data": "raw"}},
        {"type": "NAPSTER_SPACES_DATA_MESSAGES", "payload": {"data": {"message": ["function_call"]}}},
    ],
)
def test_malformed_event_bodies_are_ignored(event: dict[str, Any]) -> None:
    bridge, simulation, channel, _ = _make_bridge()

    assert bridge.handle_data(event) is None
    assert channel.outputs == []
    assert simulation.state.operating_state == OperatingState.NORMAL
