"""Bridge between the simulation and a conversational operator assistant.

The assistant receives short alert texts when a channel changes status and
answers with a single function call naming an operator action. The bridge
executes that action on the simulation and reports the outcome back with a
fresh telemetry snapshot.
"""

from __future__ import annotations

import json
import logging
from collections import deque
from dataclasses import dataclass
from typing import Any, Mapping, Protocol

from weldcell.domain.models import (
    ActionResult,
    Channel,
    ChannelStatus,
    OperatorAction,
    snapshot_to_jsonable,
)
from weldcell.scheduling.base import Scheduler, TimerHandle
from weldcell.simulation.engine import WeldCellSimulation
from weldcell.telemetry.formatting import format_action_label

logger = logging.getLogger(__name__)

NO_ACTION_MESSAGE = "No action specified"

RECOMMENDED_FIXES: dict[Channel, tuple[OperatorAction, str]] = {
    Channel.POWER: (OperatorAction.SWITCH_BACKUP_POWER, "switch to backup power"),
    Channel.PRESSURE: (OperatorAction.INCREASE_PRESSURE, "increase pressure"),
    Channel.TEMPERATURE: (OperatorAction.INCREASE_COOLING, "increase cooling"),
}


class AssistantChannel(Protocol):
    """Transport towards the assistant."""

    def send_message(self, text: str, *, trigger_response: bool) -> None: ...

    def send_function_output(self, call_id: str, output: Mapping[str, Any]) -> None: ...


@dataclass(frozen=True, slots=True)
class AssistantPolicy:
    """Bridge settings."""

    function_name: str = "factory_control"
    telemetry_interval_ms: int = 3_000
    startup_snapshots: int = 5
    feed_size: int = 10
    function_call_type: str = "NAPSTER_SPACES_FUNCTION_CALL"
    data_message_type: str = "NAPSTER_SPACES_DATA_MESSAGES"

    def __post_init__(self) -> None:
        if not self.function_name.strip():
            raise ValueError("function_name must be non-empty")
        if self.telemetry_interval_ms <= 0:
            raise ValueError("telemetry_interval_ms must be > 0")
        if self.startup_snapshots < 0:
            raise ValueError("startup_snapshots must be >= 0")
        if self.feed_size <= 0:
            raise ValueError("feed_size must be > 0")


@dataclass(frozen=True, slots=True)
class AssistantAlert:
    """Status-change notice sent to the assistant."""

    channel: Channel
    status: ChannelStatus
    value: float
    recovered: bool
    text: str
    recommended_action: OperatorAction


@dataclass(frozen=True, slots=True)
class FeedEntry:
    """One executed action as shown in the operator feed."""

    timestamp_ms: int
    action: str
    success: bool
    message: str

    @property
    def text(self) -> str:
        return f"[ACTION] {format_action_label(self.action)}: {self.message}"


class ActionFeed:
    """Newest-first, bounded log of executed actions."""

    def __init__(self, size: int) -> None:
        self._entries: deque[FeedEntry] = deque(maxlen=size)

    def record(self, entry: FeedEntry) -> None:
        self._entries.appendleft(entry)

    def entries(self) -> tuple[FeedEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


class OperatorAssistantBridge:
    """Forward status changes to the assistant and apply the actions it calls."""

    def __init__(
        self,
        simulation: WeldCellSimulation,
        channel: AssistantChannel,
        policy: AssistantPolicy | None = None,
    ) -> None:
        self._simulation = simulation
        self._channel = channel
        self._policy = policy if policy is not None else AssistantPolicy()
        self._feed = ActionFeed(self._policy.feed_size)
        self._last_statuses: dict[Channel, ChannelStatus] = {item: ChannelStatus.NOMINAL for item in Channel}
        self._sends = 0
        self._timer: TimerHandle | None = None

    @property
    def feed(self) -> ActionFeed:
        return self._feed

    def start(self, scheduler: Scheduler) -> None:
        if self._timer is None:
            self._timer = scheduler.call_every(self._policy.telemetry_interval_ms, self._on_timer)

    def stop(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def send_telemetry(self) -> AssistantAlert | None:
        """Send at most one status-change message for the current snapshot.

        The first `startup_snapshots` calls never alert. A channel whose change
        is not announced in this call keeps its previous recorded status, so it
        is announced on a later call.
        """
        self._sends += 1
        if self._sends <= self._policy.startup_snapshots:
            return None

        snapshot = self._simulation.get_telemetry_snapshot()
        statuses = self._simulation.channel_statuses()

        for item in Channel:
            status = statuses[item]
            previous = self._last_statuses[item]
            if status == previous:
                continue

            alert = self._build_alert(item, status, snapshot.sensors.get(item), recovered=status == ChannelStatus.NOMINAL)
            self._channel.send_message(alert.text, trigger_response=True)
            self._last_statuses[item] = status
            logger.info("assistant %s: %s", "recovery" if alert.recovered else "alert", alert.text)
            return alert
        return None

    def handle_data(self, data: Mapping[str, Any]) -> ActionResult | None:
        """Route an inbound assistant event; only function calls are acted upon."""
        event_type = data.get("type")
        if event_type == self._policy.function_call_type:
            payload = _mapping_at(data, "payload")
            if payload is None:
                return None
            return self._handle_function_call(
                payload.get("name"),
                payload.get("arguments"),
                payload.get("callId"),
            )

        if event_type == self._policy.data_message_type:
            message = _mapping_at(data, "payload", "data", "message")
            if message is None or message.get("type") != "function_call":
                return None
            return self._handle_function_call(
                message.get("name") or self._policy.function_name,
                _parse_arguments(message),
                message.get("call_id"),
            )
        return None

    def process_control_action(self, arguments: Mapping[str, Any] | None, call_id: str | None = None) -> ActionResult:
        """Execute the action named in function-call arguments and report back."""
        action = (arguments or {}).get("action")
        if not action:
            logger.error("function call without action")
            if call_id:
                self._channel.send_function_output(call_id, {"success": False, "error": NO_ACTION_MESSAGE})
            return ActionResult(success=False, message=NO_ACTION_MESSAGE)

        result = self._simulation.execute_action(str(action))
        snapshot = self._simulation.get_telemetry_snapshot()
        self._feed.record(
            FeedEntry(timestamp_ms=snapshot.timestamp_ms, action=str(action), success=result.success, message=result.message)
        )

        if call_id:
            self._channel.send_function_output(
                call_id,
                {
                    "success": result.success,
                    "action": str(action),
                    "message": result.message,
                    "newState": snapshot_to_jsonable(snapshot),
                    "timestamp": snapshot.timestamp_ms,
                },
            )
        return result

    def _handle_function_call(self, name: Any, arguments: Any, call_id: Any) -> ActionResult | None:
        if name != self._policy.function_name:
            logger.warning("ignoring unknown function %r (expected %r)", name, self._policy.function_name)
            return None
        if arguments is not None and not isinstance(arguments, Mapping):
            arguments = None
        return self.process_control_action(arguments, str(call_id) if call_id else None)

    def _build_alert(self, channel: Channel, status: ChannelStatus, value: float, *, recovered: bool) -> AssistantAlert:
        unit = self._simulation.config.channel(channel).unit
        action, fix = RECOMMENDED_FIXES[channel]
        if recovered:
            text = f"✅ {channel.value.upper()}: {value:.0f}{unit} has returned to NOMINAL."
        else:
            text = f"⚠️ {channel.value.upper()}: {value:.0f}{unit} is {status.name}. Recommend: {fix}."
        return AssistantAlert(
            channel=channel,
            status=status,
            value=value,
            recovered=recovered,
            text=text,
            recommended_action=action,
        )

    def _on_timer(self) -> None:
        self.send_telemetry()


def _mapping_at(data: Mapping[str, Any], *keys: str) -> Mapping[str, Any] | None:
    """Follow nested keys; None when any level is missing or not an object."""
    current: Any = data
    for key in keys:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current if isinstance(current, Mapping) else None


def _parse_arguments(message: Mapping[str, Any]) -> Mapping[str, Any]:
    arguments = message.get("arguments")
    if isinstance(arguments, Mapping):
        return arguments

    content = message.get("content")
    if isinstance(content, Mapping):
        return content
    if isinstance(content, str):
        try:
            parsed = json.loads(content)
        except json.JSONDecodeError as exc:
            logger.error("failed to parse function arguments: %s", exc)
            return {}
        return parsed if isinstance(parsed, Mapping) else {}
    return {}


class LoggingAssistantChannel:
    """Assistant channel that writes traffic to the log instead of a remote service."""

    def send_message(self, text: str, *, trigger_response: bool) -> None:
        logger.info("to assistant (respond=%s): %s", trigger_response, text)

    def send_function_output(self, call_id: str, output: Mapping[str, Any]) -> None:
        logger.info("function output %s: %s", call_id, json.dumps(output, sort_keys=True, default=str))
