"""Operator action validation and the timed recovery protocol."""

from __future__ import annotations

import logging
from typing import Callable

from weldcell.config import SimulationConfig
from weldcell.domain.models import ActionResult, Channel, OperatingState, OperatorAction
from weldcell.scheduling.base import Scheduler, TimerHandle
from weldcell.simulation.scenarios import ScenarioManager
from weldcell.simulation.stability import StabilityScorer
from weldcell.simulation.state import CellState

logger = logging.getLogger(__name__)

UNKNOWN_ACTION_MESSAGE = "Unknown action"
NOT_PAUSED_MESSAGE = "Line is not paused"
STILL_CRITICAL_MESSAGE = "Cannot resume: Sensors still critical"


class ActionExecutor:
    """Apply named corrective actions to the cell.

    Results are returned synchronously; backup switching and gradual restores
    finish later on scheduler timers and then end the active scenario. At most
    one recovery task is in flight per channel: a new request for the same
    channel cancels and replaces the previous one.
    """

    def __init__(
        self,
        state: CellState,
        config: SimulationConfig,
        scheduler: Scheduler,
        scenarios: ScenarioManager,
        scorer: StabilityScorer,
    ) -> None:
        self._state = state
        self._config = config
        self._scheduler = scheduler
        self._scenarios = scenarios
        self._scorer = scorer
        self._in_flight: dict[Channel, TimerHandle] = {}
        self._handlers: dict[OperatorAction, Callable[[], ActionResult]] = {
            OperatorAction.SWITCH_BACKUP_POWER: self.switch_backup_power,
            OperatorAction.INCREASE_PRESSURE: self.increase_pressure,
            OperatorAction.DECREASE_PRESSURE: self.decrease_pressure,
            OperatorAction.INCREASE_COOLING: self.increase_cooling,
            OperatorAction.PAUSE_LINE: self.pause_line,
            OperatorAction.RESUME_LINE: self.resume_line,
        }

    def execute(self, action_name: str) -> ActionResult:
        """Dispatch an action by name; unknown names change nothing."""
        try:
            action = OperatorAction(action_name)
        except ValueError:
            logger.warning("rejected unknown action: %r", action_name)
            return ActionResult(success=False, message=UNKNOWN_ACTION_MESSAGE)

        result = self._handlers[action]()
        if result.success:
            logger.info("action %s: %s", action.value, result.message)
        else:
            logger.warning("action %s failed: %s", action.value, result.message)
        return result

    def switch_backup_power(self) -> ActionResult:
        self._state.batteries = self._state.batteries.switch_to_backup()
        delay_ms = self._config.recovery.backup_power_delay_ms
        handle = self._scheduler.call_later(delay_ms, self._complete_backup_switch)
        self._track(Channel.POWER, handle)
        return ActionResult(success=True, message="Backup power activated")

    def increase_pressure(self) -> ActionResult:
        self.gradual_restore(Channel.PRESSURE, self._config.recovery.pressure_ramp_ms)
        return ActionResult(success=True, message="Increasing pressure...")

    def decrease_pressure(self) -> ActionResult:
        # Both directions restore pressure to nominal.
        self.gradual_restore(Channel.PRESSURE, self._config.recovery.pressure_ramp_ms)
        return ActionResult(success=True, message="Decreasing pressure...")

    def increase_cooling(self) -> ActionResult:
        recovery = self._config.recovery
        self._state.cooling_level = min(recovery.cooling_max, self._state.cooling_level + recovery.cooling_increment)
        self.gradual_restore(Channel.TEMPERATURE, recovery.cooling_ramp_ms)
        return ActionResult(success=True, message="Cooling system engaged...")

    def pause_line(self) -> ActionResult:
        self._state.operating_state = OperatingState.PAUSED
        self._scenarios.halt()
        if self._config.recovery.pause_cancels_ramps:
            self.cancel_all()
        return ActionResult(success=True, message="Production line paused")

    def resume_line(self) -> ActionResult:
        state = self._state
        if state.operating_state != OperatingState.PAUSED:
            return ActionResult(success=False, message=NOT_PAUSED_MESSAGE)
        if self._scorer.any_critical():
            return ActionResult(success=False, message=STILL_CRITICAL_MESSAGE)

        state.operating_state = self._scorer.state_for_score(state.stability)
        state.stable_tick_count = 0
        state.critical_tick_count = 0
        state.last_scenario_end_ms = self._scheduler.now_ms()
        return ActionResult(success=True, message=f"Production line resumed ({state.operating_state.value})")

    def gradual_restore(self, channel: Channel, duration_ms: float) -> None:
        """Linearly walk a channel back to nominal in equal timed steps."""
        steps = self._config.recovery.ramp_steps
        target = self._config.channel(channel).nominal
        step_change = (target - self._state.sensors.get(channel)) / steps
        completed = 0

        def advance() -> None:
            nonlocal completed
            completed += 1
            if completed < steps:
                self._state.set_channel(channel, self._state.sensors.get(channel) + step_change)
                logger.debug(
                    "%s ramp: %.1f (step %d/%d)", channel.value, self._state.sensors.get(channel), completed, steps
                )
                return

            handle.cancel()
            self._release(channel, handle)
            # Final step lands exactly on target.
            self._state.set_channel(channel, target)
            logger.info("%s restored to %.1f", channel.value, target)
            self._scenarios.end_scenario_and_schedule_next()

        handle = self._scheduler.call_every(duration_ms / steps, advance)
        self._track(channel, handle)

    def cancel_all(self) -> None:
        """Cancel every in-flight recovery task."""
        for channel, handle in list(self._in_flight.items()):
            handle.cancel()
            logger.info("cancelled in-flight %s recovery", channel.value)
        self._in_flight.clear()

    def in_flight_channels(self) -> tuple[Channel, ...]:
        return tuple(channel for channel in Channel if channel in self._in_flight)

    def _complete_backup_switch(self) -> None:
        self._in_flight.pop(Channel.POWER, None)
        nominal = self._config.channel(Channel.POWER).nominal
        self._state.set_channel(Channel.POWER, nominal)
        logger.info("power restored to %.1f kW", nominal)
        self._scenarios.end_scenario_and_schedule_next()

    def _track(self, channel: Channel, handle: TimerHandle) -> None:
        previous = self._in_flight.pop(channel, None)
        if previous is not None:
            previous.cancel()
            logger.info("replaced in-flight %s recovery", channel.value)
        self._in_flight[channel] = handle

    def _release(self, channel: Channel, handle: TimerHandle) -> None:
        if self._in_flight.get(channel) is handle:
            del self._in_flight[channel]
