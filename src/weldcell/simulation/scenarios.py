"""Fault scenario lifecycle and scheduling policy."""

from __future__ import annotations

import logging

import numpy as np

from weldcell.config import SimulationConfig
from weldcell.domain.models import OperatingState, ScenarioKind, ScenarioState
from weldcell.scheduling.base import Scheduler, TimerHandle
from weldcell.simulation.state import CellState

logger = logging.getLogger(__name__)


class ScenarioManager:
    """Start, track and end fault scenarios.

    A scenario only starts after the startup grace window, while the line is
    not paused, and once `scenario_delay_ms` has passed since the previous
    scenario ended. Ending a scenario arms a single restart timer.
    """

    def __init__(
        self,
        state: CellState,
        config: SimulationConfig,
        scheduler: Scheduler,
        rng: np.random.Generator,
    ) -> None:
        self._state = state
        self._config = config
        self._scheduler = scheduler
        self._rng = rng
        self._kinds: tuple[ScenarioKind, ...] = tuple(config.faults)
        weights = np.array([config.fault(kind).weight for kind in self._kinds], dtype=np.float64)
        self._probabilities = weights / weights.sum()
        self._restart_timer: TimerHandle | None = None

    def manage(self, elapsed_ms: int) -> None:
        """Per-tick scenario bookkeeping."""
        state = self._state
        if elapsed_ms < self._config.clock.startup_stable_ms:
            state.stable_tick_count += 1
            return
        if state.paused:
            return
        if state.scenario_scheduled:
            return

        if not state.scenario.active:
            since_last = self._scheduler.now_ms() - state.last_scenario_end_ms
            if since_last >= self._config.clock.scenario_delay_ms:
                self.start_scenario()
        else:
            state.scenario = state.scenario.advanced()

    def choose_kind(self) -> ScenarioKind:
        """Weighted draw over the configured fault kinds."""
        index = int(self._rng.choice(len(self._kinds), p=self._probabilities))
        return self._kinds[index]

    def start_scenario(self, kind: ScenarioKind | None = None) -> ScenarioState:
        """Activate a scenario, drawing its kind when none is given."""
        chosen = kind if kind is not None else self.choose_kind()
        self._state.scenario = ScenarioState.started(chosen)
        self._state.scenarios_started += 1
        logger.info("scenario started: %s", chosen.value)
        return self._state.scenario

    def end_scenario_and_schedule_next(self) -> None:
        """Reset remediation state and arm the timer for the next scenario.

        A PAUSED line stays PAUSED; only `resume_line` leaves it.
        """
        state = self._state
        ended = state.scenario.kind
        state.scenario = ScenarioState.idle()
        state.batteries = state.batteries.full()
        state.cooling_level = self._config.recovery.cooling_default
        if not state.paused:
            state.operating_state = OperatingState.NORMAL
        state.stability = 100.0
        state.stable_tick_count = 0
        state.critical_tick_count = 0
        state.last_scenario_end_ms = self._scheduler.now_ms()
        state.scenarios_ended += 1

        delay_ms = self._config.clock.scenario_delay_ms
        if self._restart_timer is not None:
            self._restart_timer.cancel()
        state.scenario_scheduled = True
        self._restart_timer = self._scheduler.call_later(delay_ms, self._on_restart_due)
        logger.info(
            "scenario ended: %s, system %s, next scenario in %.1fs", ended.value, state.operating_state.value, delay_ms / 1000
        )

    def halt(self) -> None:
        """Deactivate the running scenario without arming a restart."""
        if self._state.scenario.active:
            logger.info("scenario halted: %s", self._state.scenario.kind.value)
        self._state.scenario = ScenarioState.idle()

    def cancel_pending_start(self) -> None:
        if self._restart_timer is not None:
            self._restart_timer.cancel()
            self._restart_timer = None
        self._state.scenario_scheduled = False

    @property
    def restart_pending(self) -> bool:
        return self._state.scenario_scheduled

    def _on_restart_due(self) -> None:
        self._restart_timer = None
        self._state.scenario_scheduled = False
        if self._state.paused:
            logger.info("scheduled scenario skipped: line is paused")
            return
        if self._state.scenario.active:
            return
        if not self._state.anchored:
            return
        if self._scheduler.now_ms() - self._state.started_at_ms < self._config.clock.startup_stable_ms:
            return
        self.start_scenario()
