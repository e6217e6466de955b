"""Fixed-period tick driver."""

from __future__ import annotations

import logging

from weldcell.config import SimulationConfig
from weldcell.domain.models import TelemetrySnapshot
from weldcell.scheduling.base import Scheduler, TimerHandle
from weldcell.simulation.actions import ActionExecutor
from weldcell.simulation.scenarios import ScenarioManager
from weldcell.simulation.sensors import SensorModel
from weldcell.simulation.stability import StabilityScorer
from weldcell.simulation.state import CellState
from weldcell.telemetry.history import TelemetryHistory
from weldcell.telemetry.publisher import TelemetryPublisher

logger = logging.getLogger(__name__)


class SimulationClock:
    """Drive scenario bookkeeping, sensors and scoring once per tick period.

    Ticks keep running while the line is PAUSED so drift stays observable.
    """

    def __init__(
        self,
        *,
        state: CellState,
        config: SimulationConfig,
        scheduler: Scheduler,
        sensors: SensorModel,
        scenarios: ScenarioManager,
        scorer: StabilityScorer,
        executor: ActionExecutor,
        history: TelemetryHistory,
        publisher: TelemetryPublisher,
    ) -> None:
        self._state = state
        self._config = config
        self._scheduler = scheduler
        self._sensors = sensors
        self._scenarios = scenarios
        self._scorer = scorer
        self._executor = executor
        self._history = history
        self._publisher = publisher
        self._timer: TimerHandle | None = None

    @property
    def running(self) -> bool:
        return self._timer is not None

    def start(self) -> None:
        if self._timer is not None:
            return
        self._ensure_anchored()
        self._timer = self._scheduler.call_every(self._config.clock.tick_interval_ms, self._on_timer)
        logger.info("simulation started (tick every %d ms)", self._config.clock.tick_interval_ms)

    def stop(self) -> None:
        if self._timer is None:
            return
        self._timer.cancel()
        self._timer = None
        logger.info("simulation stopped after %d ticks", self._state.tick_count)

    def tick(self) -> TelemetrySnapshot:
        """Advance the cell by one period and publish the resulting snapshot."""
        self._ensure_anchored()
        state = self._state
        state.tick_count += 1
        elapsed_ms = self._scheduler.now_ms() - state.started_at_ms
        state.previous_sensors = state.sensors

        self._scenarios.manage(elapsed_ms)
        self._sensors.update()

        latest = self._history.latest()
        self._scorer.compute(latest.sensors if latest is not None else None, len(self._history))
        self._scorer.update_state()
        if self._scorer.check_auto_stop():
            logger.warning("auto-stop: CRITICAL for %d ticks", state.critical_tick_count)
            self._executor.pause_line()

        snapshot = self.snapshot()
        self._history.append(snapshot)
        self._publisher.publish(snapshot)
        return snapshot

    def snapshot(self) -> TelemetrySnapshot:
        state = self._state
        return TelemetrySnapshot(
            tick=state.tick_count,
            timestamp_ms=self._scheduler.now_ms(),
            sensors=state.sensors,
            deltas=state.sensors.minus(state.previous_sensors),
            stability=state.stability,
            operating_state=state.operating_state,
            scenario=state.scenario,
            cooling_level=state.cooling_level,
            backup_power=state.batteries.backup_active,
            main_battery_level=state.batteries.main_level,
            backup_battery_level=state.batteries.backup_level,
        )

    def _on_timer(self) -> None:
        self.tick()

    def _ensure_anchored(self) -> None:
        # Startup window and first scenario delay count from the first start/tick.
        if self._state.anchored:
            return
        now_ms = self._scheduler.now_ms()
        self._state.started_at_ms = now_ms
        self._state.last_scenario_end_ms = now_ms
        self._state.anchored = True
