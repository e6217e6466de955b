"""Owned simulation instance wiring all engine components together."""

from __future__ import annotations

import numpy as np

from weldcell.config import SimulationConfig
from weldcell.domain.models import ActionResult, Channel, ChannelStatus, TelemetrySnapshot
from weldcell.scheduling.base import Scheduler
from weldcell.simulation.actions import ActionExecutor
from weldcell.simulation.clock import SimulationClock
from weldcell.simulation.scenarios import ScenarioManager
from weldcell.simulation.sensors import SensorModel
from weldcell.simulation.stability import StabilityScorer
from weldcell.simulation.state import CellState
from weldcell.telemetry.history import TelemetryHistory
from weldcell.telemetry.publisher import TelemetryPublisher, TelemetrySubscriber


class WeldCellSimulation:
    """One welding cell: sensors, scenarios, scoring, actions and the tick loop.

    External collaborators read snapshots through `get_telemetry_snapshot` or a
    subscription; `execute_action` is the only mutation entry point.
    """

    def __init__(
        self,
        config: SimulationConfig | None = None,
        *,
        scheduler: Scheduler,
        rng: np.random.Generator | None = None,
    ) -> None:
        self._config = config if config is not None else SimulationConfig()
        self._scheduler = scheduler
        self._rng = rng if rng is not None else np.random.default_rng()

        self._state = CellState.nominal(self._config)
        self._history = TelemetryHistory(self._config.clock.history_size)
        self._publisher = TelemetryPublisher()
        self._sensors = SensorModel(self._state, self._config, self._rng)
        self._scenarios = ScenarioManager(self._state, self._config, scheduler, self._rng)
        self._scorer = StabilityScorer(self._state, self._config)
        self._executor = ActionExecutor(self._state, self._config, scheduler, self._scenarios, self._scorer)
        self._clock = SimulationClock(
            state=self._state,
            config=self._config,
            scheduler=scheduler,
            sensors=self._sensors,
            scenarios=self._scenarios,
            scorer=self._scorer,
            executor=self._executor,
            history=self._history,
            publisher=self._publisher,
        )

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def state(self) -> CellState:
        """Live engine state; treat as read-only outside the engine."""
        return self._state

    @property
    def history(self) -> TelemetryHistory:
        return self._history

    @property
    def scenarios(self) -> ScenarioManager:
        return self._scenarios

    @property
    def actions(self) -> ActionExecutor:
        return self._executor

    @property
    def running(self) -> bool:
        return self._clock.running

    def start(self) -> None:
        self._clock.start()

    def stop(self) -> None:
        """Stop ticking; a pending scenario restart is dropped with the clock."""
        self._clock.stop()
        self._scenarios.cancel_pending_start()

    def tick(self) -> TelemetrySnapshot:
        return self._clock.tick()

    def get_telemetry_snapshot(self) -> TelemetrySnapshot:
        return self._clock.snapshot()

    def execute_action(self, action_name: str) -> ActionResult:
        return self._executor.execute(action_name)

    def classify(self, channel: Channel) -> ChannelStatus:
        return self._scorer.classify(channel)

    def channel_statuses(self) -> dict[Channel, ChannelStatus]:
        return self._scorer.statuses()

    def subscribe(self, subscriber: TelemetrySubscriber) -> None:
        self._publisher.subscribe(subscriber)

    def unsubscribe(self, subscriber: TelemetrySubscriber) -> None:
        self._publisher.unsubscribe(subscriber)
