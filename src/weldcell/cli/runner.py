"""CLI runner for headless welding cell simulation runs."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from contextlib import ExitStack
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Callable, Sequence

import numpy as np

from weldcell.config import SimulationConfig, load_simulation_config
from weldcell.domain.models import Channel, OperatorAction, TelemetrySnapshot, snapshot_to_jsonable
from weldcell.integration.assistant import AssistantPolicy, LoggingAssistantChannel, OperatorAssistantBridge
from weldcell.scheduling.asyncio_scheduler import AsyncioScheduler
from weldcell.scheduling.base import Scheduler, TimerHandle
from weldcell.scheduling.virtual import VirtualScheduler
from weldcell.simulation.engine import WeldCellSimulation
from weldcell.telemetry.formatting import format_delta, format_telemetry_message

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ScriptedAction:
    """Operator action fired at a fixed offset from simulation start."""

    at_ms: int
    action: str


@dataclass(frozen=True, slots=True)
class RunSummary:
    """Outcome of one CLI simulation run."""

    ticks: int
    final_state: str
    final_stability: float
    mean_stability: float
    scenarios_started: int
    scenarios_ended: int
    actions_executed: int
    status_line: str
    deltas_line: str
    output_path: Path | None


def build_parser() -> argparse.ArgumentParser:
    """Create CLI parser for simulation runs."""
    parser = argparse.ArgumentParser(
        prog="weldcell-sim",
        description="Run the welding cell simulation headless and emit telemetry snapshots as JSON lines.",
    )
    parser.add_argument("--config", type=Path, default=None, help="JSON file overriding default policies.")
    parser.add_argument("--ticks", type=int, default=60, help="Number of ticks to simulate.")
    parser.add_argument("--seed", type=int, default=None, help="RNG seed for reproducible runs.")
    parser.add_argument(
        "--realtime",
        action=argparse.BooleanOptionalAction,
        default=False,
        help="Pace ticks on an asyncio event loop instead of virtual time.",
    )
    parser.add_argument(
        "--action",
        dest="actions",
        action="append",
        default=[],
        metavar="MS:NAME",
        help="Scripted operator action at simulation time MS (repeatable).",
    )
    parser.add_argument(
        "--autopilot",
        action=argparse.BooleanOptionalAction,
        default=False,
        help="Apply the recommended fix for every new channel alert.",
    )
    parser.add_argument("--output", type=Path, default=None, help="Optional JSONL telemetry output path.")
    parser.add_argument(
        "--log-level",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        default="WARNING",
        help="Logging verbosity.",
    )
    return parser


def parse_scripted_action(value: str) -> ScriptedAction:
    """Parse `MS:NAME`, e.g. `20000:increase_cooling`."""
    at_text, separator, name = value.partition(":")
    if not separator or not name.strip():
        raise ValueError(f"scripted action must look like MS:NAME, got {value!r}")
    try:
        at_ms = int(at_text)
    except ValueError as exc:
        raise ValueError(f"scripted action time must be an integer, got {at_text!r}") from exc
    if at_ms < 0:
        raise ValueError("scripted action time must be >= 0")
    return ScriptedAction(at_ms=at_ms, action=name.strip())


class _RunSession:
    """Wire a simulation, its assistant bridge and optional JSONL sink onto one scheduler."""

    def __init__(
        self,
        *,
        config: SimulationConfig,
        scheduler: Scheduler,
        rng: np.random.Generator,
        actions: Sequence[ScriptedAction],
        autopilot: bool,
        sink: IO[str] | None,
    ) -> None:
        self.simulation = WeldCellSimulation(config, scheduler=scheduler, rng=rng)
        self._scheduler = scheduler
        self._actions = actions
        self._autopilot = autopilot
        self._sink = sink
        self._policy = AssistantPolicy()
        self.bridge = OperatorAssistantBridge(self.simulation, LoggingAssistantChannel(), self._policy)
        self.actions_executed = 0
        self._stability_samples: list[float] = []
        self._assistant_timer: TimerHandle | None = None
        self.simulation.subscribe(self._on_snapshot)

    def start(self) -> None:
        for scripted in self._actions:
            self._scheduler.call_later(scripted.at_ms, self._action_callback(scripted.action))
        self._assistant_timer = self._scheduler.call_every(self._policy.telemetry_interval_ms, self._on_assistant_timer)
        self.simulation.start()

    def stop(self) -> None:
        if self._assistant_timer is not None:
            self._assistant_timer.cancel()
            self._assistant_timer = None
        self.simulation.stop()

    def mean_stability(self) -> float:
        if not self._stability_samples:
            return self.simulation.state.stability
        return float(np.mean(self._stability_samples))

    def _action_callback(self, action: str) -> Callable[[], None]:
        def fire() -> None:
            result = self.simulation.execute_action(action)
            self.actions_executed += 1
            logger.info("scripted %s -> %s", action, result.message)

        return fire

    def _on_assistant_timer(self) -> None:
        alert = self.bridge.send_telemetry()
        if not self._autopilot or alert is None or alert.recovered:
            return
        result = self.bridge.process_control_action({"action": alert.recommended_action.value})
        self.actions_executed += 1
        logger.info("autopilot %s -> %s", alert.recommended_action.value, result.message)

    def _on_snapshot(self, snapshot: TelemetrySnapshot) -> None:
        self._stability_samples.append(snapshot.stability)
        if self._sink is not None:
            self._sink.write(json.dumps(snapshot_to_jsonable(snapshot), sort_keys=True) + "\n")


def run_simulation_from_args(args: argparse.Namespace) -> RunSummary:
    """Execute one simulation run described by parsed CLI arguments."""
    if args.ticks <= 0:
        raise ValueError("--ticks must be > 0")
    config = load_simulation_config(args.config) if args.config is not None else SimulationConfig()
    actions = tuple(parse_scripted_action(value) for value in args.actions)
    for scripted in actions:
        if scripted.action not in {item.value for item in OperatorAction}:
            raise ValueError(f"unknown scripted action: {scripted.action}")

    rng = np.random.default_rng(args.seed)
    duration_ms = args.ticks * config.clock.tick_interval_ms

    with ExitStack() as stack:
        sink: IO[str] | None = None
        if args.output is not None:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            sink = stack.enter_context(args.output.open("w", encoding="utf-8"))

        if args.realtime:
            session = asyncio.run(
                _run_realtime(
                    config=config, rng=rng, actions=actions, autopilot=args.autopilot, sink=sink, duration_ms=duration_ms
                )
            )
        else:
            scheduler = VirtualScheduler()
            session = _RunSession(
                config=config, scheduler=scheduler, rng=rng, actions=actions, autopilot=args.autopilot, sink=sink
            )
            session.start()
            scheduler.advance(duration_ms)
            session.stop()

    simulation = session.simulation
    snapshot = simulation.get_telemetry_snapshot()
    return RunSummary(
        ticks=simulation.state.tick_count,
        final_state=snapshot.operating_state.value,
        final_stability=snapshot.stability,
        mean_stability=session.mean_stability(),
        scenarios_started=simulation.state.scenarios_started,
        scenarios_ended=simulation.state.scenarios_ended,
        actions_executed=session.actions_executed,
        status_line=format_telemetry_message(snapshot, simulation.channel_statuses(), simulation.config),
        deltas_line=" ".join(f"{channel.value}={format_delta(snapshot.deltas.get(channel))}" for channel in Channel),
        output_path=args.output,
    )


async def _run_realtime(
    *,
    config: SimulationConfig,
    rng: np.random.Generator,
    actions: Sequence[ScriptedAction],
    autopilot: bool,
    sink: IO[str] | None,
    duration_ms: int,
) -> _RunSession:
    session = _RunSession(
        config=config, scheduler=AsyncioScheduler(), rng=rng, actions=actions, autopilot=autopilot, sink=sink
    )
    session.start()
    try:
        # Half a period of slack so the final tick lands before the loop stops.
        await asyncio.sleep((duration_ms + config.clock.tick_interval_ms / 2) / 1000.0)
    finally:
        session.stop()
    return session


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entrypoint."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    try:
        summary = run_simulation_from_args(args)
    except Exception as exc:
        print(f"[ERROR] simulation run failed: {exc}", file=sys.stderr)
        return 2

    print(f"ticks: {summary.ticks}")
    print(f"final_state: {summary.final_state}")
    print(f"final_stability: {summary.final_stability:.1f}")
    print(f"mean_stability: {summary.mean_stability:.1f}")
    print(f"scenarios_started: {summary.scenarios_started}")
    print(f"scenarios_ended: {summary.scenarios_ended}")
    print(f"actions_executed: {summary.actions_executed}")
    print(f"status: {summary.status_line}")
    print(f"deltas: {summary.deltas_line}")
    if summary.output_path is not None:
        print(f"output: {summary.output_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
