"""Unit tests for the headless simulation CLI."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from weldcell.cli.runner import build_parser, main, parse_scripted_action, run_simulation_from_args


def _write_config(tmp_path: Path, payload: dict[str, object]) -> Path:
    path = tmp_path / "weldcell.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_main_writes_one_jsonl_line_per_tick(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    output = tmp_path / "runs" / "telemetry.jsonl"

    exit_code = main(["--ticks", "5", "--seed", "3", "--output", str(output)])

    assert exit_code == 0
    lines = output.read_text(encoding="utf-8").splitlines()
    assert [json.loads(line)["tick"] for line in lines] == [1, 2, 3, 4, 5]
    assert json.loads(lines[-1])["timestamp_ms"] == 30_000

    captured = capsys.readouterr()
    assert "ticks: 5" in captured.out
    assert "final_state: " in captured.out
    assert "status: " in captured.out
    assert f"output: {output}" in captured.out


def test_scripted_pause_holds_until_end_of_run() -> None:
    args = build_parser().parse_args(["--ticks", "4", "--seed", "1", "--action", "1000:pause_line"])

    summary = run_simulation_from_args(args)

    assert summary.ticks == 4
    assert summary.final_state == "PAUSED"
    assert summary.actions_executed == 1
    assert summary.scenarios_started == 0


def test_config_file_sets_tick_period(tmp_path: Path) -> None:
    config_path = _write_config(tmp_path, {"clock": {"tick_interval_ms": 1000, "startup_stable_ms": 0}})
    args = build_parser().parse_args(["--ticks", "12", "--seed", "2", "--config", str(config_path)])

    summary = run_simulation_from_args(args)

    assert summary.ticks == 12
    assert summary.scenarios_started == 1


def test_autopilot_applies_recommended_fixes() -> None:
    args = build_parser().parse_args(["--ticks", "200", "--seed", "7", "--autopilot"])

    summary = run_simulation_from_args(args)

    assert summary.actions_executed >= 1
    assert summary.scenarios_ended >= 1
    assert 0.0 <= summary.mean_stability <= 100.0


def test_realtime_mode_ticks_on_event_loop(tmp_path: Path) -> None:
    config_path = _write_config(tmp_path, {"clock": {"tick_interval_ms": 20}})
    args = build_parser().parse_args(["--ticks", "3", "--seed", "4", "--realtime", "--config", str(config_path)])

    summary = run_simulation_from_args(args)

    assert 1 <= summary.ticks <= 4


def test_parse_scripted_action() -> None:
    scripted = parse_scripted_action("20000:increase_cooling")

    assert scripted.at_ms == 20_000
    assert scripted.action == "increase_cooling"

    for bad in ("increase_cooling", "soon:pause_line", "-5:pause_line", "100:"):
        with pytest.raises(ValueError):
            parse_scripted_action(bad)


@pytest.mark.parametrize(
    "argv",
    [
        ["--ticks", "0"],
        ["--ticks", "3", "--action", "1000:self_destruct"],
    ],
)
def test_main_reports_errors_with_exit_code_2(argv: list[str], capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = main(argv)

    assert exit_code == 2
    assert "[ERROR] simulation run failed" in capsys.readouterr().err


def test_main_reports_invalid_config(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    config_path = _write_config(tmp_path, {"clock": {"tick_ms": 1}})

    exit_code = main(["--ticks", "2", "--config", str(config_path)])

    assert exit_code == 2
    assert "unknown clock keys" in capsys.readouterr().err
