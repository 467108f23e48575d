from __future__ import annotations

import json
import threading
from pathlib import Path

import pytest

import app
from app import SimulatedWorkload, format_report, run_monitor
from config import Config
from update_counter import NO_FULL_PERIOD, UpdateCounter


class ScriptedRandom:
    def __init__(self, values: list[int]):
        self.values = list(values)

    def randrange(self, stop: int) -> int:
        assert stop == 100
        return self.values.pop(0)


def _make_config(tmp_path: Path, **overrides) -> Config:
    values = dict(
        update_period_ns=10_000_000,
        update_window_capacity=None,
        report_period_ns=100_000_000,
        workload_execution_ms=0,
        workload_spike_ms=0,
        workload_spike_percent=0,
        run_duration_sec=1,
        log_level="INFO",
        env_file_path=(tmp_path / ".env"),
    )
    values.update(overrides)
    return Config(**values)


def test_workload_sleeps_execution_time_plus_occasional_spike():
    sleeps: list[float] = []
    counter = UpdateCounter(1000, clock=lambda: 0)
    workload = SimulatedWorkload(
        counter=counter,
        execution_ms=3,
        spike_ms=200,
        spike_percent=2,
        rng=ScriptedRandom([50, 1, 2]),
        sleep=sleeps.append,
    )

    for _ in range(3):
        workload(None)

    assert sleeps == pytest.approx([0.003, 0.203, 0.003])
    assert workload.invocations == 3
    assert workload.spikes == 1


def test_workload_without_busy_time_does_not_sleep():
    sleeps: list[float] = []
    workload = SimulatedWorkload(
        counter=UpdateCounter(),
        execution_ms=0,
        spike_ms=0,
        spike_percent=0,
        rng=ScriptedRandom([99]),
        sleep=sleeps.append,
    )
    workload(None)
    assert sleeps == []


def test_format_report_lines():
    assert "n/a" in format_report(NO_FULL_PERIOD, 20_000_000, 1_000_000_000)
    assert format_report(50, 20_000_000, 1_000_000_000) == (
        "updates per period = 50, period = 20000000ns, expected/actual = 1.0000"
    )
    assert format_report(0, 0, 1_000_000_000) == "updates per period = 0, period = 0ns"


def test_run_monitor_drives_workload_for_configured_duration(tmp_path: Path, caplog):
    caplog.set_level("INFO", logger="update_monitor")
    config = _make_config(tmp_path)

    workload = run_monitor(config, threading.Event())

    assert 50 <= workload.invocations <= 150
    assert workload.spikes == 0
    assert "updates per period" in caplog.text
    assert "Monitor stopped after" in caplog.text


def test_run_monitor_returns_when_stop_event_is_set(tmp_path: Path):
    config = _make_config(tmp_path, run_duration_sec=0)
    stop_event = threading.Event()
    timer = threading.Timer(0.2, stop_event.set)
    timer.start()
    try:
        workload = run_monitor(config, stop_event)
    finally:
        timer.cancel()
    assert workload.invocations >= 1


def test_show_config_command_prints_json(tmp_path: Path, monkeypatch, capsys):
    (tmp_path / ".env").write_text("UPDATE_PERIOD_NS=16666667\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)

    app.main(["show-config"])

    printed = json.loads(capsys.readouterr().out)
    assert printed["update_period_ns"] == 16_666_667
    assert printed["update_window_capacity"] is None
    assert printed["env_file_path"] == str((tmp_path / ".env").resolve())


def test_run_command_rejects_negative_period_override():
    with pytest.raises(SystemExit):
        app.parse_args(["run", "--period-ns", "-5"])


def test_invalid_config_exits(tmp_path: Path, monkeypatch):
    (tmp_path / ".env").write_text("REPORT_PERIOD_NS=0\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)

    with pytest.raises(SystemExit) as exc:
        app.main(["show-config"])
    assert "REPORT_PERIOD_NS" in str(exc.value.code)
