from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import random
import signal
import threading
import time
from typing import Callable

from config import Config, ConfigError, load_config
from update_counter import NO_FULL_PERIOD, UpdateCounter
from update_loop import AdaptiveLoop

LOG = logging.getLogger("update_monitor")
LOOP_JOIN_TIMEOUT_SEC = 2.0


class SimulatedWorkload:
    """Update callback with a steady execution time and occasional spikes."""

    def __init__(
        self,
        counter: UpdateCounter,
        execution_ms: int,
        spike_ms: int,
        spike_percent: int,
        rng: random.Random | None = None,
        sleep: Callable[[float], None] | None = None,
    ):
        self.counter = counter
        self.execution_ms = execution_ms
        self.spike_ms = spike_ms
        self.spike_percent = spike_percent
        self.invocations = 0
        self.spikes = 0
        self._rng = rng or random.Random()
        self._sleep = sleep or time.sleep

    def __call__(self, loop: AdaptiveLoop) -> None:
        self.invocations += 1
        self.counter.increment()
        busy_ms = self.execution_ms
        if self._rng.randrange(100) < self.spike_percent:
            busy_ms += self.spike_ms
            self.spikes += 1
        if busy_ms > 0:
            self._sleep(busy_ms / 1000)


def format_report(updates: int, period_ns: int, report_period_ns: int) -> str:
    if updates == NO_FULL_PERIOD:
        return f"updates per period = n/a (first period running), period = {period_ns}ns"
    line = f"updates per period = {updates}, period = {period_ns}ns"
    if period_ns > 0 and updates > 0:
        expected = report_period_ns / period_ns
        line += f", expected/actual = {expected / updates:.4f}"
    return line


def run_monitor(
    config: Config,
    stop_event: threading.Event,
    rng: random.Random | None = None,
) -> SimulatedWorkload:
    counter = UpdateCounter(config.report_period_ns)
    workload = SimulatedWorkload(
        counter=counter,
        execution_ms=config.workload_execution_ms,
        spike_ms=config.workload_spike_ms,
        spike_percent=config.workload_spike_percent,
        rng=rng,
    )
    update_loop = AdaptiveLoop(
        workload,
        config.update_period_ns,
        config.update_window_capacity,
        name="workload-loop",
    )

    def _report(_loop: AdaptiveLoop) -> None:
        LOG.info(format_report(counter.value, update_loop.get_period(), config.report_period_ns))

    report_loop = AdaptiveLoop(_report, config.report_period_ns, name="report-loop")

    try:
        update_loop.start()
        report_loop.start()
        LOG.info(
            "Monitor started: period=%dns window=%d duration=%s",
            update_loop.get_period(),
            update_loop.window.capacity,
            f"{config.run_duration_sec}s" if config.run_duration_sec else "until interrupted",
        )
        stop_event.wait(timeout=config.run_duration_sec or None)
    finally:
        update_loop.stop()
        report_loop.stop()
        update_loop.join(timeout=LOOP_JOIN_TIMEOUT_SEC)
        report_loop.join(timeout=LOOP_JOIN_TIMEOUT_SEC)

    LOG.info(
        "Monitor stopped after %d updates (%d spikes, last full period: %d)",
        workload.invocations,
        workload.spikes,
        counter.value,
    )
    return workload


def show_config(config: Config) -> None:
    print(json.dumps(dataclasses.asdict(config), indent=2, sort_keys=True, default=str))


def _non_negative_int(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected an integer, got: {raw!r}") from exc
    if value < 0:
        raise argparse.ArgumentTypeError(f"must be >= 0, got: {value}")
    return value


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Adaptive update loop monitor")
    subparsers = parser.add_subparsers(dest="command", required=True)
    run_parser = subparsers.add_parser("run", help="Drive a simulated workload and log update rates")
    run_parser.add_argument("--period-ns", type=_non_negative_int, help="Override UPDATE_PERIOD_NS")
    run_parser.add_argument("--duration-sec", type=_non_negative_int, help="Override RUN_DURATION_SEC (0 = until interrupted)")
    subparsers.add_parser("show-config", help="Print the resolved configuration as JSON")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    try:
        config = load_config(".env")
    except ConfigError as exc:
        raise SystemExit(f"Config error: {exc}")
    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format="%(asctime)s %(levelname)s %(message)s",
    )

    if args.command == "show-config":
        show_config(config)
        return
    if args.command == "run":
        overrides = {}
        if args.period_ns is not None:
            overrides["update_period_ns"] = args.period_ns
        if args.duration_sec is not None:
            overrides["run_duration_sec"] = args.duration_sec
        config = dataclasses.replace(config, **overrides)

        stop_event = threading.Event()

        def _stop_handler(_signum, _frame):
            stop_event.set()

        signal.signal(signal.SIGINT, _stop_handler)
        signal.signal(signal.SIGTERM, _stop_handler)
        run_monitor(config, stop_event)
        return
    raise SystemExit(f"Unknown command: {args.command}")


if __name__ == "__main__":
    main()
