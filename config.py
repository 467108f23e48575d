from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class Config:
    update_period_ns: int
    update_window_capacity: int | None
    report_period_ns: int
    workload_execution_ms: int
    workload_spike_ms: int
    workload_spike_percent: int
    run_duration_sec: int
    log_level: str
    env_file_path: Path


def _get_int(name: str, default: int, minimum: int = 1) -> int:
    raw = os.getenv(name, str(default)).strip()
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got: {raw!r}") from exc
    if value < minimum:
        raise ConfigError(f"{name} must be >= {minimum}, got: {value}")
    return value


def _get_optional_int(name: str, minimum: int = 1) -> int | None:
    raw = os.getenv(name, "").strip()
    if not raw:
        return None
    return _get_int(name, 0, minimum=minimum)


def _get_log_level(name: str, default: str) -> str:
    value = (os.getenv(name, default).strip() or default).upper()
    if not isinstance(logging.getLevelName(value), int):
        raise ConfigError(f"{name} must be a logging level name, got: {value!r}")
    return value


def load_config(env_file: str | None = ".env") -> Config:
    if env_file:
        load_dotenv(env_file)
        env_file_path = Path(env_file).expanduser().resolve()
    else:
        load_dotenv()
        env_file_path = Path(".env").resolve()

    workload_spike_percent = _get_int("WORKLOAD_SPIKE_PERCENT", 2, minimum=0)
    if workload_spike_percent > 100:
        raise ConfigError(
            f"WORKLOAD_SPIKE_PERCENT must be <= 100, got: {workload_spike_percent}"
        )

    return Config(
        update_period_ns=_get_int("UPDATE_PERIOD_NS", 20_000_000, minimum=0),
        update_window_capacity=_get_optional_int("UPDATE_WINDOW_CAPACITY"),
        report_period_ns=_get_int("REPORT_PERIOD_NS", 1_000_000_000),
        workload_execution_ms=_get_int("WORKLOAD_EXECUTION_MS", 3, minimum=0),
        workload_spike_ms=_get_int("WORKLOAD_SPIKE_MS", 200, minimum=0),
        workload_spike_percent=workload_spike_percent,
        run_duration_sec=_get_int("RUN_DURATION_SEC", 10, minimum=0),
        log_level=_get_log_level("LOG_LEVEL", "INFO"),
        env_file_path=env_file_path,
    )
