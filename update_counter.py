from __future__ import annotations

import time
from typing import Callable

NO_FULL_PERIOD = -1


class UpdateCounter:
    """Counts events per fixed period, e.g. updates per second.

    ``increment`` must always be called from the same thread. ``value`` may be
    read from any thread; it is the count of the last full period, or -1 while
    the first period is still running.
    """

    def __init__(self, period_ns: int = 1_000_000_000, *, clock: Callable[[], int] | None = None):
        if period_ns <= 0:
            raise ValueError(f"period_ns must be > 0, got: {period_ns}")
        self.period_ns = period_ns
        self._clock = clock or time.monotonic_ns
        self._reference_ns: int | None = None
        self._count = 0
        self._value = NO_FULL_PERIOD

    @property
    def value(self) -> int:
        return self._value

    def increment(self, current_time_ns: int | None = None) -> None:
        now = self._clock() if current_time_ns is None else current_time_ns
        if self._reference_ns is None:
            self._reference_ns = now

        if now - self._reference_ns >= self.period_ns:
            self._value = self._count
            self._count = 0
            self._reference_ns = now

        self._count += 1
