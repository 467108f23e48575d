from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from sliding_window import HistoryWindow

LOG = logging.getLogger("update_loop")
NANOS_PER_SECOND = 1_000_000_000
MIN_DERIVED_WINDOW_CAPACITY = 4


class LoopStateError(RuntimeError):
    pass


def derive_window_capacity(period_ns: int) -> int:
    """Enough slots to cover roughly one second of history, never fewer than 4."""
    if period_ns <= 0:
        return MIN_DERIVED_WINDOW_CAPACITY
    return max(MIN_DERIVED_WINDOW_CAPACITY, NANOS_PER_SECOND // period_ns)


def determine_sleep_time(window: HistoryWindow, current_time_ns: int, period_ns: int) -> float:
    """Return how many seconds to wait before the next invocation.

    The next target is anchored on the oldest timestamp still in the window:
    an entry recorded ``age`` invocations ago is due again ``age + 1`` periods
    after it was recorded. A result <= 0 means the deadline has passed.
    """
    oldest = window.oldest()
    if oldest is None:
        return 0.0
    target_ns = oldest.value + (oldest.age + 1) * period_ns
    return (target_ns - current_time_ns) / NANOS_PER_SECOND


class AdaptiveLoop:
    """Invokes ``callback(loop)`` every ``period_ns`` on average.

    ``set_period`` and ``stop`` may be called from any thread, including from
    inside the callback. Both wake a sleeping loop immediately.
    """

    def __init__(
        self,
        callback: Callable[["AdaptiveLoop"], None],
        period_ns: int,
        window_capacity: int | None = None,
        *,
        clock: Callable[[], int] | None = None,
        wait: Callable[[float], bool] | None = None,
        name: str = "update-loop",
    ):
        if not callable(callback):
            raise TypeError("callback must be callable")
        if period_ns < 0:
            raise ValueError(f"period_ns must be >= 0, got: {period_ns}")
        if window_capacity is None:
            window_capacity = derive_window_capacity(period_ns)
        self._window = HistoryWindow(window_capacity)
        self._callback = callback
        self._period_ns = int(period_ns)
        self._clock = clock or time.monotonic_ns
        self._wake_event = threading.Event()
        self._wait = wait or self._wake_event.wait
        self._stop_event = threading.Event()
        self._start_lock = threading.Lock()
        self._started = False
        self._thread: threading.Thread | None = None
        self.name = name

    @property
    def window(self) -> HistoryWindow:
        return self._window

    @property
    def period(self) -> int:
        return self._period_ns

    def get_period(self) -> int:
        return self._period_ns

    def set_period(self, period_ns: int) -> None:
        if period_ns < 0:
            raise ValueError(f"period_ns must be >= 0, got: {period_ns}")
        # Timestamps recorded under the old period would mix two cadences.
        self._window.forget()
        self._period_ns = int(period_ns)
        self._wake_event.set()
        LOG.info("%s period changed to %d ns", self.name, period_ns)

    @property
    def is_running(self) -> bool:
        return self._started and not self._stop_event.is_set()

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        self._claim_start()
        self._thread = threading.Thread(target=self._run_cycles, daemon=True, name=self.name)
        self._thread.start()

    def run(self) -> None:
        """Run the loop on the calling thread until ``stop`` is called."""
        self._claim_start()
        self._run_cycles()

    def stop(self) -> None:
        if not self._stop_event.is_set():
            LOG.debug("%s stop requested", self.name)
        self._stop_event.set()
        self._wake_event.set()

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout=timeout)

    def _claim_start(self) -> None:
        with self._start_lock:
            if self._stop_event.is_set():
                raise LoopStateError(f"{self.name} was stopped and cannot be restarted")
            if self._started:
                raise LoopStateError(f"{self.name} has already started")
            self._started = True

    def _run_cycles(self) -> None:
        LOG.debug("%s running with period %d ns", self.name, self._period_ns)
        while not self._stop_event.is_set():
            sleep_sec = determine_sleep_time(self._window, self._clock(), self._period_ns)
            if sleep_sec > 0:
                # Early wakes recompute instead of firing ahead of schedule.
                if self._wait(sleep_sec):
                    self._wake_event.clear()
                continue

            self._window.insert(self._clock())
            if self._stop_event.is_set():
                break
            try:
                self._callback(self)
            except Exception:
                LOG.exception("Unhandled exception in %s callback", self.name)
        LOG.debug("%s exited", self.name)
