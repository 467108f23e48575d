from __future__ import annotations

import threading
from dataclasses import dataclass


@dataclass(frozen=True)
class TimestampEntry:
    age: int
    value: int


class HistoryWindow:
    """Fixed-capacity ring of the most recent timestamps (nanoseconds)."""

    def __init__(self, capacity: int):
        if capacity <= 0:
            raise ValueError(f"capacity must be > 0, got: {capacity}")
        self._values: list[int] = [0] * capacity
        self._write_index = 0
        self._readable = 0
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return len(self._values)

    def __len__(self) -> int:
        with self._lock:
            return self._readable

    def insert(self, timestamp: int) -> None:
        with self._lock:
            self._values[self._write_index] = timestamp
            self._write_index = (self._write_index + 1) % len(self._values)
            if self._readable < len(self._values):
                self._readable += 1

    def oldest(self) -> TimestampEntry | None:
        with self._lock:
            if self._readable == 0:
                return None
            capacity = len(self._values)
            index = (capacity + self._write_index - self._readable) % capacity
            return TimestampEntry(age=self._readable - 1, value=self._values[index])

    def forget(self) -> None:
        # Stored values stay in place; they are unreadable until overwritten.
        with self._lock:
            self._readable = 0
