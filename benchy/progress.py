from __future__ import annotations

import collections
import logging
import threading
from typing import Callable, Iterable, Mapping

LOGGER = logging.getLogger("benchy.progress")

SUBMITTED = "submitted"
SUCCEEDED = "succeeded"
FAILED = "failed"
RETRIED = "retried"

COUNTERS: tuple[str, ...] = (SUBMITTED, SUCCEEDED, FAILED, RETRIED)

ProgressListener = Callable[[str, dict[str, int]], None]


class ProgressTracker:
    """Thread-safe run counters that notify listeners on every change.

    Listener failures are logged and never reach the caller.
    """

    def __init__(
        self,
        listeners: Iterable[ProgressListener] = (),
    ) -> None:
        self.counters: collections.Counter[str] = collections.Counter()
        self._listeners = list(listeners)
        self._lock = threading.Lock()

    def add_listener(self, listener: ProgressListener) -> None:
        self._listeners.append(listener)

    def increment(self, name: str, amount: int = 1) -> None:
        with self._lock:
            self.counters[name] += amount
            snapshot = dict(self.counters)
        for listener in self._listeners:
            try:
                listener(name, snapshot)
            except Exception:  # noqa: BLE001
                LOGGER.exception("progress listener failed")

    def snapshot(self) -> dict[str, int]:
        with self._lock:
            return {name: self.counters.get(name, 0) for name in COUNTERS}

    def log_summary(self) -> None:
        snapshot = self.snapshot()
        LOGGER.info(
            "Progress: %s",
            ", ".join(f"{name}={snapshot[name]}" for name in COUNTERS),
        )


class LoggingProgressListener:
    """Logs a progress line every ``every`` increments of a counter."""

    def __init__(self, totals: Mapping[str, int], every: int = 10) -> None:
        self._totals = dict(totals)
        self._every = max(every, 1)

    def __call__(self, name: str, snapshot: dict[str, int]) -> None:
        count = snapshot.get(name, 0)
        total = self._totals.get(name)
        if count % self._every and count != total:
            return
        if total:
            LOGGER.info("%s: %d/%d", name, count, total)
        else:
            LOGGER.info("%s: %d", name, count)


__all__ = [
    "COUNTERS",
    "FAILED",
    "LoggingProgressListener",
    "ProgressTracker",
    "RETRIED",
    "SUBMITTED",
    "SUCCEEDED",
]
