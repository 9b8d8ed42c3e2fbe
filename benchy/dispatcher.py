from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable

from .config import Settings
from .hub import HubError
from .progress import SUBMITTED, ProgressTracker

LOGGER = logging.getLogger("benchy.dispatcher")


@dataclass
class DispatchStatistics:
    attempted: int = 0
    accepted: int = 0
    started_at: float = 0.0
    finished_at: float = 0.0
    errors: list[str] = field(default_factory=list)

    @property
    def rejected(self) -> int:
        return self.attempted - self.accepted

    @property
    def duration_s(self) -> float:
        return max(self.finished_at - self.started_at, 0.0)

    @property
    def throughput_per_minute(self) -> float:
        if self.duration_s == 0:
            return 0.0
        return self.accepted / self.duration_s * 60.0


class MintDispatcher:
    """Fires ``iterations`` rounds of ``parallelism`` concurrent mint submissions.

    A bounded semaphore acts as the permit pool: a permit is held only for the
    duration of one submit call, so no more than ``max_outstanding`` submissions
    are ever in flight.
    """

    def __init__(
        self,
        hub,
        settings: Settings,
        progress: ProgressTracker | None = None,
        clock: Callable[[], float] = time.monotonic,
        wait: Callable[[float], bool] | None = None,
        max_outstanding: int | None = None,
    ) -> None:
        self._hub = hub
        self._parallelism = settings.parallelism
        self._iterations = settings.iterations
        self._delay_seconds = settings.delay_seconds
        self._progress = progress or ProgressTracker()
        self._clock = clock
        self._stop_event = threading.Event()
        self._wait = wait or self._stop_event.wait
        self._permits = threading.BoundedSemaphore(max_outstanding or settings.parallelism)
        self._lock = threading.Lock()
        self.statistics = DispatchStatistics()
        self.accepted: dict[str, float] = {}

    def run(self) -> dict[str, float]:
        """Submit every round and return the accepted ``item_id -> start_time`` mapping."""

        self.accepted = {}
        self.statistics = DispatchStatistics(started_at=self._clock())

        with ThreadPoolExecutor(
            max_workers=self._parallelism, thread_name_prefix="benchy-submit"
        ) as executor:
            for iteration in range(1, self._iterations + 1):
                if self._stop_event.is_set():
                    LOGGER.warning("Dispatch stopped before iteration %d", iteration)
                    break

                LOGGER.debug("Starting iteration %d/%d", iteration, self._iterations)
                futures = [executor.submit(self._submit_once) for _ in range(self._parallelism)]
                for future in futures:
                    future.result()

                if iteration < self._iterations and self._delay_seconds > 0:
                    if self._wait(self._delay_seconds):
                        break

        with self._lock:
            accepted = dict(self.accepted)
        self.statistics.accepted = len(accepted)
        self.statistics.finished_at = self._clock()
        LOGGER.info(
            "Dispatched %d/%d mint requests in %.2fs (%.1f/min)",
            self.statistics.accepted,
            self.statistics.attempted,
            self.statistics.duration_s,
            self.statistics.throughput_per_minute,
        )
        return accepted

    def stop(self) -> None:
        self._stop_event.set()

    def _submit_once(self) -> str | None:
        try:
            with self._permits:
                start_time = self._clock()
                mint = self._hub.submit()
        except HubError as exc:
            self._register_attempt(error=str(exc))
            LOGGER.error("Mint request failed: %s", exc)
            return None
        except Exception as exc:  # noqa: BLE001
            self._register_attempt(error=repr(exc))
            LOGGER.exception("Mint request raised unexpectedly")
            return None

        self._register_attempt()
        with self._lock:
            if mint.id in self.accepted:
                LOGGER.warning("Hub returned duplicate mint id %s; ignoring", mint.id)
                return None
            self.accepted[mint.id] = start_time
        return mint.id

    def _register_attempt(self, error: str | None = None) -> None:
        with self._lock:
            self.statistics.attempted += 1
            if error is not None:
                self.statistics.errors.append(error)
        self._progress.increment(SUBMITTED)


__all__ = ["DispatchStatistics", "MintDispatcher"]
