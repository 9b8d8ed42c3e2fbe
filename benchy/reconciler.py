from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import Callable, Mapping

from .config import Settings
from .hub import HubError
from .progress import FAILED, RETRIED, SUCCEEDED, ProgressTracker
from .recorder import OutcomeRecorder
from .state import (
    REASON_INTERRUPTED,
    REASON_REJECTED,
    REASON_RETRIED,
    REASON_TIMEOUT,
    ItemState,
    Outcome,
    RemoteStatus,
)

LOGGER = logging.getLogger("benchy.reconciler")


class ReconciliationLoop:
    """Polls every in-flight mint once per round until each one resolves.

    Each round fans out one status check per in-flight mint and waits for all
    of them before sleeping ``poll_interval_seconds``. A mint leaves the
    in-flight set exactly once, when its terminal outcome is recorded.
    """

    def __init__(
        self,
        hub,
        settings: Settings,
        recorder: OutcomeRecorder | None = None,
        progress: ProgressTracker | None = None,
        clock: Callable[[], float] = time.monotonic,
        wait: Callable[[float], bool] | None = None,
    ) -> None:
        self._hub = hub
        self._pending_timeout = settings.pending_timeout_seconds
        self._poll_interval = settings.poll_interval_seconds
        self._retry_enabled = settings.retry_enabled
        self._max_retries = settings.max_retries
        self.recorder = recorder or OutcomeRecorder()
        self._progress = progress or ProgressTracker()
        self._clock = clock
        self._stop_event = threading.Event()
        self._wait = wait or self._stop_event.wait
        self._in_flight: dict[str, ItemState] = {}
        self._resolved: list[Outcome] = []
        self.rounds = 0

    @property
    def in_flight(self) -> list[str]:
        return list(self._in_flight)

    def track(self, accepted: Mapping[str, float]) -> int:
        """Add accepted mints to the in-flight set, skipping ones already known."""

        added = 0
        for item_id, start_time in accepted.items():
            if item_id in self._in_flight or self.recorder.has_terminal(item_id):
                continue
            self._in_flight[item_id] = ItemState(item_id=item_id, start_time=start_time)
            added += 1
        return added

    def run(self, accepted: Mapping[str, float] | None = None) -> list[Outcome]:
        """Reconcile ``accepted`` mints and return their terminal outcomes."""

        if accepted:
            self.track(accepted)
        LOGGER.info("Verifying status of %d mint(s)", len(self._in_flight))

        while self._in_flight:
            if self._stop_event.is_set():
                break
            self._run_round()
            if not self._in_flight:
                break
            LOGGER.debug(
                "%d mint(s) still pending after round %d; sleeping %ss",
                len(self._in_flight),
                self.rounds,
                self._poll_interval,
            )
            if self._wait(self._poll_interval):
                break

        if self._in_flight:
            self.abandon()
        return list(self._resolved)

    def stop(self) -> None:
        self._stop_event.set()

    def abandon(self, reason: str = REASON_INTERRUPTED) -> list[Outcome]:
        """Resolve every mint still in flight as a failure with ``reason``."""

        abandoned = []
        for item in list(self._in_flight.values()):
            if self.recorder.has_terminal(item.item_id):
                del self._in_flight[item.item_id]
                continue
            with item.lock:
                abandoned.append(item.outcome(self._clock(), success=False, reason=reason))
        if abandoned:
            LOGGER.warning("Abandoning %d mint(s) still in flight: %s", len(abandoned), reason)
        for outcome in abandoned:
            self._apply(outcome)
        return abandoned

    def _run_round(self) -> None:
        self.rounds += 1
        items = list(self._in_flight.values())
        futures: list[Future] = []
        applied: set[Future] = set()
        try:
            with ThreadPoolExecutor(
                max_workers=len(items), thread_name_prefix="benchy-verify"
            ) as executor:
                futures = [executor.submit(self._reconcile, item) for item in items]
                for future in as_completed(futures):
                    applied.add(future)
                    self._apply_result(future.result())
        except KeyboardInterrupt:
            # Workers have finished by now; keep what they observed.
            for future in futures:
                if future not in applied and future.done() and not future.cancelled():
                    self._apply_result(future.result())
            raise

    def _apply_result(self, outcome: Outcome | None) -> None:
        if outcome is not None:
            self._apply(outcome)

    def _apply(self, outcome: Outcome) -> None:
        self.recorder.record(outcome)
        if not outcome.terminal:
            self._progress.increment(RETRIED)
            return
        del self._in_flight[outcome.item_id]
        self._resolved.append(outcome)
        self._progress.increment(SUCCEEDED if outcome.success else FAILED)

    def _reconcile(self, item: ItemState) -> Outcome | None:
        with item.lock:
            try:
                return self._check(item)
            except Exception as exc:  # noqa: BLE001
                LOGGER.exception("Unexpected failure while verifying mint %s", item.item_id)
                return item.outcome(self._clock(), success=False, reason=repr(exc))

    def _check(self, item: ItemState) -> Outcome | None:
        now = self._clock()
        if item.pending_for(now) > self._pending_timeout:
            LOGGER.error(
                "Mint %s is still pending after %s seconds",
                item.item_id,
                self._pending_timeout,
            )
            return item.outcome(now, success=False, reason=REASON_TIMEOUT)

        try:
            status = self._hub.check_status(item.item_id)
        except HubError as exc:
            message = f"Failed to verify mint {item.item_id}: {exc}"
            LOGGER.error("%s", message)
            return item.outcome(self._clock(), success=False, reason=message)

        now = self._clock()
        if status is RemoteStatus.CREATED:
            return item.outcome(now, success=True)
        if status is not RemoteStatus.FAILED:
            return None
        if not self._retry_enabled:
            return item.outcome(now, success=False, reason=REASON_REJECTED)
        if self._max_retries is not None and item.retry_count >= self._max_retries:
            LOGGER.error("Mint %s failed after %d retries", item.item_id, item.retry_count)
            return item.outcome(now, success=False, reason=REASON_REJECTED)

        try:
            self._hub.retry(item.item_id)
        except HubError as exc:
            LOGGER.error("Retry of FAILED mint %s was not accepted: %s", item.item_id, exc)
            return None
        except Exception:  # noqa: BLE001
            LOGGER.exception("Retry of FAILED mint %s raised unexpectedly", item.item_id)
            return None

        item.mark_retried(self._clock())
        LOGGER.info("Retrying FAILED mint %s (attempt %d)", item.item_id, item.retry_count)
        return item.outcome(now, success=False, reason=REASON_RETRIED, terminal=False)


__all__ = ["ReconciliationLoop"]
