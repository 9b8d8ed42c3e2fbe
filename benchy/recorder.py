from __future__ import annotations

import collections
import threading

from .state import Outcome


class OutcomeRecorder:
    """Append-only store of every outcome emitted during a run."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: list[Outcome] = []
        self._terminal_ids: set[str] = set()

    def record(self, outcome: Outcome) -> None:
        with self._lock:
            if outcome.terminal:
                if outcome.item_id in self._terminal_ids:
                    raise ValueError(f"item {outcome.item_id} already has a terminal outcome")
                self._terminal_ids.add(outcome.item_id)
            self._records.append(outcome)

    def outcomes(self, include_intermediate: bool = False) -> list[Outcome]:
        with self._lock:
            if include_intermediate:
                return list(self._records)
            return [outcome for outcome in self._records if outcome.terminal]

    def has_terminal(self, item_id: str) -> bool:
        with self._lock:
            return item_id in self._terminal_ids

    def __len__(self) -> int:
        with self._lock:
            return len(self._terminal_ids)

    def summaries(self) -> dict[str, int]:
        with self._lock:
            counter = collections.Counter(
                "succeeded" if outcome.success else "failed"
                for outcome in self._records
                if outcome.terminal
            )
        return dict(counter)


__all__ = ["OutcomeRecorder"]
