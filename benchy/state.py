from __future__ import annotations

import enum
import threading
from dataclasses import dataclass, field

REASON_TIMEOUT = "timeout"
REASON_REJECTED = "remote rejected"
REASON_RETRIED = "remote rejected, retried"
REASON_INTERRUPTED = "interrupted"


class RemoteStatus(enum.Enum):
    PENDING = "PENDING"
    CREATED = "CREATED"
    FAILED = "FAILED"

    @classmethod
    def parse(cls, value: object) -> "RemoteStatus":
        """Map a raw ``creationStatus`` onto a status, unknown values count as pending."""

        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            return cls.PENDING

    @property
    def is_terminal(self) -> bool:
        return self is not RemoteStatus.PENDING


@dataclass
class ItemState:
    """Mutable per-mint bookkeeping owned by the reconciliation loop."""

    item_id: str
    start_time: float
    last_pending_time: float | None = None
    retry_count: int = 0
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.last_pending_time is None or self.last_pending_time < self.start_time:
            self.last_pending_time = self.start_time

    def pending_for(self, now: float) -> float:
        return now - self.last_pending_time

    def mark_retried(self, now: float) -> None:
        self.retry_count += 1
        self.last_pending_time = max(now, self.start_time)

    def outcome(self, now: float, success: bool, reason: str = "", terminal: bool = True) -> "Outcome":
        return Outcome(
            item_id=self.item_id,
            elapsed_seconds=max(now - self.start_time, 0.0),
            retry_count=self.retry_count,
            success=success,
            reason=reason,
            terminal=terminal,
        )


@dataclass(frozen=True)
class Outcome:
    item_id: str
    elapsed_seconds: float
    retry_count: int
    success: bool
    reason: str = ""
    terminal: bool = True

    def as_row(self) -> dict[str, object]:
        return {
            "item_id": self.item_id,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
            "retry_count": self.retry_count,
            "success": self.success,
            "reason": self.reason,
            "terminal": self.terminal,
        }


__all__ = [
    "ItemState",
    "Outcome",
    "REASON_INTERRUPTED",
    "REASON_REJECTED",
    "REASON_RETRIED",
    "REASON_TIMEOUT",
    "RemoteStatus",
]
