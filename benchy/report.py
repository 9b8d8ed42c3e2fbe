from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

import numpy as np
import pandas as pd

from .state import REASON_TIMEOUT, Outcome

LOGGER = logging.getLogger("benchy.report")

COLUMNS = ["item_id", "elapsed_seconds", "retry_count", "success", "reason", "terminal"]


@dataclass(frozen=True)
class RunSummary:
    total: int
    succeeded: int
    failed: int
    timed_out: int
    retried_items: int
    total_retries: int
    mean_elapsed_s: float
    p50_elapsed_s: float
    p95_elapsed_s: float

    def message(self) -> str:
        if self.failed > 0:
            return f"{self.failed} mints failed!"
        return "All mints created successfully!"


def outcomes_dataframe(outcomes: Iterable[Outcome]) -> pd.DataFrame:
    rows = [outcome.as_row() for outcome in outcomes]
    if not rows:
        return pd.DataFrame(columns=COLUMNS)
    return pd.DataFrame(rows, columns=COLUMNS)


def write_csv(df: pd.DataFrame, path: str | Path) -> Path:
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(output_path, index=False)
    LOGGER.info("Report saved to %s (%d rows)", output_path, len(df))
    return output_path


def summarise(df: pd.DataFrame) -> RunSummary:
    """Aggregate terminal rows of an outcomes dataframe."""

    terminal = df[df["terminal"].astype(bool)] if not df.empty else df
    if terminal.empty:
        return RunSummary(0, 0, 0, 0, 0, 0, 0.0, 0.0, 0.0)

    success = terminal["success"].astype(bool)
    retries = terminal["retry_count"].astype(int)
    elapsed = terminal["elapsed_seconds"].astype(float).to_numpy()
    return RunSummary(
        total=len(terminal),
        succeeded=int(success.sum()),
        failed=int((~success).sum()),
        timed_out=int((terminal["reason"] == REASON_TIMEOUT).sum()),
        retried_items=int((retries > 0).sum()),
        total_retries=int(retries.sum()),
        mean_elapsed_s=float(np.mean(elapsed)),
        p50_elapsed_s=float(np.percentile(elapsed, 50)),
        p95_elapsed_s=float(np.percentile(elapsed, 95)),
    )


def log_summary(summary: RunSummary) -> None:
    LOGGER.info(
        "Mints: total=%d succeeded=%d failed=%d timed_out=%d retried=%d (retries=%d)",
        summary.total,
        summary.succeeded,
        summary.failed,
        summary.timed_out,
        summary.retried_items,
        summary.total_retries,
    )
    LOGGER.info(
        "Completion time: mean=%.2fs p50=%.2fs p95=%.2fs",
        summary.mean_elapsed_s,
        summary.p50_elapsed_s,
        summary.p95_elapsed_s,
    )
    LOGGER.info("%s", summary.message())


__all__ = [
    "COLUMNS",
    "RunSummary",
    "log_summary",
    "outcomes_dataframe",
    "summarise",
    "write_csv",
]
