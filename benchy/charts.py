from __future__ import annotations

import logging
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns

from .state import REASON_TIMEOUT

LOGGER = logging.getLogger("benchy.charts")

sns.set_style("whitegrid")
plt.rcParams["figure.dpi"] = 100
plt.rcParams["savefig.dpi"] = 200
plt.rcParams["font.size"] = 10
plt.rcParams["axes.titlesize"] = 13

OUTCOME_COLORS = {
    "created": "#2E86AB",
    "failed": "#C73E1D",
    "timeout": "#F18F01",
}


def outcome_label(success: bool, reason: str) -> str:
    if success:
        return "created"
    if reason == REASON_TIMEOUT:
        return "timeout"
    return "failed"


def render_latency_chart(df: pd.DataFrame, chart_path: str | Path) -> Path | None:
    """Render a histogram of mint completion time split by outcome."""

    chart_path = Path(chart_path)
    if df.empty or "elapsed_seconds" not in df.columns:
        LOGGER.warning("No completion data available for latency chart")
        return None

    data = df[df["terminal"].astype(bool)].copy()
    data = data[data["elapsed_seconds"].notna() & (data["elapsed_seconds"] >= 0)]
    if data.empty:
        LOGGER.warning("No terminal outcomes to chart")
        return None

    data["outcome"] = [
        outcome_label(bool(success), str(reason))
        for success, reason in zip(data["success"], data["reason"])
    ]
    hue_order = [label for label in OUTCOME_COLORS if label in set(data["outcome"])]

    fig, ax = plt.subplots(figsize=(10, 6))
    sns.histplot(
        data=data,
        x="elapsed_seconds",
        hue="outcome",
        hue_order=hue_order,
        palette=OUTCOME_COLORS,
        multiple="stack",
        ax=ax,
    )
    ax.set_xlabel("Completion time (seconds)", fontweight="semibold")
    ax.set_ylabel("Mints", fontweight="semibold")
    ax.set_title(f"Mint Completion Time ({len(data)} mints)", fontweight="bold", pad=15)
    ax.grid(True, alpha=0.3, linestyle="--", axis="y")
    ax.spines["top"].set_visible(False)
    ax.spines["right"].set_visible(False)

    chart_path.parent.mkdir(parents=True, exist_ok=True)
    plt.tight_layout()
    fig.savefig(chart_path, bbox_inches="tight", facecolor="white")
    plt.close(fig)
    LOGGER.info("Rendering chart %s", chart_path)
    return chart_path


__all__ = ["render_latency_chart"]
