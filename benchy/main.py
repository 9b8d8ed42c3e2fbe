from __future__ import annotations

import argparse
import logging
import os
import sys
import threading
import time
from pathlib import Path
from typing import Callable

from .config import BenchmarkConfig, ConfigurationError, load_config
from .dispatcher import MintDispatcher
from .hub import HubClient
from .progress import (
    FAILED,
    RETRIED,
    SUBMITTED,
    SUCCEEDED,
    LoggingProgressListener,
    ProgressTracker,
)
from .reconciler import ReconciliationLoop
from .recorder import OutcomeRecorder
from .report import RunSummary, log_summary, outcomes_dataframe, summarise, write_csv

LOGGER = logging.getLogger("benchy")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="benchy", description="A CLI to benchmark Hub minting speed"
    )
    parser.add_argument(
        "--config",
        default=os.environ.get("CONFIG_PATH", "./config.json"),
        help="Config path",
    )
    parser.add_argument(
        "--output",
        default=os.environ.get("OUTPUT_PATH", "./output.csv"),
        help="CSV report output path",
    )
    parser.add_argument(
        "-p", "--parallelism", type=int, help="Number of concurrent requests"
    )
    parser.add_argument("-i", "--iterations", type=int, help="Number of iterations to run")
    parser.add_argument(
        "-d", "--delay", type=float, help="Wait delay in seconds between each iteration"
    )
    parser.add_argument(
        "-r",
        "--retry",
        action="store_true",
        default=None,
        help="Retry mints the Hub reports as FAILED",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        help="Seconds a mint may stay pending before it is reported as timed out",
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        help="Seconds between status verification rounds",
    )
    parser.add_argument(
        "--max-retries",
        type=int,
        help="Give up on a FAILED mint after this many retries (default: unlimited)",
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("BENCHY_LOG_LEVEL"),
        help="Logging level (overrides the config file)",
    )
    parser.add_argument(
        "--log-file",
        default=os.environ.get("BENCHY_LOG_FILE"),
        help="Also write logs to this file",
    )
    parser.add_argument(
        "--chart",
        default=os.environ.get("BENCHY_CHART_PATH"),
        help="Optional PNG path for a completion time chart",
    )
    parser.add_argument(
        "--include-retries",
        action="store_true",
        help="Also write intermediate retry notifications to the CSV report",
    )
    return parser.parse_args(argv)


def setup_logging(level: str, log_path: str | Path | None = None) -> None:
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_path:
        path = Path(log_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, mode="w", encoding="utf-8"))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
        force=True,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)


def build_config(args: argparse.Namespace) -> BenchmarkConfig:
    config = load_config(args.config)
    settings = config.settings.merge(
        parallelism=args.parallelism,
        iterations=args.iterations,
        delay_seconds=args.delay,
        retry_enabled=args.retry,
        pending_timeout_seconds=args.timeout,
        poll_interval_seconds=args.poll_interval,
        max_retries=args.max_retries,
        log_level=args.log_level,
    )
    return config.with_settings(settings.validate())


def run_benchmark(
    hub,
    config: BenchmarkConfig,
    output_path: str | Path,
    chart_path: str | Path | None = None,
    include_retries: bool = False,
    clock: Callable[[], float] = time.monotonic,
    wait: Callable[[float], bool] | None = None,
) -> RunSummary:
    """Dispatch, reconcile and report a full benchmark run."""

    settings = config.settings
    wait = wait or threading.Event().wait
    totals = {name: settings.total_mints for name in (SUBMITTED, SUCCEEDED, FAILED, RETRIED)}
    progress = ProgressTracker(listeners=[LoggingProgressListener(totals)])
    recorder = OutcomeRecorder()
    dispatcher = MintDispatcher(hub, settings, progress=progress, clock=clock, wait=wait)
    reconciler = ReconciliationLoop(
        hub, settings, recorder=recorder, progress=progress, clock=clock, wait=wait
    )

    LOGGER.info(
        "Starting benchmark: parallelism=%d iterations=%d delay=%ss retry=%s timeout=%ss poll=%ss",
        settings.parallelism,
        settings.iterations,
        settings.delay_seconds,
        settings.retry_enabled,
        settings.pending_timeout_seconds,
        settings.poll_interval_seconds,
    )
    try:
        accepted = dispatcher.run()
        LOGGER.info("All mint requests sent!")
        if dispatcher.statistics.rejected:
            LOGGER.warning(
                "%d mint request(s) were rejected and are excluded from the report",
                dispatcher.statistics.rejected,
            )

        if accepted and settings.iterations < 2:
            LOGGER.info(
                "Waiting %s seconds before starting mint status verification",
                settings.poll_interval_seconds,
            )
            wait(settings.poll_interval_seconds)

        reconciler.run(accepted)
    except KeyboardInterrupt:
        LOGGER.warning("Benchmark interrupted; resolving mints still in flight")
        dispatcher.stop()
        reconciler.stop()
        reconciler.track(dispatcher.accepted)
        reconciler.abandon()

    progress.log_summary()
    df = outcomes_dataframe(recorder.outcomes(include_intermediate=include_retries))
    write_csv(df, output_path)
    summary = summarise(df)
    log_summary(summary)

    if chart_path:
        from .charts import render_latency_chart

        render_latency_chart(df, chart_path)
    return summary


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    try:
        config = build_config(args)
    except ConfigurationError as exc:
        setup_logging(args.log_level or "info", args.log_file)
        LOGGER.error("Unable to read config. Exiting: %s", exc)
        return 1

    setup_logging(config.settings.log_level, args.log_file)
    LOGGER.info("Config: %s", args.config)
    LOGGER.info("Report output: %s", args.output)

    with HubClient(config.hub, config.mint) as hub:
        run_benchmark(
            hub,
            config,
            output_path=args.output,
            chart_path=args.chart,
            include_retries=args.include_retries,
        )
    return 0


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
