# src/taskwise/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then either:
- `taskwise`        console REPL in the main thread, job scheduler in a background thread;
- `taskwise sweep`  runs one scheduled-task sweep and exits (for external cron).
"""

from __future__ import annotations

import argparse
import logging
import signal
import threading

from ..cli.bootstrap import create_initial_state, start_scheduler_in_background
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..logging_setup import setup_logging
from ..tasks.task_scheduler import process_scheduled_tasks

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="taskwise", description="To-do list with scheduled tasks and an AI assistant.")
    sub = parser.add_subparsers(dest="command")
    sub.add_parser("console", help="Interactive console (default).")
    sub.add_parser("sweep", help="Process due scheduled tasks once and exit.")
    sub.add_parser("serve", help="Run only the background job scheduler until interrupted.")
    return parser


def _run_sweep(state) -> int:
    result = process_scheduled_tasks(
        state.task_store,
        tz=state.tz,
        max_runtime_seconds=getattr(state.settings, "sweep_max_runtime_seconds", None),
    )
    print(
        f"processed={result.processed} created={result.created} dedup={result.deduplicated} "
        f"failed={result.failed} deferred={result.deferred}"
    )
    return 1 if result.failed else 0


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    command = args.command or "console"

    settings = get_settings()

    # choose console log level from settings.log_level
    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    log_file = setup_logging(log_dir=getattr(settings, "data_dir", ".local/taskwise"), console_level=console_level)

    logger.info("Starting %s (%s), log file %s", getattr(settings, "app_name", "taskwise"), command, log_file)

    state = create_initial_state(settings=settings)

    if command == "sweep":
        return _run_sweep(state)

    runner = start_scheduler_in_background(state)

    stop_main = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    try:
        signal.signal(signal.SIGTERM, _handle_signal)
        if command == "serve":
            signal.signal(signal.SIGINT, _handle_signal)
    except (ValueError, OSError):
        logger.debug("Signal handlers not installed.", exc_info=True)

    try:
        if command == "serve":
            logger.info("Running job scheduler only. Press Ctrl+C to stop.")
            stop_main.wait()
        else:
            run_console_loop(state)
    finally:
        if runner is not None:
            runner.stop()
            runner.join(timeout=10.0)
        state.task_store.close()
        logger.info("Bye.")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
