# src/taskwise/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (LLM/store/rate limiter),
- starts the job scheduler in a background thread.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from dataclasses import dataclass

from ..config import get_settings
from ..core.ports import LLMClient
from ..core.ratelimit import TokenBucketRateLimiter
from ..core.state import AppState
from ..llm.client import OpenAILLMClient
from ..llm.offline import OfflineLLMClient
from ..tasks.task_scheduler import default_jobs, run_job_scheduler
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    llm_client: LLMClient
    try:
        llm_client = OpenAILLMClient(settings)
    except RuntimeError as e:
        logger.warning("LLM client unavailable (%s); using offline assistant.", e)
        llm_client = OfflineLLMClient()

    return AppState(
        settings=settings,
        llm=llm_client,
        task_store=TaskStore(settings.tasks_db_path),
        rate_limiter=TokenBucketRateLimiter(),
    )


@dataclass
class SchedulerBackgroundRunner:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    stop_event: asyncio.Event

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.stop_event.set)
        except RuntimeError:
            logger.debug("Failed to signal scheduler stop.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


def start_scheduler_in_background(state: AppState) -> SchedulerBackgroundRunner | None:
    """
    Run the job scheduler on its own event loop in a daemon thread,
    so the blocking console REPL can run in the main thread.
    """
    settings = state.settings
    if not getattr(settings, "scheduler_enabled", True):
        logger.info("Job scheduler disabled, not starting.")
        return None

    ready = threading.Event()
    holder: dict[str, object] = {}

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        stop_event = asyncio.Event()

        holder["loop"] = loop
        holder["stop_event"] = stop_event
        ready.set()

        try:
            loop.run_until_complete(
                run_job_scheduler(
                    default_jobs(state),
                    tz=state.tz,
                    poll_interval_seconds=float(getattr(settings, "scheduler_poll_seconds", 30.0)),
                    stop_event=stop_event,
                )
            )
        finally:
            with contextlib.suppress(Exception):
                loop.close()

    t = threading.Thread(target=runner, name="taskwise-scheduler", daemon=True)
    t.start()

    ready.wait(timeout=5.0)
    loop = holder.get("loop")
    stop_event = holder.get("stop_event")

    if not isinstance(loop, asyncio.AbstractEventLoop) or not isinstance(stop_event, asyncio.Event):
        logger.error("Scheduler thread did not initialize properly.")
        return None

    logger.info("Job scheduler background thread started.")
    return SchedulerBackgroundRunner(thread=t, loop=loop, stop_event=stop_event)
