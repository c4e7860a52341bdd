# src/taskwise/tasks/task_scheduler.py

from __future__ import annotations

"""
Background jobs and the loop that triggers them.

Jobs:
- process-scheduled-tasks (every 15 minutes): stamp out tasks from due scheduled tasks.
- daily-digest (daily at 08:00): placeholder, only acknowledges that it ran.

The loop runs jobs one at a time, so two sweeps never overlap.
"""

import asyncio
import inspect
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, tzinfo
from typing import Any

from ..core.ports import ScheduleRepo
from .cron import calculate_next_run
from .task_models import ScheduledTask

logger = logging.getLogger(__name__)


# ---- sweep ----


@dataclass(slots=True)
class SweepResult:
    processed: int = 0
    created: int = 0
    deduplicated: int = 0
    failed: int = 0
    deferred: int = 0
    failed_ids: list[int] = field(default_factory=list)


def source_key_for(schedule: ScheduledTask) -> str:
    """Idempotency key of the task a schedule produces for its current slot."""
    return f"{schedule.id}:{int(schedule.next_run)}"


def _stamp_task(store: ScheduleRepo, schedule: ScheduledTask) -> tuple[int, bool]:
    tpl = schedule.task_template
    return store.create_task(
        user_id=schedule.user_id,
        title=tpl.title,
        description=tpl.description,
        priority=tpl.priority,
        tags=list(tpl.tags) if tpl.tags is not None else None,
        source_key=source_key_for(schedule),
    )


def process_scheduled_tasks(
        store: ScheduleRepo,
        *,
        now_ts: float | None = None,
        tz: tzinfo = UTC,
        max_runtime_seconds: float | None = None,
) -> SweepResult:
    """
    Create task instances from every enabled scheduled task whose next_run has passed.

    Per schedule:
    - create the task from its template (same user, completed=False)
    - on success: last_run = now, next_run = calculate_next_run(cron, now)
    - on failure: log, leave next_run untouched (retried on the next sweep), continue

    A failure on one schedule never aborts the sweep. If max_runtime_seconds is
    exceeded the remaining schedules are left due for the next cycle.
    """
    if now_ts is None:
        now_ts = time.time()

    due = store.list_enabled_due_schedules(now_ts)
    result = SweepResult()
    started = time.monotonic()

    for schedule in due:
        if max_runtime_seconds is not None and time.monotonic() - started > max_runtime_seconds:
            result.deferred = len(due) - result.processed
            logger.warning(
                "Sweep runtime budget exhausted after %d schedules; %d deferred",
                result.processed,
                result.deferred,
            )
            break

        result.processed += 1

        try:
            task_id, created = _stamp_task(store, schedule)
        except Exception:
            logger.exception("Failed to create task for scheduled task id=%s", schedule.id)
            result.failed += 1
            result.failed_ids.append(schedule.id)
            continue

        if created:
            result.created += 1
        else:
            result.deduplicated += 1

        try:
            next_run = calculate_next_run(schedule.cron_expression, now_ts, tz=tz)
            store.update_schedule_run_times(schedule.id, now_ts, next_run)
        except Exception:
            # The task exists with this slot's source_key; the retry will be deduplicated.
            logger.exception(
                "Failed to advance scheduled task id=%s after creating task id=%s",
                schedule.id,
                task_id,
            )
            result.failed += 1
            result.failed_ids.append(schedule.id)
            continue

        logger.debug(
            "Scheduled task id=%s -> task id=%s (created=%s), next_run=%s",
            schedule.id,
            task_id,
            created,
            next_run,
        )

    logger.info(
        "Processed %d scheduled tasks, created %d new tasks (dedup=%d failed=%d deferred=%d)",
        result.processed,
        result.created,
        result.deduplicated,
        result.failed,
        result.deferred,
    )
    return result


@dataclass(slots=True, frozen=True)
class DigestResult:
    sent: int = 0


def send_daily_digest() -> DigestResult:
    """Placeholder for a daily email summary; only records that it ran."""
    logger.info("Daily digest job ran (no delivery channel configured)")
    return DigestResult(sent=0)


# ---- job schedules ----


class Schedule:
    """Base class for job schedules."""


@dataclass(frozen=True)
class Every(Schedule):
    """Run at fixed intervals."""

    seconds: int = 15 * 60


@dataclass(frozen=True)
class DailyAt(Schedule):
    """Run once daily at the given wall-clock time (in the scheduler's timezone)."""

    hour: int = 8
    minute: int = 0


def next_fire_time(schedule: Schedule, after_ts: float, *, tz: tzinfo = UTC) -> float:
    if isinstance(schedule, Every):
        return after_ts + max(1, int(schedule.seconds))
    if isinstance(schedule, DailyAt):
        return calculate_next_run(f"{schedule.minute} {schedule.hour} * * *", after_ts, tz=tz)
    raise TypeError(f"unsupported schedule: {schedule!r}")


JobFunc = Callable[[], Any]


@dataclass
class Job:
    name: str
    func: JobFunc
    schedule: Schedule
    next_run_at: float | None = None
    last_run_at: float | None = None
    consecutive_failures: int = 0


def default_jobs(state: Any) -> list[Job]:
    """The two jobs the app ships with, wired to the given AppState."""
    settings = state.settings
    store = state.task_store
    tz = state.tz

    def sweep() -> SweepResult:
        return process_scheduled_tasks(
            store,
            tz=tz,
            max_runtime_seconds=getattr(settings, "sweep_max_runtime_seconds", None),
        )

    return [
        Job(
            name="process-scheduled-tasks",
            func=sweep,
            schedule=Every(seconds=int(getattr(settings, "sweep_interval_seconds", 15 * 60))),
        ),
        Job(
            name="daily-digest",
            func=send_daily_digest,
            schedule=DailyAt(
                hour=int(getattr(settings, "digest_hour", 8)),
                minute=int(getattr(settings, "digest_minute", 0)),
            ),
        ),
    ]


async def _run_job(job: Job) -> None:
    started = time.monotonic()
    try:
        result = job.func()
        if inspect.isawaitable(result):
            await result
        job.consecutive_failures = 0
        logger.info("Job %s finished in %.2fs", job.name, time.monotonic() - started)
    except Exception:
        job.consecutive_failures += 1
        logger.exception("Job %s failed (consecutive_failures=%d)", job.name, job.consecutive_failures)


async def run_job_scheduler(
        jobs: list[Job],
        *,
        tz: tzinfo = UTC,
        poll_interval_seconds: float = 30.0,
        run_immediately: bool = False,
        stop_event: asyncio.Event | None = None,
) -> None:
    """
    Simple polling scheduler.

    Every poll_interval_seconds:
    - run each job whose next_run_at <= now (sequentially, one at a time)
    - compute its next_run_at from its schedule

    Interval jobs first fire one interval after start unless run_immediately is set.
    Stop by setting stop_event or cancelling the coroutine/task.
    """
    sleep_s = max(0.01, float(poll_interval_seconds))
    start_ts = time.time()

    for job in jobs:
        if job.next_run_at is None:
            if run_immediately and isinstance(job.schedule, Every):
                job.next_run_at = start_ts
            else:
                job.next_run_at = next_fire_time(job.schedule, start_ts, tz=tz)
        logger.info("Job %s scheduled, first run at %s", job.name, job.next_run_at)

    while stop_event is None or not stop_event.is_set():
        now_ts = time.time()

        for job in jobs:
            if job.next_run_at is not None and job.next_run_at <= now_ts:
                await _run_job(job)
                job.last_run_at = now_ts
                job.next_run_at = next_fire_time(job.schedule, time.time(), tz=tz)

        if stop_event is None:
            await asyncio.sleep(sleep_s)
        else:
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=sleep_s)
            except asyncio.TimeoutError:
                pass

    logger.info("Job scheduler stopped.")
