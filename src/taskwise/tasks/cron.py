# src/taskwise/tasks/cron.py

"""
Cron helpers.

Pure functions for validating cron expressions, computing the next run time of a
scheduled task and rendering an expression for display. No storage access.

Only the "fixed daily time" shape ("M H * * *") is evaluated exactly. Every other
expression (hourly, weekly, steps, lists...) falls back to "one calendar day later,
same wall-clock time". Stored schedules depend on this behavior.
"""

from __future__ import annotations

import time
from datetime import UTC, datetime, timedelta, tzinfo

WILDCARD = "*"


class InvalidExpression(ValueError):
    """Cron expression does not have exactly five whitespace-separated fields."""


def _fields(cron_expression: str) -> list[str]:
    return (cron_expression or "").split()


def is_valid_cron_expression(cron_expression: str) -> bool:
    """Basic validation: minute hour day-of-month month day-of-week."""
    return len(_fields(cron_expression)) == 5


def _parse_daily_time(minute: str, hour: str) -> tuple[int, int] | None:
    if not (minute.isdigit() and hour.isdigit()):
        return None
    m, h = int(minute), int(hour)
    if m > 59 or h > 23:
        return None
    return h, m


def calculate_next_run(
    cron_expression: str,
    from_ts: float | None = None,
    *,
    tz: tzinfo = UTC,
) -> float:
    """
    Return the next UNIX timestamp at which a schedule should fire.

    - "M H * * *": today at H:M in `tz`, or tomorrow if that is not after `from_ts`.
    - anything else: `from_ts` plus one calendar day (same wall-clock time in `tz`).

    Raises InvalidExpression if the expression is not five fields.
    """
    parts = _fields(cron_expression)
    if len(parts) != 5:
        raise InvalidExpression(f"Invalid cron expression: {cron_expression!r}")

    if from_ts is None:
        from_ts = time.time()

    minute, hour, day_of_month, month, day_of_week = parts
    start = datetime.fromtimestamp(from_ts, tz=tz)

    daily = (
        minute != WILDCARD
        and hour != WILDCARD
        and day_of_month == WILDCARD
        and month == WILDCARD
        and day_of_week == WILDCARD
    )
    hm = _parse_daily_time(minute, hour) if daily else None

    if hm is not None:
        target_hour, target_minute = hm
        candidate = start.replace(hour=target_hour, minute=target_minute, second=0, microsecond=0)
        if candidate.timestamp() <= from_ts:
            candidate = candidate + timedelta(days=1)
        return candidate.timestamp()

    # Aware datetime arithmetic keeps the wall-clock time across DST changes.
    return (start + timedelta(days=1)).timestamp()


def describe_cron_expression(cron_expression: str) -> str:
    """Human-readable description for display. Never raises."""
    parts = _fields(cron_expression) if isinstance(cron_expression, str) else []
    if len(parts) != 5:
        return "Invalid cron expression"

    minute, hour, day_of_month, month, day_of_week = parts

    if (
        minute != WILDCARD
        and hour != WILDCARD
        and day_of_month == WILDCARD
        and month == WILDCARD
        and day_of_week == WILDCARD
    ):
        return f"Daily at {hour.rjust(2, '0')}:{minute.rjust(2, '0')}"

    if minute != WILDCARD and hour == WILDCARD:
        return f"Every hour at {minute} minutes"

    return f"Custom: {cron_expression}"
