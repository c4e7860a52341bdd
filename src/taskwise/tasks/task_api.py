# src/taskwise/tasks/task_api.py

"""
User-facing operations on tasks, scheduled tasks and preferences.

Every mutating call follows the same order:
rate limit -> validate -> load + ownership check -> store call.
Authentication happens outside; callers pass the authenticated user_id.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from ..core.errors import NotFoundError, PermissionDenied, RateLimitExceeded, ValidationError
from ..core.state import AppState
from .cron import InvalidExpression, calculate_next_run, is_valid_cron_expression
from .task_models import Priority, ScheduledTask, Task, TaskTemplate, Theme, UserPreferences
from .validation import (
    MAX_SCHEDULED_TASKS_PER_USER,
    is_valid_due_date,
    is_valid_tags,
    is_valid_task_description,
    is_valid_task_priority,
    is_valid_task_title,
)

logger = logging.getLogger(__name__)


def _check_rate(state: AppState, name: str, user_id: str) -> None:
    ok, retry_after = state.rate_limiter.limit(name, key=user_id)
    if not ok:
        raise RateLimitExceeded(name, retry_after)


def _priority(raw: Priority | str) -> Priority:
    if not is_valid_task_priority(str(raw)):
        raise ValidationError(f"Invalid priority: {raw!r} (expected low, medium or high)")
    return Priority(raw)


def _validate_task_fields(
    *,
    title: str | None = None,
    description: str | None = None,
    tags: list[str] | None = None,
    due_date: float | None = None,
) -> None:
    if title is not None and not is_valid_task_title(title):
        raise ValidationError("Task title must be between 1 and 200 characters")
    if description is not None and not is_valid_task_description(description):
        raise ValidationError("Task description must be less than 2000 characters")
    if tags is not None and not is_valid_tags(tags):
        raise ValidationError("Invalid tags: max 10 tags, each max 30 characters")
    if due_date is not None and not is_valid_due_date(due_date):
        raise ValidationError("Due date must be in the future")


def _owned_task(state: AppState, user_id: str, task_id: int, action: str) -> Task:
    task = state.task_store.get_task(task_id)
    if task is None:
        raise NotFoundError("Task not found")
    if task.user_id != user_id:
        raise PermissionDenied(f"Not authorized to {action} this task")
    return task


def _owned_schedule(state: AppState, user_id: str, schedule_id: int, action: str) -> ScheduledTask:
    schedule = state.task_store.get_scheduled_task(schedule_id)
    if schedule is None:
        raise NotFoundError("Scheduled task not found")
    if schedule.user_id != user_id:
        raise PermissionDenied(f"Not authorized to {action} this scheduled task")
    return schedule


# ---- tasks ----


def create_task(
    state: AppState,
    user_id: str,
    *,
    title: str,
    priority: Priority | str | None = None,
    description: str | None = None,
    due_date: float | None = None,
    tags: list[str] | None = None,
) -> int:
    _check_rate(state, "create_task", user_id)

    if priority is None:
        priority = state.task_store.get_or_create_preferences(user_id).default_priority
    prio = _priority(priority)
    _validate_task_fields(title=title, description=description, tags=tags, due_date=due_date)

    task_id, _ = state.task_store.create_task(
        user_id=user_id,
        title=title,
        description=description,
        priority=prio,
        due_date=due_date,
        tags=tags,
    )
    logger.info("Task created id=%s user=%s", task_id, user_id)
    return task_id


def list_tasks(
    state: AppState,
    user_id: str,
    *,
    completed: bool | None = None,
    priority: Priority | str | None = None,
) -> list[Task]:
    prio = _priority(priority) if priority is not None else None
    return state.task_store.list_tasks_for_user(user_id, completed=completed, priority=prio)


def upcoming_tasks(state: AppState, user_id: str) -> list[Task]:
    """Open tasks with a due date, soonest first."""
    tasks = [t for t in state.task_store.list_tasks_for_user(user_id, completed=False) if t.due_date]
    return sorted(tasks, key=lambda t: t.due_date or 0.0)


def overdue_tasks(state: AppState, user_id: str, *, now_ts: float | None = None) -> list[Task]:
    if now_ts is None:
        now_ts = time.time()
    return [
        t
        for t in state.task_store.list_tasks_for_user(user_id, completed=False)
        if t.due_date is not None and t.due_date < now_ts
    ]


def update_task(
    state: AppState,
    user_id: str,
    task_id: int,
    *,
    title: str | None = None,
    description: str | None = None,
    priority: Priority | str | None = None,
    due_date: float | None = None,
    tags: list[str] | None = None,
) -> None:
    _check_rate(state, "update_task", user_id)
    _owned_task(state, user_id, task_id, "update")
    _validate_task_fields(title=title, description=description, tags=tags, due_date=due_date)

    fields: dict[str, Any] = {}
    if title is not None:
        fields["title"] = title
    if description is not None:
        fields["description"] = description
    if priority is not None:
        fields["priority"] = _priority(priority)
    if due_date is not None:
        fields["due_date"] = due_date
    if tags is not None:
        fields["tags"] = tags

    state.task_store.update_task_fields(task_id, **fields)


def toggle_complete(state: AppState, user_id: str, task_id: int) -> bool:
    """Flip completion; returns the new completed flag."""
    _check_rate(state, "update_task", user_id)
    task = _owned_task(state, user_id, task_id, "update")

    completed = not task.completed
    state.task_store.set_task_completed(task_id, completed)
    return completed


def delete_task(state: AppState, user_id: str, task_id: int) -> None:
    _check_rate(state, "delete_task", user_id)
    _owned_task(state, user_id, task_id, "delete")
    state.task_store.delete_task(task_id)


def clear_completed(state: AppState, user_id: str) -> int:
    _check_rate(state, "delete_task", user_id)
    n = state.task_store.delete_completed_tasks(user_id)
    logger.info("Cleared %d completed tasks for user=%s", n, user_id)
    return n


# ---- scheduled tasks ----


def create_scheduled_task(
    state: AppState,
    user_id: str,
    *,
    title: str,
    cron_expression: str,
    priority: Priority | str = Priority.MEDIUM,
    description: str | None = None,
    tags: list[str] | None = None,
    now_ts: float | None = None,
) -> int:
    """
    Create an enabled schedule with its first next_run.

    Raises InvalidExpression for a malformed cron expression, before anything is persisted.
    """
    _check_rate(state, "create_scheduled_task", user_id)

    if not is_valid_cron_expression(cron_expression):
        raise InvalidExpression("Invalid cron expression")

    prio = _priority(priority)
    _validate_task_fields(title=title, description=description, tags=tags)

    if state.task_store.count_scheduled_tasks_for_user(user_id) >= MAX_SCHEDULED_TASKS_PER_USER:
        raise ValidationError(f"At most {MAX_SCHEDULED_TASKS_PER_USER} scheduled tasks per user")

    cron_expression = " ".join(cron_expression.split())
    next_run = calculate_next_run(cron_expression, now_ts, tz=state.tz)

    schedule_id = state.task_store.add_scheduled_task(
        user_id=user_id,
        template=TaskTemplate(title=title, priority=prio, description=description, tags=tags),
        cron_expression=cron_expression,
        next_run=next_run,
    )
    logger.info("Scheduled task created id=%s cron=%r next_run=%s", schedule_id, cron_expression, next_run)
    return schedule_id


def list_scheduled_tasks(state: AppState, user_id: str) -> list[ScheduledTask]:
    return state.task_store.list_scheduled_tasks_for_user(user_id)


def update_scheduled_task(
    state: AppState,
    user_id: str,
    schedule_id: int,
    *,
    title: str | None = None,
    description: str | None = None,
    priority: Priority | str | None = None,
    tags: list[str] | None = None,
    cron_expression: str | None = None,
    now_ts: float | None = None,
) -> None:
    """Merge template changes; a new cron expression also recomputes next_run."""
    _check_rate(state, "update_scheduled_task", user_id)
    schedule = _owned_schedule(state, user_id, schedule_id, "update")
    _validate_task_fields(title=title, description=description, tags=tags)

    tpl = schedule.task_template
    template: TaskTemplate | None = None
    if any(v is not None for v in (title, description, priority, tags)):
        template = TaskTemplate(
            title=title if title is not None else tpl.title,
            priority=_priority(priority) if priority is not None else tpl.priority,
            description=description if description is not None else tpl.description,
            tags=tags if tags is not None else tpl.tags,
        )

    next_run: float | None = None
    if cron_expression is not None:
        if not is_valid_cron_expression(cron_expression):
            raise InvalidExpression("Invalid cron expression")
        cron_expression = " ".join(cron_expression.split())
        next_run = calculate_next_run(cron_expression, now_ts, tz=state.tz)

    state.task_store.update_scheduled_task(
        schedule_id,
        template=template,
        cron_expression=cron_expression,
        next_run=next_run,
    )


def toggle_scheduled_task(state: AppState, user_id: str, schedule_id: int) -> bool:
    """Enable/disable; returns the new enabled flag."""
    schedule = _owned_schedule(state, user_id, schedule_id, "update")
    enabled = not schedule.enabled
    state.task_store.update_scheduled_task(schedule_id, enabled=enabled)
    logger.info("Scheduled task id=%s enabled=%s", schedule_id, enabled)
    return enabled


def delete_scheduled_task(state: AppState, user_id: str, schedule_id: int) -> None:
    _owned_schedule(state, user_id, schedule_id, "delete")
    state.task_store.delete_scheduled_task(schedule_id)


# ---- preferences ----


def get_preferences(state: AppState, user_id: str) -> UserPreferences:
    return state.task_store.get_or_create_preferences(user_id)


def update_preferences(
    state: AppState,
    user_id: str,
    *,
    theme: Theme | str | None = None,
    default_priority: Priority | str | None = None,
    due_date_reminders: bool | None = None,
    daily_digest: bool | None = None,
) -> UserPreferences:
    _check_rate(state, "update_preferences", user_id)

    fields: dict[str, Any] = {}
    if theme is not None:
        try:
            fields["theme"] = Theme(theme)
        except ValueError as e:
            raise ValidationError(f"Invalid theme: {theme!r}") from e
    if default_priority is not None:
        fields["default_priority"] = _priority(default_priority)
    if due_date_reminders is not None:
        fields["due_date_reminders"] = bool(due_date_reminders)
    if daily_digest is not None:
        fields["daily_digest"] = bool(daily_digest)

    state.task_store.update_preferences(user_id, **fields)
    return state.task_store.get_or_create_preferences(user_id)
