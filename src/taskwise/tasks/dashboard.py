# src/taskwise/tasks/dashboard.py

from __future__ import annotations

from dataclasses import dataclass

from .task_models import Priority, Task
from .task_store import TaskStore


@dataclass(slots=True, frozen=True)
class TableCounts:
    tasks: int
    threads: int
    messages: int
    scheduled_tasks: int
    user_preferences: int

    @property
    def total(self) -> int:
        return self.tasks + self.threads + self.messages + self.scheduled_tasks + self.user_preferences


@dataclass(slots=True, frozen=True)
class DashboardSummary:
    per_table: TableCounts
    total_tasks: int
    completed_tasks: int
    active_tasks: int
    overdue_tasks: int
    high_priority_tasks: int
    medium_priority_tasks: int
    low_priority_tasks: int

    @property
    def total_records(self) -> int:
        return self.per_table.total

    @property
    def scheduled_tasks_count(self) -> int:
        return self.per_table.scheduled_tasks

    @property
    def threads_count(self) -> int:
        return self.per_table.threads


@dataclass(slots=True, frozen=True)
class RecentTask:
    id: int
    title: str
    priority: Priority
    completed: bool
    due_date: float | None
    updated_at: float

    @classmethod
    def from_task(cls, task: Task) -> RecentTask:
        return cls(
            id=task.id,
            title=task.title or "Untitled",
            priority=task.priority,
            completed=task.completed,
            due_date=task.due_date,
            updated_at=task.updated_at,
        )


def load_summary(store: TaskStore, user_id: str | None = None, *, now_ts: float | None = None) -> DashboardSummary:
    """Aggregate counters, scoped to one user when user_id is given."""
    per_table = TableCounts(
        tasks=store.count_rows("tasks", user_id),
        threads=store.count_rows("threads", user_id),
        messages=store.count_rows("messages", user_id),
        scheduled_tasks=store.count_rows("scheduled_tasks", user_id),
        user_preferences=store.count_rows("user_preferences", user_id),
    )
    c = store.task_counters(user_id, now_ts=now_ts)
    return DashboardSummary(
        per_table=per_table,
        total_tasks=c["total"],
        completed_tasks=c["completed"],
        active_tasks=c["active"],
        overdue_tasks=c["overdue"],
        high_priority_tasks=c["high"],
        medium_priority_tasks=c["medium"],
        low_priority_tasks=c["low"],
    )


def load_recent(store: TaskStore, user_id: str | None = None, *, limit: int = 5) -> list[RecentTask]:
    """Most recently updated tasks."""
    return [RecentTask.from_task(t) for t in store.list_recent_tasks(user_id, limit=limit)]
