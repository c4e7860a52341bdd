# src/taskwise/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class Priority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def from_db(cls, raw: str | None) -> Priority:
        if not raw:
            return cls.MEDIUM
        try:
            return cls(raw)
        except ValueError:
            return cls.MEDIUM


class ThreadStatus(StrEnum):
    ACTIVE = "active"
    ARCHIVED = "archived"


class Theme(StrEnum):
    LIGHT = "light"
    DARK = "dark"
    SYSTEM = "system"


@dataclass(slots=True)
class Task:
    id: int
    user_id: str
    title: str
    description: str | None
    completed: bool
    completed_at: float | None
    priority: Priority
    due_date: float | None
    tags: list[str] | None
    created_at: float
    updated_at: float

    # "<schedule id>:<slot>" for tasks stamped out by the sweep.
    source_key: str | None = None


@dataclass(slots=True, frozen=True)
class TaskTemplate:
    """What a scheduled task stamps out on every run."""

    title: str
    priority: Priority = Priority.MEDIUM
    description: str | None = None
    tags: list[str] | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "title": self.title,
            "description": self.description,
            "priority": self.priority.value,
            "tags": list(self.tags) if self.tags is not None else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> TaskTemplate:
        tags = data.get("tags")
        description = data.get("description")
        return cls(
            title=str(data.get("title") or ""),
            priority=Priority.from_db(str(data.get("priority") or "")),
            description=str(description) if description is not None else None,
            tags=[str(t) for t in tags] if isinstance(tags, list) else None,
        )


@dataclass(slots=True)
class ScheduledTask:
    id: int
    user_id: str
    task_template: TaskTemplate
    cron_expression: str
    enabled: bool
    last_run: float | None
    next_run: float
    created_at: float
    updated_at: float


@dataclass(slots=True)
class Thread:
    id: int
    user_id: str
    title: str | None
    status: ThreadStatus
    created_at: float
    updated_at: float


@dataclass(slots=True)
class Message:
    id: int
    thread_id: int
    user_id: str
    role: str
    content: str
    created_at: float


@dataclass(slots=True)
class UserPreferences:
    user_id: str
    theme: Theme = Theme.SYSTEM
    default_priority: Priority = Priority.MEDIUM
    due_date_reminders: bool = True
    daily_digest: bool = False
    created_at: float = 0.0
    updated_at: float = 0.0
