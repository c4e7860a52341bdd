# src/taskwise/tasks/validation.py

"""Input validation helpers and limits (pure functions, no storage access)."""

from __future__ import annotations

import time
from typing import Final

from .task_models import Priority

MAX_TITLE_LENGTH: Final[int] = 200
MAX_DESCRIPTION_LENGTH: Final[int] = 2000
MAX_TAGS: Final[int] = 10
MAX_TAG_LENGTH: Final[int] = 30

MAX_THREAD_TITLE_LENGTH: Final[int] = 200
MAX_MESSAGE_LENGTH: Final[int] = 10000

MAX_SCHEDULED_TASKS_PER_USER: Final[int] = 50


def is_valid_task_title(title: str) -> bool:
    return 0 < len(title.strip()) <= MAX_TITLE_LENGTH


def is_valid_task_description(description: str) -> bool:
    return len(description) <= MAX_DESCRIPTION_LENGTH


def is_valid_task_priority(priority: str) -> bool:
    return priority in {p.value for p in Priority}


def is_valid_due_date(due_date: float | None, now_ts: float | None = None) -> bool:
    """Due date must be in the future (or not set)."""
    if due_date is None:
        return True
    if now_ts is None:
        now_ts = time.time()
    return due_date > now_ts


def is_valid_tags(tags: list[str] | None) -> bool:
    if tags is None:
        return True
    if len(tags) > MAX_TAGS:
        return False
    return all(0 < len(tag) <= MAX_TAG_LENGTH for tag in tags)


def is_valid_thread_title(title: str) -> bool:
    return 0 < len(title.strip()) <= MAX_THREAD_TITLE_LENGTH


def is_valid_message_content(content: str) -> bool:
    return 0 < len(content) <= MAX_MESSAGE_LENGTH
