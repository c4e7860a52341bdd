# src/taskwise/core/state.py

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import UTC, tzinfo
from typing import Any

from ..tasks.task_store import TaskStore
from .ports import LLMClient, RateLimiter


@dataclass
class AppState:
    """
    Long-lived services, built once by the composition root (cli/bootstrap.py)
    and passed by reference to connectors, APIs and background jobs.
    """

    settings: Any
    llm: LLMClient
    task_store: TaskStore
    rate_limiter: RateLimiter

    # Assistant thread the console is currently talking in.
    active_thread_id: int | None = None

    # Serializes console commands against each other.
    lock: threading.Lock = field(default_factory=threading.Lock)

    @property
    def tz(self) -> tzinfo:
        return getattr(self.settings, "tz", None) or UTC
