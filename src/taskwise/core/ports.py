# src/taskwise/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps storage/LLM providers/rate limiting swappable and makes testing easier.
"""

from typing import Any, Iterable, Protocol

ChatMessage = dict[str, str]
# OpenAI-style chat messages: {"role": "...", "content": "..."}.


class LLMClient(Protocol):
    """Streaming chat completion client (OpenAI-compatible)."""
    def stream_chat(self, messages: list[ChatMessage], system_prompt: str) -> Iterable[str]: ...


class RateLimiter(Protocol):
    """
    Token-bucket style limiter keyed by (limit name, caller key).

    Returns (ok, retry_after_seconds).
    """
    def limit(self, name: str, *, key: str) -> tuple[bool, float]: ...


class ScheduleRepo(Protocol):
    """Record-store port used by the scheduled-task sweep."""

    def list_enabled_due_schedules(self, now_ts: float) -> list[Any]: ...

    def create_task(
            self,
            *,
            user_id: str,
            title: str,
            description: str | None = None,
            priority: Any = None,  # Priority (kept as Any to avoid import coupling)
            due_date: float | None = None,
            tags: list[str] | None = None,
            source_key: str | None = None,
    ) -> tuple[int, bool]: ...

    def update_schedule_run_times(self, schedule_id: int, last_run: float, next_run: float) -> None: ...

