# src/taskwise/assistant/chat.py

"""
AI assistant conversations.

Threads and messages are stored in the TaskStore. send_message():
- checks rate limit, message length and thread ownership,
- persists the user message,
- prefixes the question with a summary of the user's tasks,
- streams the LLM reply (thread history as context),
- persists the assistant message only if the stream completed.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from ..core.errors import NotFoundError, PermissionDenied, RateLimitExceeded, ValidationError
from ..core.ports import ChatMessage
from ..core.state import AppState
from ..tasks.task_models import Message, Task, Thread, ThreadStatus
from ..tasks.validation import is_valid_message_content, is_valid_thread_title
from .persona import get_system_prompt

logger = logging.getLogger(__name__)

RECENT_TASKS_IN_CONTEXT = 5
MAX_HISTORY_MESSAGES = 40


def _check_rate(state: AppState, name: str, user_id: str) -> None:
    ok, retry_after = state.rate_limiter.limit(name, key=user_id)
    if not ok:
        raise RateLimitExceeded(name, retry_after)


def _owned_thread(state: AppState, user_id: str, thread_id: int, action: str) -> Thread:
    thread = state.task_store.get_thread(thread_id)
    if thread is None:
        raise NotFoundError("Thread not found")
    if thread.user_id != user_id:
        raise PermissionDenied(f"Not authorized to {action} this thread")
    return thread


# ---- threads ----


def create_thread(state: AppState, user_id: str, *, title: str | None = None) -> int:
    _check_rate(state, "create_thread", user_id)
    if title is not None and not is_valid_thread_title(title):
        raise ValidationError("Thread title must be between 1 and 200 characters")
    thread_id = state.task_store.create_thread(user_id=user_id, title=title)
    logger.info("Thread created id=%s user=%s", thread_id, user_id)
    return thread_id


def list_threads(state: AppState, user_id: str, *, active_only: bool = False) -> list[Thread]:
    status = ThreadStatus.ACTIVE if active_only else None
    return state.task_store.list_threads_for_user(user_id, status=status)


def get_messages(state: AppState, user_id: str, thread_id: int) -> list[Message]:
    _owned_thread(state, user_id, thread_id, "view")
    return state.task_store.list_messages(thread_id)


def archive_thread(state: AppState, user_id: str, thread_id: int) -> None:
    _owned_thread(state, user_id, thread_id, "archive")
    state.task_store.set_thread_status(thread_id, ThreadStatus.ARCHIVED)


def delete_thread(state: AppState, user_id: str, thread_id: int) -> None:
    """Delete a thread and all of its messages."""
    _owned_thread(state, user_id, thread_id, "delete")
    n = state.task_store.delete_messages_for_thread(thread_id)
    state.task_store.delete_thread(thread_id)
    logger.info("Thread deleted id=%s (messages=%d)", thread_id, n)


# ---- conversation ----


def _format_task_line(t: Task) -> str:
    status = "completed" if t.completed else "active"
    return f"- {t.title} ({t.priority.value} priority, {status})"


def build_task_context(tasks: list[Task]) -> str:
    """Short task-list summary injected in front of the user's question."""
    active = sum(1 for t in tasks if not t.completed)
    completed = len(tasks) - active
    lines = [
        f"User has {len(tasks)} total tasks.",
        f"Active tasks: {active}",
        f"Completed tasks: {completed}",
        "",
        "Recent tasks:",
        *(_format_task_line(t) for t in tasks[:RECENT_TASKS_IN_CONTEXT]),
    ]
    return "\n".join(lines)


def _history_for_llm(messages: list[Message]) -> list[ChatMessage]:
    out: list[ChatMessage] = []
    for m in messages[-MAX_HISTORY_MESSAGES:]:
        role = m.role if m.role in ("user", "assistant") else "user"
        out.append({"role": role, "content": m.content})
    return out


def stream_message(state: AppState, user_id: str, thread_id: int, content: str) -> Iterator[str]:
    """
    Send a message to the assistant and stream the reply.

    The assistant message is stored after the stream is fully consumed.
    """
    _check_rate(state, "send_message", user_id)
    if not is_valid_message_content(content):
        raise ValidationError("Message must be between 1 and 10000 characters")
    _owned_thread(state, user_id, thread_id, "access")

    history = _history_for_llm(state.task_store.list_messages(thread_id))
    state.task_store.add_message(thread_id=thread_id, user_id=user_id, role="user", content=content)

    context = build_task_context(state.task_store.list_tasks_for_user(user_id))
    messages: list[ChatMessage] = [
        *history,
        {"role": "user", "content": f"{context}\n\nUser question: {content}"},
    ]

    return _stream_and_store(state, user_id, thread_id, state.llm.stream_chat(messages, get_system_prompt()))


def _stream_and_store(
    state: AppState,
    user_id: str,
    thread_id: int,
    pieces: Iterable[str],
) -> Iterator[str]:
    parts: list[str] = []
    for piece in pieces:
        if piece:
            parts.append(piece)
            yield piece

    reply = "".join(parts).strip()
    if not reply:
        logger.warning("Assistant produced no content for thread id=%s", thread_id)
        return

    state.task_store.add_message(thread_id=thread_id, user_id=user_id, role="assistant", content=reply)


def send_message(state: AppState, user_id: str, thread_id: int, content: str) -> str:
    """Non-streaming variant of stream_message(); returns the full reply."""
    return "".join(stream_message(state, user_id, thread_id, content))
