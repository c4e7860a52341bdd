# src/taskwise/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from datetime import datetime
from typing import cast

from ..assistant import chat
from ..core.errors import TaskwiseError
from ..core.state import AppState
from ..tasks import task_api
from ..tasks.cron import InvalidExpression, describe_cron_expression
from ..tasks.dashboard import load_recent, load_summary
from ..tasks.task_models import Priority, Task
from ..tasks.task_scheduler import process_scheduled_tasks

CommandEmitter = Callable[[str], None]
CommandHandler3 = Callable[[AppState, list[str], str], str]
CommandHandler4 = Callable[[AppState, list[str], str, CommandEmitter | None], str]
CommandHandler = CommandHandler3 | CommandHandler4

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by connectors (/help, /tasks, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        user_id: str | None = None,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.

        TaskwiseError and InvalidExpression are rendered as their message.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        if user_id is None:
            user_id = str(getattr(state.settings, "user_id", "local"))

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 4

        try:
            if nparams >= 4:
                h4 = cast(CommandHandler4, handler)
                return h4(state, args, user_id, emit)
            h3 = cast(CommandHandler3, handler)
            return h3(state, args, user_id)
        except (TaskwiseError, InvalidExpression) as e:
            logger.debug("/%s rejected: %s", name, e)
            return f"Error: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _fmt_ts(state: AppState, ts: float | None) -> str:
    if ts is None:
        return "-"
    return datetime.fromtimestamp(ts, state.tz).strftime("%Y-%m-%d %H:%M")


def _parse_id(raw: str, what: str) -> int:
    try:
        return int(raw.lstrip("#"))
    except ValueError:
        raise TaskwiseError(f"Invalid {what} id: {raw!r}") from None


def _format_task(state: AppState, t: Task) -> str:
    mark = "x" if t.completed else " "
    line = f"[{mark}] #{t.id} {t.title} ({t.priority.value})"
    if t.due_date is not None:
        line += f" due {_fmt_ts(state, t.due_date)}"
    if t.tags:
        line += " " + " ".join(f"#{tag}" for tag in t.tags)
    return line


def _split_title(words: list[str]) -> tuple[str, Priority | None, list[str] | None]:
    """
    "!high Buy milk #home" -> ("Buy milk", HIGH, ["home"]).

    Words starting with "!" set the priority, words starting with "#" are tags.
    """
    priority: Priority | None = None
    tags: list[str] = []
    title_words: list[str] = []
    for w in words:
        if w.startswith("!") and w[1:].lower() in ("low", "medium", "high"):
            priority = Priority(w[1:].lower())
        elif w.startswith("#") and len(w) > 1:
            tags.append(w[1:])
        else:
            title_words.append(w)
    return " ".join(title_words), priority, tags or None


def cmd_help(state: AppState, args: list[str], user_id: str) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str], user_id: str) -> str:
    models = ", ".join(list(getattr(state.settings, "llm_models", []) or []))
    return (
        "Status:\n"
        f"  User: {user_id}\n"
        f"  Timezone: {state.tz}\n"
        f"  Database: {getattr(state.settings, 'tasks_db_path', '-')}\n"
        f"  Models (priority -> fallback): {models}"
    )


def cmd_tasks(state: AppState, args: list[str], user_id: str) -> str:
    """
    /tasks            -> all tasks
    /tasks active     -> open tasks
    /tasks done       -> completed tasks
    /tasks upcoming   -> open tasks with a due date, soonest first
    /tasks overdue    -> open tasks past their due date
    """
    view = args[0].lower() if args else "all"

    if view == "all":
        tasks = task_api.list_tasks(state, user_id)
    elif view == "active":
        tasks = task_api.list_tasks(state, user_id, completed=False)
    elif view == "done":
        tasks = task_api.list_tasks(state, user_id, completed=True)
    elif view == "upcoming":
        tasks = task_api.upcoming_tasks(state, user_id)
    elif view == "overdue":
        tasks = task_api.overdue_tasks(state, user_id)
    else:
        return "Usage: /tasks [all|active|done|upcoming|overdue]"

    if not tasks:
        return "No tasks."
    return "\n".join(_format_task(state, t) for t in tasks)


def cmd_add(state: AppState, args: list[str], user_id: str) -> str:
    title, priority, tags = _split_title(args)
    if not title:
        return "Usage: /add [!low|!medium|!high] <title> [#tag ...]"
    task_id = task_api.create_task(state, user_id, title=title, priority=priority, tags=tags)
    return f"Added task #{task_id}: {title}"


def cmd_done(state: AppState, args: list[str], user_id: str) -> str:
    if not args:
        return "Usage: /done <task id>"
    task_id = _parse_id(args[0], "task")
    completed = task_api.toggle_complete(state, user_id, task_id)
    return f"Task #{task_id} marked {'completed' if completed else 'active'}."


def cmd_rm(state: AppState, args: list[str], user_id: str) -> str:
    if not args:
        return "Usage: /rm <task id>"
    task_id = _parse_id(args[0], "task")
    task_api.delete_task(state, user_id, task_id)
    return f"Task #{task_id} deleted."


def cmd_clear(state: AppState, args: list[str], user_id: str) -> str:
    n = task_api.clear_completed(state, user_id)
    return f"Removed {n} completed task(s)."


def cmd_sched(state: AppState, args: list[str], user_id: str) -> str:
    """
    /sched list
    /sched add <m> <h> <dom> <mon> <dow> [!priority] <title> [#tag ...]
    /sched toggle <id>
    /sched rm <id>
    """
    usage = (
        "Usage:\n"
        "  /sched list\n"
        "  /sched add <min> <hour> <dom> <mon> <dow> [!priority] <title> [#tag ...]\n"
        "  /sched toggle <id>\n"
        "  /sched rm <id>"
    )
    if not args:
        return usage

    sub = args[0].lower()

    if sub in ("list", "ls"):
        schedules = task_api.list_scheduled_tasks(state, user_id)
        if not schedules:
            return "No scheduled tasks."
        lines = []
        for s in schedules:
            flag = "on " if s.enabled else "off"
            lines.append(
                f"[{flag}] #{s.id} {s.task_template.title} - "
                f"{describe_cron_expression(s.cron_expression)}; next {_fmt_ts(state, s.next_run)}"
            )
        return "\n".join(lines)

    if sub == "add":
        if len(args) < 7:
            return usage
        cron_expression = " ".join(args[1:6])
        title, priority, tags = _split_title(args[6:])
        schedule_id = task_api.create_scheduled_task(
            state,
            user_id,
            title=title,
            cron_expression=cron_expression,
            priority=priority or Priority.MEDIUM,
            tags=tags,
        )
        schedule = state.task_store.get_scheduled_task(schedule_id)
        next_run = schedule.next_run if schedule is not None else None
        return (
            f"Scheduled #{schedule_id}: {title} ({describe_cron_expression(cron_expression)}), "
            f"first run {_fmt_ts(state, next_run)}"
        )

    if sub == "toggle" and len(args) > 1:
        schedule_id = _parse_id(args[1], "scheduled task")
        enabled = task_api.toggle_scheduled_task(state, user_id, schedule_id)
        return f"Scheduled task #{schedule_id} {'enabled' if enabled else 'disabled'}."

    if sub in ("rm", "delete") and len(args) > 1:
        schedule_id = _parse_id(args[1], "scheduled task")
        task_api.delete_scheduled_task(state, user_id, schedule_id)
        return f"Scheduled task #{schedule_id} deleted."

    return usage


def cmd_sweep(state: AppState, args: list[str], user_id: str, emit: CommandEmitter | None = None) -> str:
    if emit:
        emit("[SCHED] Processing due scheduled tasks...")
    result = process_scheduled_tasks(
        state.task_store,
        tz=state.tz,
        max_runtime_seconds=getattr(state.settings, "sweep_max_runtime_seconds", None),
    )
    line = f"Processed {result.processed} scheduled task(s), created {result.created} new task(s)."
    if result.failed:
        line += f" Failed: {', '.join(f'#{i}' for i in result.failed_ids)}."
    if result.deferred:
        line += f" Deferred: {result.deferred}."
    return line


def cmd_dash(state: AppState, args: list[str], user_id: str) -> str:
    scope = None if args and args[0].lower() == "all" else user_id
    s = load_summary(state.task_store, scope)
    lines = [
        "Dashboard" + (" (all users)" if scope is None else ""),
        f"  Tasks: {s.total_tasks} total, {s.active_tasks} active, "
        f"{s.completed_tasks} completed, {s.overdue_tasks} overdue",
        f"  Priority: {s.high_priority_tasks} high, {s.medium_priority_tasks} medium, "
        f"{s.low_priority_tasks} low",
        f"  Scheduled tasks: {s.scheduled_tasks_count}",
        f"  Threads: {s.threads_count} ({s.per_table.messages} messages)",
        f"  Total records: {s.total_records}",
    ]
    recent = load_recent(state.task_store, scope)
    if recent:
        lines.append("  Recent:")
        for r in recent:
            status = "completed" if r.completed else "active"
            lines.append(f"    #{r.id} {r.title} ({r.priority.value}, {status})")
    return "\n".join(lines)


def cmd_thread(state: AppState, args: list[str], user_id: str) -> str:
    """
    /thread            -> list active threads
    /thread all        -> list all threads
    /thread new [title]
    /thread use <id>
    /thread archive <id>
    /thread rm <id>
    """
    sub = args[0].lower() if args else "list"

    if sub in ("list", "all"):
        threads = chat.list_threads(state, user_id, active_only=(sub == "list"))
        if not threads:
            return "No threads."
        lines = []
        for t in threads:
            cur = "*" if t.id == state.active_thread_id else " "
            lines.append(f"{cur} #{t.id} {t.title or 'Untitled'} [{t.status.value}] {_fmt_ts(state, t.updated_at)}")
        return "\n".join(lines)

    if sub == "new":
        title = " ".join(args[1:]) or None
        thread_id = chat.create_thread(state, user_id, title=title)
        state.active_thread_id = thread_id
        return f"Started thread #{thread_id}."

    if sub == "use" and len(args) > 1:
        thread_id = _parse_id(args[1], "thread")
        messages = chat.get_messages(state, user_id, thread_id)
        state.active_thread_id = thread_id
        return f"Switched to thread #{thread_id} ({len(messages)} messages)."

    if sub == "archive" and len(args) > 1:
        thread_id = _parse_id(args[1], "thread")
        chat.archive_thread(state, user_id, thread_id)
        if state.active_thread_id == thread_id:
            state.active_thread_id = None
        return f"Thread #{thread_id} archived."

    if sub in ("rm", "delete") and len(args) > 1:
        thread_id = _parse_id(args[1], "thread")
        chat.delete_thread(state, user_id, thread_id)
        if state.active_thread_id == thread_id:
            state.active_thread_id = None
        return f"Thread #{thread_id} deleted."

    return "Usage: /thread [all] | /thread new [title] | /thread use|archive|rm <id>"


def cmd_prefs(state: AppState, args: list[str], user_id: str) -> str:
    """
    /prefs                          -> show preferences
    /prefs theme light|dark|system
    /prefs priority low|medium|high
    /prefs reminders on|off
    /prefs digest on|off
    """
    if not args:
        p = task_api.get_preferences(state, user_id)
    else:
        if len(args) < 2:
            return "Usage: /prefs [theme|priority|reminders|digest] <value>"
        key, value = args[0].lower(), args[1].lower()
        flag = value in ("on", "1", "true", "yes")
        if key == "theme":
            p = task_api.update_preferences(state, user_id, theme=value)
        elif key == "priority":
            p = task_api.update_preferences(state, user_id, default_priority=value)
        elif key == "reminders":
            p = task_api.update_preferences(state, user_id, due_date_reminders=flag)
        elif key == "digest":
            p = task_api.update_preferences(state, user_id, daily_digest=flag)
        else:
            return f"Unknown preference: {key}"

    return (
        "Preferences:\n"
        f"  theme: {p.theme.value}\n"
        f"  default priority: {p.default_priority.value}\n"
        f"  due date reminders: {'on' if p.due_date_reminders else 'off'}\n"
        f"  daily digest: {'on' if p.daily_digest else 'off'}"
    )


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show current settings (user/timezone/models).")
registry.register("tasks", cmd_tasks, help_text="List tasks: /tasks [all|active|done|upcoming|overdue].", aliases=["ls"])
registry.register("add", cmd_add, help_text="Add a task: /add [!high] <title> [#tag].")
registry.register("done", cmd_done, help_text="Toggle completion: /done <id>.")
registry.register("rm", cmd_rm, help_text="Delete a task: /rm <id>.")
registry.register("clear", cmd_clear, help_text="Delete all completed tasks.")
registry.register("sched", cmd_sched, help_text="Scheduled tasks: /sched list | add | toggle | rm.")
registry.register("sweep", cmd_sweep, help_text="Run the scheduled-task sweep now.")
registry.register("dash", cmd_dash, help_text="Dashboard counters: /dash [all].")
registry.register("thread", cmd_thread, help_text="Assistant threads: /thread [all|new|use|archive|rm].")
registry.register("prefs", cmd_prefs, help_text="Show or change preferences.")
