# src/taskwise/tasks/task_store.py

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
import time
from pathlib import Path
from typing import Any

from .task_models import (
    Message,
    Priority,
    ScheduledTask,
    Task,
    TaskTemplate,
    Theme,
    Thread,
    ThreadStatus,
    UserPreferences,
)

logger = logging.getLogger(__name__)

_TASK_FIELDS = {"title", "description", "priority", "due_date", "tags"}
_PREF_FIELDS = {"theme", "default_priority", "due_date_reminders", "daily_digest"}


class TaskStore:
    """
    SQLite record store for tasks, scheduled tasks, assistant threads/messages
    and user preferences.

    The schema is intentionally simple and migration-safe:
    - create tables if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - each method opens its own SQLite connection
    - every public call is a single transaction; there is no cross-call transaction
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        try:
            total = self.count_rows("tasks")
        except sqlite3.Error:
            total = -1
        logger.info("TaskStore ready db=%s tasks=%s", self._db_path, total)

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    title TEXT NOT NULL,
                    description TEXT,
                    completed INTEGER NOT NULL DEFAULT 0,
                    completed_at REAL,
                    priority TEXT NOT NULL DEFAULT 'medium',
                    due_date REAL,
                    tags TEXT,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS scheduled_tasks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    task_template TEXT NOT NULL,
                    cron_expression TEXT NOT NULL,
                    enabled INTEGER NOT NULL DEFAULT 1,
                    last_run REAL,
                    next_run REAL NOT NULL,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS threads (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    title TEXT,
                    status TEXT NOT NULL DEFAULT 'active',
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS messages (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    thread_id INTEGER NOT NULL,
                    user_id TEXT NOT NULL,
                    role TEXT NOT NULL,
                    content TEXT NOT NULL,
                    created_at REAL NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS user_preferences (
                    user_id TEXT PRIMARY KEY,
                    theme TEXT NOT NULL DEFAULT 'system',
                    default_priority TEXT NOT NULL DEFAULT 'medium',
                    due_date_reminders INTEGER NOT NULL DEFAULT 1,
                    daily_digest INTEGER NOT NULL DEFAULT 0,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )

            # Migrations (safe): add missing columns.
            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added tasks.%s", name)

            add_col("source_key", "TEXT")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_user ON tasks(user_id, completed)")
            cur.execute(
                "CREATE UNIQUE INDEX IF NOT EXISTS idx_tasks_source_key "
                "ON tasks(source_key) WHERE source_key IS NOT NULL"
            )
            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_sched_enabled_next ON scheduled_tasks(enabled, next_run)"
            )
            cur.execute("CREATE INDEX IF NOT EXISTS idx_sched_user ON scheduled_tasks(user_id)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_threads_user ON threads(user_id, status)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_messages_thread ON messages(thread_id)")

            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _json_dumps(value: Any) -> str | None:
        if value is None:
            return None
        return json.dumps(value, ensure_ascii=False)

    @staticmethod
    def _tags_from_db(s: str | None) -> list[str] | None:
        if s is None:
            return None
        try:
            val = json.loads(s)
        except ValueError:
            logger.warning("Unreadable tags column %r; treating as empty.", s)
            return []
        return [str(t) for t in val] if isinstance(val, list) else []

    @staticmethod
    def _template_from_db(s: str) -> TaskTemplate:
        try:
            data = json.loads(s)
        except ValueError:
            data = {}
        return TaskTemplate.from_dict(data if isinstance(data, dict) else {})

    def _row_to_task(self, row: sqlite3.Row) -> Task:
        return Task(
            id=int(row["id"]),
            user_id=str(row["user_id"]),
            title=str(row["title"] or ""),
            description=row["description"],
            completed=bool(row["completed"]),
            completed_at=float(row["completed_at"]) if row["completed_at"] is not None else None,
            priority=Priority.from_db(row["priority"]),
            due_date=float(row["due_date"]) if row["due_date"] is not None else None,
            tags=self._tags_from_db(row["tags"]),
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"] or 0.0),
            source_key=row["source_key"],
        )

    def _row_to_schedule(self, row: sqlite3.Row) -> ScheduledTask:
        return ScheduledTask(
            id=int(row["id"]),
            user_id=str(row["user_id"]),
            task_template=self._template_from_db(row["task_template"]),
            cron_expression=str(row["cron_expression"]),
            enabled=bool(row["enabled"]),
            last_run=float(row["last_run"]) if row["last_run"] is not None else None,
            next_run=float(row["next_run"]),
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"] or 0.0),
        )

    @staticmethod
    def _row_to_thread(row: sqlite3.Row) -> Thread:
        try:
            status = ThreadStatus(row["status"])
        except ValueError:
            status = ThreadStatus.ACTIVE
        return Thread(
            id=int(row["id"]),
            user_id=str(row["user_id"]),
            title=row["title"],
            status=status,
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"] or 0.0),
        )

    @staticmethod
    def _row_to_message(row: sqlite3.Row) -> Message:
        return Message(
            id=int(row["id"]),
            thread_id=int(row["thread_id"]),
            user_id=str(row["user_id"]),
            role=str(row["role"]),
            content=str(row["content"]),
            created_at=float(row["created_at"] or 0.0),
        )

    @staticmethod
    def _row_to_prefs(row: sqlite3.Row) -> UserPreferences:
        try:
            theme = Theme(row["theme"])
        except ValueError:
            theme = Theme.SYSTEM
        return UserPreferences(
            user_id=str(row["user_id"]),
            theme=theme,
            default_priority=Priority.from_db(row["default_priority"]),
            due_date_reminders=bool(row["due_date_reminders"]),
            daily_digest=bool(row["daily_digest"]),
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"] or 0.0),
        )

    # ---- counters (dashboard) ----

    _COUNTABLE = ("tasks", "scheduled_tasks", "threads", "messages", "user_preferences")

    def count_rows(self, table: str, user_id: str | None = None) -> int:
        if table not in self._COUNTABLE:
            raise ValueError(f"unknown table: {table}")

        conn = self._get_conn()
        try:
            cur = conn.cursor()
            if user_id is None:
                cur.execute(f"SELECT COUNT(*) FROM {table}")
            else:
                cur.execute(f"SELECT COUNT(*) FROM {table} WHERE user_id = ?", (user_id,))
            (n,) = cur.fetchone()
            return int(n)
        finally:
            conn.close()

    def task_counters(self, user_id: str | None = None, *, now_ts: float | None = None) -> dict[str, int]:
        """Completed/active/overdue/per-priority task counts in one query."""
        if now_ts is None:
            now_ts = time.time()

        where = "WHERE user_id = ?" if user_id is not None else ""
        params: list[Any] = [float(now_ts)]
        if user_id is not None:
            params.append(user_id)

        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                f"""
                SELECT
                    COUNT(*) AS total,
                    COALESCE(SUM(completed = 1), 0) AS completed,
                    COALESCE(SUM(completed = 0), 0) AS active,
                    COALESCE(SUM(completed = 0 AND due_date IS NOT NULL AND due_date < ?), 0) AS overdue,
                    COALESCE(SUM(priority = 'high'), 0) AS high,
                    COALESCE(SUM(priority = 'medium'), 0) AS medium,
                    COALESCE(SUM(priority = 'low'), 0) AS low
                FROM tasks
                {where}
                """,
                params,
            )
            row = cur.fetchone()
            return {k: int(row[k]) for k in row.keys()}
        finally:
            conn.close()

    # ---- tasks ----

    def create_task(
        self,
        *,
        user_id: str,
        title: str,
        description: str | None = None,
        priority: Priority | None = None,
        due_date: float | None = None,
        tags: list[str] | None = None,
        source_key: str | None = None,
    ) -> tuple[int, bool]:
        """
        Insert a task and return (task_id, created).

        If source_key is given and a task with that key already exists, nothing is
        inserted and (existing_id, False) is returned.
        """
        if not user_id:
            raise ValueError("user_id is required")
        if not title or not title.strip():
            raise ValueError("title is required")

        now = time.time()
        prio = Priority(priority) if priority is not None else Priority.MEDIUM

        conn = self._get_conn()
        try:
            cur = conn.cursor()
            if source_key is not None:
                cur.execute("SELECT id FROM tasks WHERE source_key = ?", (source_key,))
                row = cur.fetchone()
                if row is not None:
                    logger.info("Task with source_key=%s already exists id=%s", source_key, row["id"])
                    return int(row["id"]), False

            cur.execute(
                """
                INSERT INTO tasks(
                    user_id, title, description, completed, completed_at,
                    priority, due_date, tags, created_at, updated_at, source_key
                )
                VALUES (?, ?, ?, 0, NULL, ?, ?, ?, ?, ?, ?)
                """,
                (
                    user_id,
                    title,
                    description,
                    prio.value,
                    due_date,
                    self._json_dumps(tags),
                    now,
                    now,
                    source_key,
                ),
            )
            conn.commit()
            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError("SQLite did not return lastrowid for tasks insert")
            task_id = int(rowid)
            logger.debug(
                "Task added id=%s user=%s priority=%s source_key=%s",
                task_id,
                user_id,
                prio.value,
                source_key,
            )
            return task_id, True
        finally:
            conn.close()

    def get_task(self, task_id: int) -> Task | None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT * FROM tasks WHERE id = ?", (int(task_id),))
            row = cur.fetchone()
            return self._row_to_task(row) if row else None
        finally:
            conn.close()

    def list_tasks_for_user(
        self,
        user_id: str,
        *,
        completed: bool | None = None,
        priority: Priority | None = None,
    ) -> list[Task]:
        """User's tasks, newest first, optionally filtered."""
        clauses = ["user_id = ?"]
        params: list[Any] = [user_id]
        if completed is not None:
            clauses.append("completed = ?")
            params.append(1 if completed else 0)
        if priority is not None:
            clauses.append("priority = ?")
            params.append(Priority(priority).value)

        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                f"SELECT * FROM tasks WHERE {' AND '.join(clauses)} ORDER BY created_at DESC, id DESC",
                params,
            )
            return [self._row_to_task(r) for r in cur.fetchall()]
        finally:
            conn.close()

    def list_recent_tasks(self, user_id: str | None = None, *, limit: int = 5) -> list[Task]:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            if user_id is None:
                cur.execute(
                    "SELECT * FROM tasks ORDER BY updated_at DESC, id DESC LIMIT ?",
                    (int(limit),),
                )
            else:
                cur.execute(
                    "SELECT * FROM tasks WHERE user_id = ? ORDER BY updated_at DESC, id DESC LIMIT ?",
                    (user_id, int(limit)),
                )
            return [self._row_to_task(r) for r in cur.fetchall()]
        finally:
            conn.close()

    def update_task_fields(self, task_id: int, **fields: Any) -> None:
        """Patch title/description/priority/due_date/tags. Unknown keys are rejected."""
        unknown = set(fields) - _TASK_FIELDS
        if unknown:
            raise ValueError(f"unknown task fields: {sorted(unknown)}")
        if not fields:
            return

        sets: list[str] = []
        params: list[Any] = []
        for name, value in fields.items():
            sets.append(f"{name} = ?")
            if name == "tags":
                params.append(self._json_dumps(value))
            elif name == "priority":
                params.append(Priority(value).value)
            else:
                params.append(value)

        sets.append("updated_at = ?")
        params.append(time.time())
        params.append(int(task_id))

        conn = self._get_conn()
        try:
            conn.execute(f"UPDATE tasks SET {', '.join(sets)} WHERE id = ?", params)
            conn.commit()
        finally:
            conn.close()

    def set_task_completed(self, task_id: int, completed: bool, now_ts: float | None = None) -> None:
        if now_ts is None:
            now_ts = time.time()

        conn = self._get_conn()
        try:
            conn.execute(
                "UPDATE tasks SET completed = ?, completed_at = ?, updated_at = ? WHERE id = ?",
                (
                    1 if completed else 0,
                    float(now_ts) if completed else None,
                    float(now_ts),
                    int(task_id),
                ),
            )
            conn.commit()
        finally:
            conn.close()

    def delete_task(self, task_id: int) -> None:
        conn = self._get_conn()
        try:
            conn.execute("DELETE FROM tasks WHERE id = ?", (int(task_id),))
            conn.commit()
        finally:
            conn.close()

    def delete_completed_tasks(self, user_id: str) -> int:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("DELETE FROM tasks WHERE user_id = ? AND completed = 1", (user_id,))
            conn.commit()
            return int(cur.rowcount)
        finally:
            conn.close()

    # ---- scheduled tasks ----

    def add_scheduled_task(
        self,
        *,
        user_id: str,
        template: TaskTemplate,
        cron_expression: str,
        next_run: float,
    ) -> int:
        now = time.time()
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                INSERT INTO scheduled_tasks(
                    user_id, task_template, cron_expression, enabled,
                    last_run, next_run, created_at, updated_at
                )
                VALUES (?, ?, ?, 1, NULL, ?, ?, ?)
                """,
                (
                    user_id,
                    json.dumps(template.to_dict(), ensure_ascii=False),
                    cron_expression,
                    float(next_run),
                    now,
                    now,
                ),
            )
            conn.commit()
            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError("SQLite did not return lastrowid for scheduled_tasks insert")
            logger.debug("Scheduled task added id=%s cron=%r next_run=%s", rowid, cron_expression, next_run)
            return int(rowid)
        finally:
            conn.close()

    def get_scheduled_task(self, schedule_id: int) -> ScheduledTask | None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT * FROM scheduled_tasks WHERE id = ?", (int(schedule_id),))
            row = cur.fetchone()
            return self._row_to_schedule(row) if row else None
        finally:
            conn.close()

    def list_scheduled_tasks_for_user(self, user_id: str) -> list[ScheduledTask]:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                "SELECT * FROM scheduled_tasks WHERE user_id = ? ORDER BY created_at DESC, id DESC",
                (user_id,),
            )
            return [self._row_to_schedule(r) for r in cur.fetchall()]
        finally:
            conn.close()

    def count_scheduled_tasks_for_user(self, user_id: str) -> int:
        return self.count_rows("scheduled_tasks", user_id)

    def list_enabled_due_schedules(self, now_ts: float) -> list[ScheduledTask]:
        """Enabled schedules whose next_run <= now_ts, oldest slot first."""
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                SELECT *
                FROM scheduled_tasks
                WHERE enabled = 1
                  AND next_run <= ?
                ORDER BY next_run ASC, id ASC
                """,
                (float(now_ts),),
            )
            return [self._row_to_schedule(r) for r in cur.fetchall()]
        finally:
            conn.close()

    def update_schedule_run_times(self, schedule_id: int, last_run: float, next_run: float) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                UPDATE scheduled_tasks
                SET last_run = ?, next_run = ?, updated_at = ?
                WHERE id = ?
                """,
                (float(last_run), float(next_run), time.time(), int(schedule_id)),
            )
            conn.commit()
        finally:
            conn.close()

    def update_scheduled_task(
        self,
        schedule_id: int,
        *,
        template: TaskTemplate | None = None,
        cron_expression: str | None = None,
        enabled: bool | None = None,
        next_run: float | None = None,
    ) -> None:
        fields: list[str] = []
        params: list[Any] = []

        if template is not None:
            fields.append("task_template = ?")
            params.append(json.dumps(template.to_dict(), ensure_ascii=False))

        if cron_expression is not None:
            fields.append("cron_expression = ?")
            params.append(cron_expression)

        if enabled is not None:
            fields.append("enabled = ?")
            params.append(1 if enabled else 0)

        if next_run is not None:
            fields.append("next_run = ?")
            params.append(float(next_run))

        if not fields:
            return

        fields.append("updated_at = ?")
        params.append(time.time())
        params.append(int(schedule_id))

        conn = self._get_conn()
        try:
            conn.execute(f"UPDATE scheduled_tasks SET {', '.join(fields)} WHERE id = ?", params)
            conn.commit()
        finally:
            conn.close()

    def delete_scheduled_task(self, schedule_id: int) -> None:
        conn = self._get_conn()
        try:
            conn.execute("DELETE FROM scheduled_tasks WHERE id = ?", (int(schedule_id),))
            conn.commit()
        finally:
            conn.close()

    # ---- assistant threads / messages ----

    def create_thread(self, *, user_id: str, title: str | None = None) -> int:
        now = time.time()
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                "INSERT INTO threads(user_id, title, status, created_at, updated_at) "
                "VALUES (?, ?, 'active', ?, ?)",
                (user_id, title, now, now),
            )
            conn.commit()
            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError("SQLite did not return lastrowid for threads insert")
            return int(rowid)
        finally:
            conn.close()

    def get_thread(self, thread_id: int) -> Thread | None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT * FROM threads WHERE id = ?", (int(thread_id),))
            row = cur.fetchone()
            return self._row_to_thread(row) if row else None
        finally:
            conn.close()

    def list_threads_for_user(self, user_id: str, *, status: ThreadStatus | None = None) -> list[Thread]:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            if status is None:
                cur.execute(
                    "SELECT * FROM threads WHERE user_id = ? ORDER BY updated_at DESC, id DESC",
                    (user_id,),
                )
            else:
                cur.execute(
                    "SELECT * FROM threads WHERE user_id = ? AND status = ? "
                    "ORDER BY updated_at DESC, id DESC",
                    (user_id, ThreadStatus(status).value),
                )
            return [self._row_to_thread(r) for r in cur.fetchall()]
        finally:
            conn.close()

    def set_thread_status(self, thread_id: int, status: ThreadStatus) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                "UPDATE threads SET status = ?, updated_at = ? WHERE id = ?",
                (ThreadStatus(status).value, time.time(), int(thread_id)),
            )
            conn.commit()
        finally:
            conn.close()

    def delete_thread(self, thread_id: int) -> None:
        conn = self._get_conn()
        try:
            conn.execute("DELETE FROM threads WHERE id = ?", (int(thread_id),))
            conn.commit()
        finally:
            conn.close()

    def add_message(self, *, thread_id: int, user_id: str, role: str, content: str) -> int:
        now = time.time()
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                "INSERT INTO messages(thread_id, user_id, role, content, created_at) VALUES (?, ?, ?, ?, ?)",
                (int(thread_id), user_id, role, content, now),
            )
            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError("SQLite did not return lastrowid for messages insert")
            # Keep thread ordering by last activity.
            cur.execute("UPDATE threads SET updated_at = ? WHERE id = ?", (now, int(thread_id)))
            conn.commit()
            return int(rowid)
        finally:
            conn.close()

    def list_messages(self, thread_id: int) -> list[Message]:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                "SELECT * FROM messages WHERE thread_id = ? ORDER BY created_at ASC, id ASC",
                (int(thread_id),),
            )
            return [self._row_to_message(r) for r in cur.fetchall()]
        finally:
            conn.close()

    def delete_messages_for_thread(self, thread_id: int) -> int:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("DELETE FROM messages WHERE thread_id = ?", (int(thread_id),))
            conn.commit()
            return int(cur.rowcount)
        finally:
            conn.close()

    # ---- user preferences ----

    def get_or_create_preferences(self, user_id: str) -> UserPreferences:
        now = time.time()
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                "INSERT OR IGNORE INTO user_preferences(user_id, created_at, updated_at) VALUES (?, ?, ?)",
                (user_id, now, now),
            )
            conn.commit()
            cur.execute("SELECT * FROM user_preferences WHERE user_id = ?", (user_id,))
            return self._row_to_prefs(cur.fetchone())
        finally:
            conn.close()

    def update_preferences(self, user_id: str, **fields: Any) -> None:
        unknown = set(fields) - _PREF_FIELDS
        if unknown:
            raise ValueError(f"unknown preference fields: {sorted(unknown)}")

        self.get_or_create_preferences(user_id)
        if not fields:
            return

        sets: list[str] = []
        params: list[Any] = []
        for name, value in fields.items():
            sets.append(f"{name} = ?")
            if name == "theme":
                params.append(Theme(value).value)
            elif name == "default_priority":
                params.append(Priority(value).value)
            else:
                params.append(1 if value else 0)

        sets.append("updated_at = ?")
        params.append(time.time())
        params.append(user_id)

        conn = self._get_conn()
        try:
            conn.execute(f"UPDATE user_preferences SET {', '.join(sets)} WHERE user_id = ?", params)
            conn.commit()
        finally:
            conn.close()
