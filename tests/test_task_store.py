# tests/test_task_store.py

from __future__ import annotations

import sqlite3
import time

import pytest

from taskwise.tasks.task_models import Priority, TaskTemplate, Theme, ThreadStatus
from taskwise.tasks.task_store import TaskStore


def test_task_crud_roundtrip(store: TaskStore) -> None:
    task_id, created = store.create_task(
        user_id="alice",
        title="Buy milk",
        description="2 liters",
        priority=Priority.HIGH,
        tags=["home", "errands"],
    )
    assert created

    t = store.get_task(task_id)
    assert t is not None
    assert (t.user_id, t.title, t.description) == ("alice", "Buy milk", "2 liters")
    assert t.priority == Priority.HIGH
    assert t.tags == ["home", "errands"]
    assert not t.completed and t.completed_at is None

    store.update_task_fields(task_id, title="Buy oat milk", priority="low", tags=[])
    t = store.get_task(task_id)
    assert t.title == "Buy oat milk"
    assert t.priority == Priority.LOW
    assert t.tags == []

    store.set_task_completed(task_id, True, now_ts=123.0)
    t = store.get_task(task_id)
    assert t.completed and t.completed_at == 123.0

    store.set_task_completed(task_id, False)
    assert store.get_task(task_id).completed_at is None

    store.delete_task(task_id)
    assert store.get_task(task_id) is None


def test_update_rejects_unknown_fields(store: TaskStore) -> None:
    task_id, _ = store.create_task(user_id="alice", title="x")
    with pytest.raises(ValueError):
        store.update_task_fields(task_id, user_id="mallory")


def test_create_task_requires_title(store: TaskStore) -> None:
    with pytest.raises(ValueError):
        store.create_task(user_id="alice", title="   ")


def test_source_key_dedupes(store: TaskStore) -> None:
    first, created1 = store.create_task(user_id="alice", title="Standup", source_key="1:1700000000")
    second, created2 = store.create_task(user_id="alice", title="Standup", source_key="1:1700000000")
    third, created3 = store.create_task(user_id="alice", title="Standup", source_key="1:1700086400")

    assert created1 and not created2 and created3
    assert first == second != third
    # tasks without a key never collide
    store.create_task(user_id="alice", title="a")
    store.create_task(user_id="alice", title="a")
    assert store.count_rows("tasks", "alice") == 4


def test_list_filters_and_order(store: TaskStore) -> None:
    a, _ = store.create_task(user_id="alice", title="a", priority=Priority.LOW)
    b, _ = store.create_task(user_id="alice", title="b", priority=Priority.HIGH)
    store.create_task(user_id="bob", title="c")
    store.set_task_completed(a, True)

    assert [t.id for t in store.list_tasks_for_user("alice")] == [b, a]
    assert [t.id for t in store.list_tasks_for_user("alice", completed=True)] == [a]
    assert [t.id for t in store.list_tasks_for_user("alice", priority=Priority.HIGH)] == [b]

    assert store.delete_completed_tasks("alice") == 1
    assert [t.id for t in store.list_tasks_for_user("alice")] == [b]


def test_migration_adds_source_key_column(tmp_path) -> None:
    db = tmp_path / "old.sqlite3"
    conn = sqlite3.connect(db)
    conn.execute(
        """
        CREATE TABLE tasks (
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
    conn.execute(
        "INSERT INTO tasks(user_id, title, created_at, updated_at) VALUES ('alice', 'legacy', 1, 1)"
    )
    conn.commit()
    conn.close()

    store = TaskStore(db)
    (legacy,) = store.list_tasks_for_user("alice")
    assert legacy.title == "legacy"
    assert legacy.source_key is None

    _, created = store.create_task(user_id="alice", title="new", source_key="9:1")
    assert created


def test_scheduled_task_lifecycle(store: TaskStore) -> None:
    now = time.time()
    sid = store.add_scheduled_task(
        user_id="alice",
        template=TaskTemplate(title="Review inbox", priority=Priority.HIGH, tags=["work"]),
        cron_expression="0 9 * * *",
        next_run=now - 10,
    )
    s = store.get_scheduled_task(sid)
    assert s.enabled
    assert s.last_run is None
    assert s.task_template == TaskTemplate(title="Review inbox", priority=Priority.HIGH, tags=["work"])

    assert [x.id for x in store.list_enabled_due_schedules(now)] == [sid]

    store.update_schedule_run_times(sid, now, now + 86400)
    s = store.get_scheduled_task(sid)
    assert (s.last_run, s.next_run) == (now, now + 86400)
    assert store.list_enabled_due_schedules(now) == []

    store.update_scheduled_task(sid, enabled=False, next_run=now - 1)
    assert store.list_enabled_due_schedules(now) == []

    assert store.count_scheduled_tasks_for_user("alice") == 1
    store.delete_scheduled_task(sid)
    assert store.get_scheduled_task(sid) is None


def test_due_schedules_oldest_slot_first(store: TaskStore) -> None:
    tpl = TaskTemplate(title="t")
    late = store.add_scheduled_task(user_id="a", template=tpl, cron_expression="0 9 * * *", next_run=200.0)
    early = store.add_scheduled_task(user_id="b", template=tpl, cron_expression="0 9 * * *", next_run=100.0)
    assert [s.id for s in store.list_enabled_due_schedules(300.0)] == [early, late]


def test_threads_and_messages(store: TaskStore) -> None:
    tid = store.create_thread(user_id="alice", title="Planning")
    store.add_message(thread_id=tid, user_id="alice", role="user", content="hi")
    store.add_message(thread_id=tid, user_id="alice", role="assistant", content="hello")

    assert [m.content for m in store.list_messages(tid)] == ["hi", "hello"]

    store.set_thread_status(tid, ThreadStatus.ARCHIVED)
    assert store.list_threads_for_user("alice", status=ThreadStatus.ACTIVE) == []
    assert [t.id for t in store.list_threads_for_user("alice")] == [tid]

    assert store.delete_messages_for_thread(tid) == 2
    store.delete_thread(tid)
    assert store.get_thread(tid) is None


def test_preferences_defaults_and_update(store: TaskStore) -> None:
    p = store.get_or_create_preferences("alice")
    assert p.theme == Theme.SYSTEM
    assert p.default_priority == Priority.MEDIUM
    assert p.due_date_reminders and not p.daily_digest

    store.update_preferences("alice", theme="dark", daily_digest=True)
    p = store.get_or_create_preferences("alice")
    assert p.theme == Theme.DARK and p.daily_digest

    with pytest.raises(ValueError):
        store.update_preferences("alice", user_id="bob")

    assert store.count_rows("user_preferences") == 1


def test_task_counters(store: TaskStore) -> None:
    now = 1_000_000.0
    a, _ = store.create_task(user_id="alice", title="a", priority=Priority.HIGH, due_date=now - 1)
    b, _ = store.create_task(user_id="alice", title="b", priority=Priority.LOW, due_date=now + 1)
    store.create_task(user_id="bob", title="c")
    store.set_task_completed(b, True)

    c = store.task_counters("alice", now_ts=now)
    assert c == {"total": 2, "completed": 1, "active": 1, "overdue": 1, "high": 1, "medium": 0, "low": 1}

    assert store.task_counters(now_ts=now)["total"] == 3
    assert store.task_counters("nobody", now_ts=now)["total"] == 0


def test_count_rows_rejects_unknown_table(store: TaskStore) -> None:
    with pytest.raises(ValueError):
        store.count_rows("sqlite_master")
