# tests/test_task_api.py

from __future__ import annotations

import time
from datetime import UTC, datetime

import pytest

from taskwise.core.errors import NotFoundError, PermissionDenied, RateLimitExceeded, ValidationError
from taskwise.tasks import task_api
from taskwise.tasks.cron import InvalidExpression
from taskwise.tasks.task_models import Priority, Theme

from .fakes import DenyRateLimiter


def test_create_task_uses_default_priority_from_preferences(state) -> None:
    task_api.update_preferences(state, "alice", default_priority="high")
    task_id = task_api.create_task(state, "alice", title="Call mom")
    assert state.task_store.get_task(task_id).priority == Priority.HIGH

    task_id = task_api.create_task(state, "alice", title="Nap", priority="low")
    assert state.task_store.get_task(task_id).priority == Priority.LOW


def test_create_task_checks_rate_limit_first(state) -> None:
    task_api.create_task(state, "alice", title="x")
    assert state.rate_limiter.calls[0] == ("create_task", "alice")


@pytest.mark.parametrize(
    "kwargs",
    [
        {"title": ""},
        {"title": "x" * 201},
        {"title": "ok", "description": "d" * 2001},
        {"title": "ok", "tags": [f"t{i}" for i in range(11)]},
        {"title": "ok", "tags": ["x" * 31]},
        {"title": "ok", "due_date": 1.0},
        {"title": "ok", "priority": "urgent"},
    ],
)
def test_create_task_validation(state, kwargs) -> None:
    with pytest.raises(ValidationError):
        task_api.create_task(state, "alice", **kwargs)
    assert state.task_store.list_tasks_for_user("alice") == []


def test_rate_limited_create_raises(state) -> None:
    state.rate_limiter = DenyRateLimiter("create_task", retry_after=2.5)
    with pytest.raises(RateLimitExceeded) as ei:
        task_api.create_task(state, "alice", title="x")
    assert ei.value.retry_after == 2.5
    assert "Retry after 2500ms" in str(ei.value)


def test_ownership_is_enforced(state) -> None:
    task_id = task_api.create_task(state, "alice", title="mine")

    with pytest.raises(PermissionDenied):
        task_api.update_task(state, "bob", task_id, title="theirs")
    with pytest.raises(PermissionDenied):
        task_api.toggle_complete(state, "bob", task_id)
    with pytest.raises(PermissionDenied):
        task_api.delete_task(state, "bob", task_id)
    with pytest.raises(NotFoundError):
        task_api.delete_task(state, "alice", 9999)

    assert state.task_store.get_task(task_id).title == "mine"


def test_update_toggle_and_clear(state) -> None:
    future = time.time() + 3600
    task_id = task_api.create_task(state, "alice", title="draft")

    task_api.update_task(state, "alice", task_id, title="final", due_date=future, tags=["w"])
    t = state.task_store.get_task(task_id)
    assert (t.title, t.due_date, t.tags) == ("final", future, ["w"])

    assert task_api.toggle_complete(state, "alice", task_id) is True
    assert task_api.toggle_complete(state, "alice", task_id) is False
    task_api.toggle_complete(state, "alice", task_id)

    assert task_api.clear_completed(state, "alice") == 1
    assert task_api.list_tasks(state, "alice") == []


def test_upcoming_and_overdue(state) -> None:
    now = time.time()
    soon = task_api.create_task(state, "alice", title="soon", due_date=now + 60)
    later = task_api.create_task(state, "alice", title="later", due_date=now + 3600)
    task_api.create_task(state, "alice", title="no date")

    assert [t.id for t in task_api.upcoming_tasks(state, "alice")] == [soon, later]
    assert task_api.overdue_tasks(state, "alice", now_ts=now) == []
    assert [t.id for t in task_api.overdue_tasks(state, "alice", now_ts=now + 120)] == [soon]


def test_create_scheduled_task_computes_next_run(state) -> None:
    now = datetime(2024, 1, 1, 8, 0, tzinfo=UTC).timestamp()
    sid = task_api.create_scheduled_task(
        state,
        "alice",
        title="Standup",
        cron_expression=" 0  9 * * * ",
        priority="high",
        tags=["work"],
        now_ts=now,
    )
    s = state.task_store.get_scheduled_task(sid)
    assert s.enabled
    assert s.cron_expression == "0 9 * * *"
    assert s.next_run == datetime(2024, 1, 1, 9, 0, tzinfo=UTC).timestamp()
    assert s.task_template.priority == Priority.HIGH


def test_invalid_cron_is_rejected_before_persisting(state) -> None:
    with pytest.raises(InvalidExpression):
        task_api.create_scheduled_task(state, "alice", title="x", cron_expression="bad")
    assert task_api.list_scheduled_tasks(state, "alice") == []


def test_scheduled_task_limit_per_user(state, monkeypatch) -> None:
    monkeypatch.setattr(task_api, "MAX_SCHEDULED_TASKS_PER_USER", 2)
    for i in range(2):
        task_api.create_scheduled_task(state, "alice", title=f"s{i}", cron_expression="0 9 * * *")
    with pytest.raises(ValidationError):
        task_api.create_scheduled_task(state, "alice", title="s2", cron_expression="0 9 * * *")
    # other users are unaffected
    task_api.create_scheduled_task(state, "bob", title="s", cron_expression="0 9 * * *")


def test_update_scheduled_task_merges_template_and_recomputes(state) -> None:
    now = datetime(2024, 1, 1, 8, 0, tzinfo=UTC).timestamp()
    sid = task_api.create_scheduled_task(
        state, "alice", title="Standup", cron_expression="0 9 * * *", tags=["work"], now_ts=now
    )

    task_api.update_scheduled_task(state, "alice", sid, priority="low")
    s = state.task_store.get_scheduled_task(sid)
    assert s.task_template.title == "Standup"
    assert s.task_template.tags == ["work"]
    assert s.task_template.priority == Priority.LOW
    assert s.next_run == datetime(2024, 1, 1, 9, 0, tzinfo=UTC).timestamp()

    task_api.update_scheduled_task(state, "alice", sid, cron_expression="30 7 * * *", now_ts=now)
    s = state.task_store.get_scheduled_task(sid)
    assert s.cron_expression == "30 7 * * *"
    assert s.next_run == datetime(2024, 1, 2, 7, 30, tzinfo=UTC).timestamp()

    with pytest.raises(InvalidExpression):
        task_api.update_scheduled_task(state, "alice", sid, cron_expression="nope")


def test_toggle_and_delete_scheduled_task(state) -> None:
    sid = task_api.create_scheduled_task(state, "alice", title="s", cron_expression="0 9 * * *")

    with pytest.raises(PermissionDenied):
        task_api.toggle_scheduled_task(state, "bob", sid)

    assert task_api.toggle_scheduled_task(state, "alice", sid) is False
    assert task_api.toggle_scheduled_task(state, "alice", sid) is True

    task_api.delete_scheduled_task(state, "alice", sid)
    with pytest.raises(NotFoundError):
        task_api.delete_scheduled_task(state, "alice", sid)


def test_preferences(state) -> None:
    p = task_api.get_preferences(state, "alice")
    assert p.theme == Theme.SYSTEM

    p = task_api.update_preferences(state, "alice", theme="dark", due_date_reminders=False)
    assert p.theme == Theme.DARK
    assert not p.due_date_reminders

    with pytest.raises(ValidationError):
        task_api.update_preferences(state, "alice", theme="neon")
    with pytest.raises(ValidationError):
        task_api.update_preferences(state, "alice", default_priority="urgent")


def test_blank_task_title_is_a_validation_error(state) -> None:
    with pytest.raises(ValidationError):
        task_api.create_task(state, "alice", title="   ")

    task_id = task_api.create_task(state, "alice", title="real")
    with pytest.raises(ValidationError):
        task_api.update_task(state, "alice", task_id, title="\t ")
    assert state.task_store.get_task(task_id).title == "real"


def test_blank_schedule_title_is_rejected_before_persisting(state) -> None:
    with pytest.raises(ValidationError):
        task_api.create_scheduled_task(state, "alice", title="   ", cron_expression="0 9 * * *")
    assert task_api.list_scheduled_tasks(state, "alice") == []

    sid = task_api.create_scheduled_task(state, "alice", title="Standup", cron_expression="0 9 * * *")
    with pytest.raises(ValidationError):
        task_api.update_scheduled_task(state, "alice", sid, title="  ")
    assert state.task_store.get_scheduled_task(sid).task_template.title == "Standup"
