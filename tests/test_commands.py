# tests/test_commands.py

from __future__ import annotations

import time

from taskwise.cli.commands import CommandRegistry, registry
from taskwise.tasks.task_models import Priority, TaskTemplate


def test_command_registry_routes_3_and_4_params(state) -> None:
    reg = CommandRegistry()
    called = {"h3": 0, "h4": 0}
    notes: list[str] = []

    def h3(state, args, user_id):
        called["h3"] += 1
        return f"h3 {user_id} {args}"

    def h4(state, args, user_id, emit):
        called["h4"] += 1
        if emit is not None:
            emit("note")
        return "h4"

    reg.register("a", h3, "a")
    reg.register("b", h4, "b", aliases=["bee"])

    assert reg.handle(state, "/a x", user_id="u") == "h3 u ['x']"
    assert reg.handle(state, "/BEE y", user_id="u", emit=notes.append) == "h4"
    assert called == {"h3": 1, "h4": 1}
    assert notes == ["note"]


def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert reg.handle(state, "hello") is None
    assert "Unknown command" in (reg.handle(state, "/nope") or "")
    assert "Empty command" in (reg.handle(state, "/") or "")


def test_user_id_defaults_to_settings(state) -> None:
    registry.handle(state, "/add Buy milk")
    assert [t.title for t in state.task_store.list_tasks_for_user("alice")] == ["Buy milk"]


def test_add_list_done_rm(state) -> None:
    out = registry.handle(state, "/add !high Ship release #work #q3", user_id="alice")
    assert out is not None and out.startswith("Added task #")

    (task,) = state.task_store.list_tasks_for_user("alice")
    assert task.title == "Ship release"
    assert task.priority == Priority.HIGH
    assert task.tags == ["work", "q3"]

    listing = registry.handle(state, "/tasks", user_id="alice")
    assert f"[ ] #{task.id} Ship release (high) #work #q3" in listing

    assert "completed" in registry.handle(state, f"/done {task.id}", user_id="alice")
    assert f"[x] #{task.id}" in registry.handle(state, "/tasks done", user_id="alice")
    assert registry.handle(state, "/tasks active", user_id="alice") == "No tasks."

    assert "Removed 1" in registry.handle(state, "/clear", user_id="alice")


def test_errors_are_rendered_not_raised(state) -> None:
    task_id, _ = state.task_store.create_task(user_id="bob", title="bob's")

    assert registry.handle(state, f"/rm {task_id}", user_id="alice").startswith("Error: Not authorized")
    assert registry.handle(state, "/done 999", user_id="alice") == "Error: Task not found"
    assert registry.handle(state, "/done abc", user_id="alice").startswith("Error: Invalid task id")
    assert registry.handle(state, "/sched add 0 9 * * Standup", user_id="alice").startswith("Usage")
    assert registry.handle(state, "/sched add 0 9 * * * !high", user_id="alice").startswith("Error:")


def test_sched_add_list_toggle_and_sweep(state) -> None:
    out = registry.handle(state, "/sched add 0 9 * * * Standup #work", user_id="alice")
    assert "Daily at 09:00" in out

    (sched,) = state.task_store.list_scheduled_tasks_for_user("alice")
    assert sched.task_template == TaskTemplate(title="Standup", tags=["work"])
    assert "[on ] #" in registry.handle(state, "/sched list", user_id="alice")

    assert "disabled" in registry.handle(state, f"/sched toggle {sched.id}", user_id="alice")
    assert "enabled" in registry.handle(state, f"/sched toggle {sched.id}", user_id="alice")

    # make it due and run the sweep by hand
    state.task_store.update_schedule_run_times(sched.id, 0.0, time.time() - 1)
    out = registry.handle(state, "/sweep", user_id="alice")
    assert out == "Processed 1 scheduled task(s), created 1 new task(s)."
    assert [t.title for t in state.task_store.list_tasks_for_user("alice")] == ["Standup"]

    assert "deleted" in registry.handle(state, f"/sched rm {sched.id}", user_id="alice")


def test_dash(state) -> None:
    registry.handle(state, "/add Write tests", user_id="alice")
    out = registry.handle(state, "/dash", user_id="alice")
    assert "Tasks: 1 total, 1 active, 0 completed, 0 overdue" in out
    assert "Write tests (medium, active)" in out


def test_thread_commands(state) -> None:
    assert registry.handle(state, "/thread", user_id="alice") == "No threads."

    out = registry.handle(state, "/thread new Weekly plan", user_id="alice")
    assert out.startswith("Started thread #")
    tid = state.active_thread_id
    assert tid is not None

    assert f"* #{tid} Weekly plan [active]" in registry.handle(state, "/thread", user_id="alice")

    registry.handle(state, f"/thread archive {tid}", user_id="alice")
    assert state.active_thread_id is None
    assert registry.handle(state, "/thread", user_id="alice") == "No threads."
    assert "[archived]" in registry.handle(state, "/thread all", user_id="alice")

    assert "deleted" in registry.handle(state, f"/thread rm {tid}", user_id="alice")


def test_prefs(state) -> None:
    assert "theme: system" in registry.handle(state, "/prefs", user_id="alice")
    out = registry.handle(state, "/prefs priority high", user_id="alice")
    assert "default priority: high" in out
    assert registry.handle(state, "/prefs theme neon", user_id="alice").startswith("Error:")
