# tests/test_commands.py

from __future__ import annotations

from agent_orchestrator.cli.commands import CommandRegistry, registry
from agent_orchestrator.tasks.task_models import TaskStatus

from fakes import spec


def test_command_registry_routes_2_and_3_params(state) -> None:
    reg = CommandRegistry()
    called = {"h2": 0, "h3": 0}
    notes: list[str] = []

    def h2(state, args):
        called["h2"] += 1
        return "h2:" + ",".join(args)

    def h3(state, args, emit):
        called["h3"] += 1
        if emit is not None:
            emit("note")
        return "h3"

    reg.register("a", h2, "a")
    reg.register("b", h3, "b", aliases=["bee"])

    assert reg.handle(state, '/a x "y z"') == "h2:x,y z"
    assert reg.handle(state, "/BEE", emit=notes.append) == "h3"
    assert called == {"h2": 1, "h3": 1}
    assert notes == ["note"]


def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert reg.handle(state, "hello") is None
    assert "Unknown command" in (reg.handle(state, "/nope") or "")
    assert "Empty command" in (reg.handle(state, "/") or "")
    assert "Could not parse" in (reg.handle(state, '/a "unterminated') or "")


def test_help_lists_registered_commands(state) -> None:
    reply = registry.handle(state, "/help") or ""
    for name in ("/submit", "/list", "/cancel", "/schedules", "/export"):
        assert name in reply
    assert registry.handle(state, "/?") == reply


def test_submit_list_and_show(state, clock) -> None:
    reply = registry.handle(
        state,
        '/submit name="Spin up workspace" desc="Create repos and boards" agent=spin_up priority=high',
    )
    assert reply is not None and reply.startswith("Task submitted: ")
    task_id = reply.split()[2]

    clock.advance(10)

    listing = registry.handle(state, "/list") or ""
    assert task_id[:8] in listing
    assert "completed" in listing
    assert registry.handle(state, "/list failed") == "No tasks."

    shown = registry.handle(state, f"/show {task_id[:6]}") or ""
    assert "Spin up workspace" in shown
    assert "completed (100%)" in shown

    logs = registry.handle(state, f"/logs {task_id}") or ""
    assert "Task execution started" in logs
    assert "SUCCESS" in logs


def test_submit_with_cron_reports_the_schedule(state) -> None:
    reply = registry.handle(
        state, '/submit name=Digest desc="Weekly digest" agent=support cron="0 9 * * 1" tz=Europe/London'
    ) or ""
    assert "Recurring: 0 9 * * 1 [Europe/London]" in reply

    schedules = registry.handle(state, "/schedules") or ""
    assert "0 9 * * 1" in schedules


def test_validation_errors_become_replies(state) -> None:
    assert registry.handle(state, "/submit name=x desc=y") == "Error: agent_type: is required"
    assert (registry.handle(state, "/submit oops") or "").startswith("Error: expected key=value")
    assert registry.handle(state, "/show deadbeef") == "Error: Task not found: deadbeef"
    assert (registry.handle(state, "/list sleeping") or "").startswith("Error: status:")


def test_lifecycle_commands(state, clock) -> None:
    task = state.engine.submit(spec("n", agent_type="launch"))
    clock.advance(1)

    assert registry.handle(state, f"/pause {task.id}") == f"Task {task.id}: pause OK."
    assert registry.handle(state, f"/pause {task.id}") == f"Task {task.id}: cannot pause from status pending."
    assert registry.handle(state, f"/resume {task.id}") == f"Task {task.id}: resume OK."
    assert registry.handle(state, f"/cancel {task.id}") == f"Task {task.id}: cancel OK."
    assert state.engine.require(task.id).status == TaskStatus.CANCELLED
    assert registry.handle(state, "/retry") == "Usage: /retry <task_id>"


def test_priority_cleanup_and_stats(state, clock) -> None:
    task = state.engine.submit(spec("n", agent_type="intake"))
    assert registry.handle(state, f"/priority {task.id} urgent") == f"Task {task.id}: priority set to urgent."

    clock.advance(10)
    assert "completed=1" in (registry.handle(state, "/stats") or "")
    assert registry.handle(state, "/cleanup 0") == "Removed 1 task(s) older than 0 day(s)."
    assert registry.handle(state, "/cleanup") == "Removed 0 task(s) older than 30 day(s)."


def test_export_to_file_emits_a_note(state, clock, tmp_path) -> None:
    state.engine.submit(spec("n", agent_type="handover"))
    clock.advance(10)
    out = tmp_path / "exports" / "tasks.csv"
    notes: list[str] = []

    reply = registry.handle(state, f"/export csv {out}", emit=notes.append)

    assert reply == f"Exported 1 task(s) to {out}."
    assert out.read_text("utf-8").startswith("id,name,description,")
    assert notes and "[EXPORT] csv" in notes[0]


def test_status_health_and_agents(state) -> None:
    state.engine.start()
    assert "Engine: RUNNING" in (registry.handle(state, "/status") or "")
    assert "Health: OK" in (registry.handle(state, "/health") or "")
    agents = registry.handle(state, "/agents") or ""
    assert agents.count("total=0") == 6


def test_submit_command_defaults_priority_to_medium(state) -> None:
    reply = registry.handle(state, "/submit name=Triage desc=Inbox agent=pm") or ""
    assert reply.startswith("Task submitted: ")
    assert reply.endswith("(pm, medium)")
