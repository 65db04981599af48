# src/agent_orchestrator/cli/commands.py

from __future__ import annotations

import inspect
import logging
import shlex
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import cast

from ..core.errors import NotFoundError, OrchestratorError
from ..core.state import AppState
from ..tasks.task_models import Task, TaskSpec

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Slash-command registry used by the console connector (/help, /submit, ...)."""

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
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError as e:
            return f"Could not parse command: {e}"
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except Exception:
            nparams = 3

        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                return h3(state, args, emit)
            h2 = cast(CommandHandler2, handler)
            return h2(state, args)
        except OrchestratorError as e:
            return f"Error: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _ts(value: datetime | None) -> str:
    if value is None:
        return "-"
    return value.astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _resolve_id(state: AppState, raw: str) -> str:
    """Accept a full task id or a unique prefix of one."""
    if state.engine.get(raw) is not None:
        return raw
    matches = [t.id for t in state.engine.list() if t.id.startswith(raw)]
    if len(matches) == 1:
        return matches[0]
    raise NotFoundError(raw)


def _one_line(task: Task) -> str:
    return (
        f"{task.id[:8]}  {task.status.value:<9} {task.progress:>3}%  "
        f"{task.priority.value:<6} {task.agent_type.value:<8} {task.name}"
    )


def _parse_kv(args: list[str]) -> dict[str, str]:
    out: dict[str, str] = {}
    for arg in args:
        key, sep, value = arg.partition("=")
        if not sep:
            raise OrchestratorError(f"expected key=value, got {arg!r}")
        out[key.strip().lower()] = value
    return out


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    st = state.engine.status()
    agents = ", ".join(f"{a.value}={h.value}" for a, h in st.agents_status.items())
    return (
        "Status:\n"
        f"  Engine: {'RUNNING' if st.running else 'STOPPED'}\n"
        f"  Active tasks: {st.active_tasks}\n"
        f"  Completed today: {st.completed_today}\n"
        f"  Failed today: {st.failed_today}\n"
        f"  Agents: {agents}\n"
        f"  Last activity: {_ts(st.last_activity)}"
    )


def cmd_stats(state: AppState, args: list[str]) -> str:
    s = state.engine.statistics()
    return (
        f"Tasks: total={s.total} pending={s.pending} running={s.running} "
        f"completed={s.completed} failed={s.failed} cancelled={s.cancelled}\n"
        f"Today: completed={s.completed_today} failed={s.failed_today}"
    )


def cmd_health(state: AppState, args: list[str]) -> str:
    h = state.engine.health_metrics()
    return (
        f"Health: {'OK' if h.is_healthy else 'DEGRADED'}\n"
        f"  Success rate: {h.success_rate:.1f}%\n"
        f"  Avg execution time: {h.avg_execution_time_ms:.0f} ms\n"
        f"  Active={h.active_tasks} pending={h.pending_tasks} completed={h.completed_tasks} "
        f"failed={h.failed_tasks} cancelled={h.cancelled_tasks}"
    )


def cmd_agents(state: AppState, args: list[str]) -> str:
    lines = ["Agent performance:"]
    for p in state.engine.agent_performance():
        lines.append(
            f"  {p.agent_type.value:<8} total={p.total_tasks} completed={p.completed_tasks} "
            f"failed={p.failed_tasks} success={p.success_rate:.1f}% avg={p.avg_execution_time_ms:.0f}ms"
        )
    return "\n".join(lines)


def cmd_submit(state: AppState, args: list[str]) -> str:
    """
    /submit name=... desc=... agent=intake [priority=medium] [at=ISO] [cron="* * * * *"] [tz=UTC]
    """
    if not args:
        return (
            "Usage: /submit name=<name> desc=<description> agent=<agent_type> "
            "[priority=low|medium|high|urgent] [at=<ISO-8601>] [cron=\"<5 fields>\"] [tz=<IANA>]"
        )
    kv = _parse_kv(args)
    spec = TaskSpec(
        name=kv.get("name", ""),
        description=kv.get("desc", kv.get("description", "")),
        priority=kv.get("priority", "medium"),
        agent_type=kv.get("agent", kv.get("agent_type", "")),
        scheduled_at=kv.get("at") or None,
        cron_expression=kv.get("cron") or None,
        timezone=kv.get("tz") or None,
    )
    task = state.engine.submit(spec)
    schedule = state.engine.get_schedule(task.id)
    reply = f"Task submitted: {task.id} ({task.agent_type.value}, {task.priority.value})"
    if schedule is not None:
        reply += f"\n  Recurring: {schedule.cron_expression} [{schedule.timezone}] next run {_ts(schedule.next_run)}"
    return reply


def cmd_list(state: AppState, args: list[str]) -> str:
    """
    /list            -> all tasks (newest first)
    /list <status>   -> tasks with that status
    """
    tasks = state.engine.list_by_status(args[0]) if args else state.engine.list()
    if not tasks:
        return "No tasks."
    return "\n".join(_one_line(t) for t in tasks)


def cmd_show(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /show <task_id>"
    task = state.engine.require(_resolve_id(state, args[0]))
    lines = [
        f"Task {task.id}",
        f"  Name: {task.name}",
        f"  Description: {task.description}",
        f"  Status: {task.status.value} ({task.progress}%)",
        f"  Agent: {task.agent_type.value}  Priority: {task.priority.value}",
        f"  Created: {_ts(task.created_at)}  Scheduled: {_ts(task.scheduled_at)}",
        f"  Started: {_ts(task.started_at)}  Completed: {_ts(task.completed_at)}",
    ]
    schedule = state.engine.get_schedule(task.id)
    if schedule is not None:
        lines.append(
            f"  Schedule: {schedule.cron_expression} [{schedule.timezone}] "
            f"{'active' if schedule.is_active else 'inactive'}, next {_ts(schedule.next_run)}, "
            f"last {_ts(schedule.last_run)}"
        )
    return "\n".join(lines)


def cmd_logs(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /logs <task_id>"
    task_id = _resolve_id(state, args[0])
    logs = state.engine.get_logs(task_id)
    if not logs:
        return f"No log entries for {task_id}."
    return "\n".join(f"[{_ts(e.timestamp)}] {e.level.value.upper():<7} {e.message}" for e in logs)


def _lifecycle(action: str) -> CommandHandler2:
    """Build /cancel, /retry, /pause, /resume on top of the engine method of the same name."""

    def handler(state: AppState, args: list[str]) -> str:
        if not args:
            return f"Usage: /{action} <task_id>"
        task_id = _resolve_id(state, args[0])
        op: Callable[[str], bool] = getattr(state.engine, action)
        if op(task_id):
            return f"Task {task_id}: {action} OK."
        task = state.engine.get(task_id)
        status = task.status.value if task is not None else "unknown"
        return f"Task {task_id}: cannot {action} from status {status}."

    handler.__name__ = f"cmd_{action}"
    return handler


def cmd_pauseall(state: AppState, args: list[str]) -> str:
    return f"Paused {state.engine.pause_all()} task(s)."


def cmd_resumeall(state: AppState, args: list[str]) -> str:
    return f"Resumed {state.engine.resume_all()} task(s)."


def cmd_priority(state: AppState, args: list[str]) -> str:
    if len(args) != 2:
        return "Usage: /priority <task_id> low|medium|high|urgent"
    task_id = _resolve_id(state, args[0])
    if state.engine.update_priority(task_id, args[1]):
        return f"Task {task_id}: priority set to {args[1].lower()}."
    return f"Task {task_id}: priority can only change while the task is pending or running."


def cmd_schedules(state: AppState, args: list[str]) -> str:
    schedules = state.engine.list_schedules()
    if not schedules:
        return "No schedules."
    return "\n".join(
        f"{s.task_id[:8]}  {'on ' if s.is_active else 'off'}  {s.cron_expression:<15} "
        f"[{s.timezone}] next {_ts(s.next_run)} last {_ts(s.last_run)}"
        for s in schedules
    )


def cmd_schedule(state: AppState, args: list[str]) -> str:
    if len(args) != 2 or args[1].lower() not in ("on", "off"):
        return "Usage: /schedule <task_id> on|off"
    task_id = _resolve_id(state, args[0])
    active = args[1].lower() == "on"
    if state.engine.set_schedule_active(task_id, active):
        return f"Schedule for {task_id} turned {'on' if active else 'off'}."
    return f"Task {task_id} has no schedule."


def cmd_cleanup(state: AppState, args: list[str]) -> str:
    """
    /cleanup         -> use the configured retention window
    /cleanup <days>  -> explicit window (0 = every completed/cancelled task)
    """
    if args:
        try:
            days = int(args[0])
        except ValueError:
            return "Usage: /cleanup [days]"
    else:
        days = int(getattr(state.settings, "retention_days", 30))
    removed = state.engine.cleanup(days)
    return f"Removed {removed} task(s) older than {days} day(s)."


def cmd_export(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /export [json|csv]          -> print the export
    /export [json|csv] <path>   -> write it to a file
    """
    fmt = args[0] if args else "json"
    data = state.engine.export(fmt)
    if len(args) < 2:
        return data
    path = Path(args[1]).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(data, "utf-8")
    if emit:
        emit(f"[EXPORT] {fmt} written to {path}")
    return f"Exported {len(state.engine.list())} task(s) to {path}."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Engine and agent status.")
registry.register("stats", cmd_stats, help_text="Task counts by status and today.")
registry.register("health", cmd_health, help_text="Success rate and execution time.")
registry.register("agents", cmd_agents, help_text="Per-agent performance.")
registry.register("submit", cmd_submit, help_text="Submit a task: /submit name=.. desc=.. agent=..")
registry.register("list", cmd_list, help_text="List tasks: /list [status].", aliases=["ls"])
registry.register("show", cmd_show, help_text="Task details: /show <id>.")
registry.register("logs", cmd_logs, help_text="Task log: /logs <id>.")
registry.register("cancel", _lifecycle("cancel"), help_text="Cancel a task.")
registry.register("retry", _lifecycle("retry"), help_text="Retry a failed task.")
registry.register("pause", _lifecycle("pause"), help_text="Pause a running task.")
registry.register("resume", _lifecycle("resume"), help_text="Resume a paused task.")
registry.register("pauseall", cmd_pauseall, help_text="Pause every running task.")
registry.register("resumeall", cmd_resumeall, help_text="Resume every paused task.")
registry.register("priority", cmd_priority, help_text="Change priority: /priority <id> <level>.")
registry.register("schedules", cmd_schedules, help_text="List recurring schedules.")
registry.register("schedule", cmd_schedule, help_text="Toggle a schedule: /schedule <id> on|off.")
registry.register("cleanup", cmd_cleanup, help_text="Remove old completed/cancelled tasks: /cleanup [days].")
registry.register("export", cmd_export, help_text="Export tasks: /export [json|csv] [path].")
