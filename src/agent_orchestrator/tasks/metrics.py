# src/agent_orchestrator/tasks/metrics.py

"""Aggregations over task snapshots: counts, health, per-agent performance."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from datetime import datetime

from .task_models import (
    AgentHealth,
    AgentPerformance,
    AgentType,
    HealthMetrics,
    Task,
    TaskStatistics,
    TaskStatus,
)

HEALTHY_SUCCESS_RATE = 80.0


def local_midnight(now: datetime) -> datetime:
    """Start of the current day in the host's local timezone."""
    local = now.astimezone()
    return local.replace(hour=0, minute=0, second=0, microsecond=0)


def _finished_since(tasks: Iterable[Task], status: TaskStatus, since: datetime) -> int:
    return sum(
        1 for t in tasks if t.status == status and t.completed_at is not None and t.completed_at >= since
    )


def _success_rate(completed: int, failed: int) -> float | None:
    finished = completed + failed
    if finished == 0:
        return None
    return round(completed * 100.0 / finished, 2)


def _avg_execution_ms(tasks: Iterable[Task]) -> float:
    durations = [
        t.execution_time_ms
        for t in tasks
        if t.status == TaskStatus.COMPLETED and t.execution_time_ms is not None
    ]
    if not durations:
        return 0.0
    return sum(durations) / len(durations)


def compute_statistics(tasks: list[Task], now: datetime) -> TaskStatistics:
    counts = Counter(t.status for t in tasks)
    midnight = local_midnight(now)
    return TaskStatistics(
        total=len(tasks),
        pending=counts[TaskStatus.PENDING],
        running=counts[TaskStatus.RUNNING],
        completed=counts[TaskStatus.COMPLETED],
        failed=counts[TaskStatus.FAILED],
        cancelled=counts[TaskStatus.CANCELLED],
        completed_today=_finished_since(tasks, TaskStatus.COMPLETED, midnight),
        failed_today=_finished_since(tasks, TaskStatus.FAILED, midnight),
    )


def compute_health(tasks: list[Task], *, engine_running: bool) -> HealthMetrics:
    counts = Counter(t.status for t in tasks)
    completed = counts[TaskStatus.COMPLETED]
    failed = counts[TaskStatus.FAILED]
    rate = _success_rate(completed, failed)
    return HealthMetrics(
        total_tasks=len(tasks),
        active_tasks=counts[TaskStatus.RUNNING],
        pending_tasks=counts[TaskStatus.PENDING],
        completed_tasks=completed,
        failed_tasks=failed,
        cancelled_tasks=counts[TaskStatus.CANCELLED],
        success_rate=100.0 if rate is None else rate,
        avg_execution_time_ms=_avg_execution_ms(tasks),
        is_healthy=engine_running and (rate is None or rate >= HEALTHY_SUCCESS_RATE),
    )


def compute_agent_performance(tasks: list[Task]) -> list[AgentPerformance]:
    out: list[AgentPerformance] = []
    for agent in AgentType:
        mine = [t for t in tasks if t.agent_type == agent]
        completed = sum(1 for t in mine if t.status == TaskStatus.COMPLETED)
        failed = sum(1 for t in mine if t.status == TaskStatus.FAILED)
        rate = _success_rate(completed, failed)
        out.append(
            AgentPerformance(
                agent_type=agent,
                total_tasks=len(mine),
                completed_tasks=completed,
                failed_tasks=failed,
                success_rate=0.0 if rate is None else rate,
                avg_execution_time_ms=_avg_execution_ms(mine),
            )
        )
    return out


def compute_agent_health(tasks: list[Task], *, engine_running: bool) -> dict[AgentType, AgentHealth]:
    """inactive while stopped; error if the agent's latest finished task failed; else active."""
    if not engine_running:
        return {agent: AgentHealth.INACTIVE for agent in AgentType}

    health: dict[AgentType, AgentHealth] = {}
    for agent in AgentType:
        finished = [
            t
            for t in tasks
            if t.agent_type == agent
            and t.status in (TaskStatus.COMPLETED, TaskStatus.FAILED)
            and t.completed_at is not None
        ]
        latest = max(finished, key=lambda t: t.completed_at, default=None)  # type: ignore[arg-type, return-value]
        if latest is not None and latest.status == TaskStatus.FAILED:
            health[agent] = AgentHealth.ERROR
        else:
            health[agent] = AgentHealth.ACTIVE
    return health
