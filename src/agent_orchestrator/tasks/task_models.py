# src/agent_orchestrator/tasks/task_models.py

from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any


def new_id() -> str:
    return uuid.uuid4().hex


class TaskStatus(StrEnum):
    """Task lifecycle status."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.CANCELLED})


class TaskPriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class AgentType(StrEnum):
    INTAKE = "intake"
    SPIN_UP = "spin_up"
    PM = "pm"
    LAUNCH = "launch"
    HANDOVER = "handover"
    SUPPORT = "support"


class LogLevel(StrEnum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    SUCCESS = "success"


class AgentHealth(StrEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ERROR = "error"


@dataclass(slots=True, frozen=True)
class TaskLog:
    id: str
    task_id: str
    level: LogLevel
    message: str
    timestamp: datetime
    details: dict[str, Any] | None = None


@dataclass(slots=True)
class Task:
    """
    Canonical task record.

    Only the engine mutates instances held by the registry; everything handed
    outward (listeners, callers) is a snapshot().
    """

    id: str
    name: str
    description: str
    status: TaskStatus
    priority: TaskPriority
    agent_type: AgentType
    created_at: datetime
    updated_at: datetime

    scheduled_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    progress: int = 0
    logs: list[TaskLog] = field(default_factory=list)

    def snapshot(self) -> Task:
        return copy.deepcopy(self)

    @property
    def execution_time_ms(self) -> int | None:
        if self.started_at is None or self.completed_at is None:
            return None
        return int((self.completed_at - self.started_at).total_seconds() * 1000)


@dataclass(slots=True)
class Schedule:
    id: str
    task_id: str
    cron_expression: str
    timezone: str
    is_active: bool
    created_at: datetime
    updated_at: datetime
    last_run: datetime | None = None
    next_run: datetime | None = None

    def snapshot(self) -> Schedule:
        return copy.deepcopy(self)


@dataclass(slots=True)
class TaskSpec:
    """
    Input payload for submit().

    name, description, priority and agent_type are all required. Enum-valued
    fields accept either the enum or its string value; validation
    normalizes them.
    """

    name: str
    description: str
    priority: TaskPriority | str
    agent_type: AgentType | str = ""
    scheduled_at: datetime | str | None = None
    cron_expression: str | None = None
    timezone: str | None = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> TaskSpec:
        return cls(
            name=str(raw.get("name") or ""),
            description=str(raw.get("description") or ""),
            priority=raw.get("priority") or "",
            agent_type=raw.get("agent_type") or "",
            scheduled_at=raw.get("scheduled_at"),
            cron_expression=raw.get("cron_expression"),
            timezone=raw.get("timezone"),
        )


@dataclass(slots=True, frozen=True)
class TaskStatistics:
    total: int
    pending: int
    running: int
    completed: int
    failed: int
    cancelled: int
    completed_today: int
    failed_today: int


@dataclass(slots=True, frozen=True)
class OrchestrationStatus:
    running: bool
    active_tasks: int
    completed_today: int
    failed_today: int
    agents_status: dict[AgentType, AgentHealth]
    last_activity: datetime


@dataclass(slots=True, frozen=True)
class HealthMetrics:
    total_tasks: int
    active_tasks: int
    pending_tasks: int
    completed_tasks: int
    failed_tasks: int
    cancelled_tasks: int
    success_rate: float
    avg_execution_time_ms: float
    is_healthy: bool


@dataclass(slots=True, frozen=True)
class AgentPerformance:
    agent_type: AgentType
    total_tasks: int
    completed_tasks: int
    failed_tasks: int
    success_rate: float
    avg_execution_time_ms: float
