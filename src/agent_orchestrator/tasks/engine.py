# src/agent_orchestrator/tasks/engine.py

from __future__ import annotations

"""
Orchestration engine.

The one object connectors talk to. It owns the registries, the event bus, the
execution pipeline, the retry controller and the scheduler loop, and
serializes every mutation behind a single re-entrant lock (caller
operations, scheduler ticks and checkpoint continuations alike).

Everything returned to callers is a snapshot; holding on to it never
exposes engine state.

Lifecycle operations (cancel/retry/pause/resume/...) return False for unknown
ids or incompatible statuses instead of raising.
"""

import logging
import threading
from collections.abc import Iterable
from datetime import datetime, timedelta
from typing import Any

from ..config import get_settings
from ..core.errors import NotFoundError
from ..core.ports import Clock, ScheduleRepo, StepRunner, TaskListener, TaskRepo
from .events import EventBus, TaskEventKind
from .export import export_tasks
from .metrics import (
    compute_agent_health,
    compute_agent_performance,
    compute_health,
    compute_statistics,
)
from .pipeline import CHECKPOINTS, Checkpoint, ExecutionPipeline
from .retry import RetryController
from .scheduler import SchedulerLoop
from .task_models import (
    AgentPerformance,
    AgentType,
    HealthMetrics,
    OrchestrationStatus,
    Schedule,
    Task,
    TaskLog,
    TaskPriority,
    TaskSpec,
    TaskStatistics,
    TaskStatus,
    new_id,
)
from .task_store import InMemoryScheduleStore, InMemoryTaskStore
from .validation import coerce_enum, validate_spec

logger = logging.getLogger(__name__)


class OrchestrationEngine:
    def __init__(
        self,
        *,
        clock: Clock,
        settings: Any = None,
        tasks: TaskRepo | None = None,
        schedules: ScheduleRepo | None = None,
        step_runner: StepRunner | None = None,
        checkpoints: tuple[Checkpoint, ...] = CHECKPOINTS,
    ) -> None:
        if settings is None:
            settings = get_settings()

        self._lock = threading.RLock()
        self._clock = clock
        self._tasks: TaskRepo = tasks if tasks is not None else InMemoryTaskStore()
        self._schedules: ScheduleRepo = schedules if schedules is not None else InMemoryScheduleStore()
        self._bus = EventBus()
        self._default_timezone = str(getattr(settings, "default_timezone", "UTC") or "UTC")
        self._created_at = clock.now()

        self._retry = RetryController(
            max_retries=int(getattr(settings, "max_retries", 3)),
            retry_delay_seconds=float(getattr(settings, "retry_delay_seconds", 5.0)),
        )
        self._pipeline = ExecutionPipeline(
            tasks=self._tasks,
            clock=clock,
            bus=self._bus,
            retry=self._retry,
            lock=self._lock,
            step_runner=step_runner,
            checkpoints=checkpoints,
        )
        self._scheduler = SchedulerLoop(
            tasks=self._tasks,
            schedules=self._schedules,
            pipeline=self._pipeline,
            clock=clock,
            lock=self._lock,
            interval_seconds=float(getattr(settings, "scheduler_interval_seconds", 30.0)),
        )

    # ---- orchestration control ----

    @property
    def is_running(self) -> bool:
        return self._scheduler.running

    @property
    def max_retries(self) -> int:
        return self._retry.max_retries

    def start(self) -> None:
        with self._lock:
            self._scheduler.start()
        logger.info("Agent orchestration engine started")

    def stop(self) -> None:
        with self._lock:
            self._scheduler.stop()
        logger.info("Agent orchestration engine stopped")

    def tick(self) -> int:
        """Run one scheduler scan now, outside the periodic timer."""
        return self._scheduler.tick()

    # ---- events ----

    def subscribe(self, listener: TaskListener) -> None:
        with self._lock:
            self._bus.subscribe(listener)

    def unsubscribe(self, listener: TaskListener) -> bool:
        with self._lock:
            return self._bus.unsubscribe(listener)

    # ---- registry ----

    def submit(self, spec: TaskSpec | dict[str, Any]) -> Task:
        """
        Validate and register a task.

        Raises ValidationError before anything is stored. A task with no
        scheduled_at (or one already in the past) is handed to the pipeline and
        starts on the next clock turn, so the returned snapshot is still pending.
        """
        if isinstance(spec, dict):
            spec = TaskSpec.from_dict(spec)
        valid = validate_spec(spec, default_timezone=self._default_timezone)

        with self._lock:
            now = self._clock.now()
            task = Task(
                id=new_id(),
                name=valid.name,
                description=valid.description,
                status=TaskStatus.PENDING,
                priority=valid.priority,
                agent_type=valid.agent_type,
                created_at=now,
                updated_at=now,
                scheduled_at=valid.scheduled_at,
            )
            self._tasks.add(task)
            if valid.cron_expression:
                self._scheduler.add_schedule(task, valid.cron_expression, valid.timezone)

            logger.info(
                "Task scheduled id=%s name=%r agent=%s priority=%s",
                task.id,
                task.name,
                task.agent_type.value,
                task.priority.value,
            )
            self._bus.emit(TaskEventKind.CREATED, task)

            if valid.scheduled_at is None or valid.scheduled_at <= now:
                self._pipeline.launch(task.id)
            return task.snapshot()

    def submit_batch(self, specs: Iterable[TaskSpec | dict[str, Any]]) -> list[Task]:
        """
        Submit several specs in order.

        Every spec is validated first; if any is invalid nothing is registered.
        """
        normalized = [TaskSpec.from_dict(s) if isinstance(s, dict) else s for s in specs]
        for spec in normalized:
            validate_spec(spec, default_timezone=self._default_timezone)
        with self._lock:
            return [self.submit(spec) for spec in normalized]

    def get(self, task_id: str) -> Task | None:
        with self._lock:
            task = self._tasks.get(task_id)
            return task.snapshot() if task is not None else None

    def require(self, task_id: str) -> Task:
        task = self.get(task_id)
        if task is None:
            raise NotFoundError(task_id)
        return task

    def list(self) -> list[Task]:
        """All tasks, newest first."""
        with self._lock:
            # Reverse insertion order first so equal created_at values still list newest first.
            ordered = sorted(reversed(self._tasks.values()), key=lambda t: t.created_at, reverse=True)
            return [t.snapshot() for t in ordered]

    def list_by_status(self, status: TaskStatus | str) -> list[Task]:
        wanted = coerce_enum("status", TaskStatus, status)
        return [t for t in self.list() if t.status == wanted]

    def list_by_agent_type(self, agent_type: AgentType | str) -> list[Task]:
        wanted = coerce_enum("agent_type", AgentType, agent_type)
        return [t for t in self.list() if t.agent_type == wanted]

    def list_by_priority(self, priority: TaskPriority | str) -> list[Task]:
        wanted = coerce_enum("priority", TaskPriority, priority)
        return [t for t in self.list() if t.priority == wanted]

    def get_logs(self, task_id: str) -> list[TaskLog]:
        with self._lock:
            task = self._tasks.get(task_id)
            return list(task.logs) if task is not None else []

    # ---- lifecycle ----

    def cancel(self, task_id: str) -> bool:
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None or not self._pipeline.cancel(task):
                return False
            schedule = self._schedules.for_task(task_id)
            if schedule is not None and schedule.is_active:
                self._scheduler.set_active(schedule, False)
                logger.info("Schedule %s deactivated with its cancelled task", schedule.id)
            return True

    def retry(self, task_id: str) -> bool:
        with self._lock:
            task = self._tasks.get(task_id)
            return task is not None and self._pipeline.retry(task)

    def pause(self, task_id: str) -> bool:
        with self._lock:
            task = self._tasks.get(task_id)
            return task is not None and self._pipeline.pause(task)

    def resume(self, task_id: str) -> bool:
        with self._lock:
            task = self._tasks.get(task_id)
            return task is not None and self._pipeline.resume(task)

    def pause_all(self) -> int:
        with self._lock:
            return sum(1 for t in self._tasks.values() if self._pipeline.pause(t))

    def resume_all(self) -> int:
        with self._lock:
            return sum(1 for t in self._tasks.values() if self._pipeline.resume(t))

    def update_priority(self, task_id: str, priority: TaskPriority | str) -> bool:
        """Change priority of a non-terminal task. Raises ValidationError on an unknown priority."""
        wanted = coerce_enum("priority", TaskPriority, priority)
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None or task.status.is_terminal:
                return False
            if task.priority != wanted:
                task.priority = wanted
                task.updated_at = self._clock.now()
                logger.info("Task priority changed id=%s priority=%s", task_id, wanted.value)
            return True

    # ---- schedules ----

    def list_schedules(self) -> list[Schedule]:
        with self._lock:
            return [s.snapshot() for s in self._schedules.values()]

    def get_schedule(self, task_id: str) -> Schedule | None:
        with self._lock:
            schedule = self._schedules.for_task(task_id)
            return schedule.snapshot() if schedule is not None else None

    def set_schedule_active(self, task_id: str, is_active: bool) -> bool:
        with self._lock:
            schedule = self._schedules.for_task(task_id)
            if schedule is None:
                return False
            self._scheduler.set_active(schedule, bool(is_active))
            logger.info("Schedule %s %s", schedule.id, "activated" if is_active else "deactivated")
            return True

    # ---- reporting ----

    def status(self) -> OrchestrationStatus:
        with self._lock:
            tasks = self._tasks.values()
            running = self._scheduler.running
            stats = compute_statistics(tasks, self._clock.now())
            last_activity = max((t.updated_at for t in tasks), default=self._created_at)
            return OrchestrationStatus(
                running=running,
                active_tasks=stats.running,
                completed_today=stats.completed_today,
                failed_today=stats.failed_today,
                agents_status=compute_agent_health(tasks, engine_running=running),
                last_activity=last_activity,
            )

    def statistics(self) -> TaskStatistics:
        with self._lock:
            return compute_statistics(self._tasks.values(), self._clock.now())

    def health_metrics(self) -> HealthMetrics:
        with self._lock:
            return compute_health(self._tasks.values(), engine_running=self._scheduler.running)

    def agent_performance(self) -> list[AgentPerformance]:
        with self._lock:
            return compute_agent_performance(self._tasks.values())

    def export(self, fmt: str = "json") -> str:
        return export_tasks(self.list(), fmt)

    # ---- retention ----

    def cleanup(self, max_age_days: int) -> int:
        """
        Remove completed/cancelled tasks finished at or before now - max_age_days.

        Failed tasks are always kept, and so is any task bound to an active
        schedule. Schedules of removed tasks go with them.
        """
        with self._lock:
            now = self._clock.now()
            cutoff = now - timedelta(days=max(0, int(max_age_days)))
            scheduled = {s.task_id for s in self._schedules.values() if s.is_active}

            doomed: list[str] = []
            for task in self._tasks.values():
                if task.status not in (TaskStatus.COMPLETED, TaskStatus.CANCELLED):
                    continue
                if task.id in scheduled:
                    continue
                # Cancelling never sets completed_at; updated_at is the cancellation time.
                finished_at: datetime = task.completed_at or task.updated_at
                if finished_at <= cutoff:
                    doomed.append(task.id)

            removed = self._tasks.remove(doomed)
            dropped = self._schedules.remove_for_tasks(doomed)
            logger.info(
                "Cleanup removed %d task(s) and %d schedule(s) older than %d day(s)",
                removed,
                dropped,
                max_age_days,
            )
            return removed
