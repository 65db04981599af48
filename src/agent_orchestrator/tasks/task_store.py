# src/agent_orchestrator/tasks/task_store.py

from __future__ import annotations

import logging
from collections.abc import Iterable

from .task_models import Schedule, Task

logger = logging.getLogger(__name__)


class InMemoryTaskStore:
    """
    Process-memory task registry.

    Records are held by reference; the engine is the single writer and takes
    snapshots before handing anything out. Lost on restart.
    """

    def __init__(self) -> None:
        self._tasks: dict[str, Task] = {}

    def add(self, task: Task) -> None:
        if task.id in self._tasks:
            raise ValueError(f"duplicate task id {task.id}")
        self._tasks[task.id] = task
        logger.debug("Task added id=%s agent=%s", task.id, task.agent_type.value)

    def get(self, task_id: str) -> Task | None:
        return self._tasks.get(task_id)

    def values(self) -> list[Task]:
        return list(self._tasks.values())

    def remove(self, task_ids: Iterable[str]) -> int:
        removed = 0
        for task_id in task_ids:
            if self._tasks.pop(task_id, None) is not None:
                removed += 1
        return removed

    def count(self) -> int:
        return len(self._tasks)


class InMemoryScheduleStore:
    """Process-memory schedule registry; at most one schedule per task."""

    def __init__(self) -> None:
        self._schedules: dict[str, Schedule] = {}

    def add(self, schedule: Schedule) -> None:
        if self.for_task(schedule.task_id) is not None:
            raise ValueError(f"task {schedule.task_id} already has a schedule")
        self._schedules[schedule.id] = schedule
        logger.debug(
            "Schedule added id=%s task_id=%s cron=%r tz=%s",
            schedule.id,
            schedule.task_id,
            schedule.cron_expression,
            schedule.timezone,
        )

    def values(self) -> list[Schedule]:
        return list(self._schedules.values())

    def for_task(self, task_id: str) -> Schedule | None:
        for schedule in self._schedules.values():
            if schedule.task_id == task_id:
                return schedule
        return None

    def remove_for_tasks(self, task_ids: Iterable[str]) -> int:
        doomed = set(task_ids)
        ids = [s.id for s in self._schedules.values() if s.task_id in doomed]
        for schedule_id in ids:
            del self._schedules[schedule_id]
        return len(ids)
