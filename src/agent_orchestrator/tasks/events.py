# src/agent_orchestrator/tasks/events.py

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import StrEnum

from ..core.ports import TaskListener
from .task_models import Task

logger = logging.getLogger(__name__)


class TaskEventKind(StrEnum):
    CREATED = "task_created"
    STARTED = "task_started"
    PROGRESS = "task_progress"
    COMPLETED = "task_completed"
    FAILED = "task_failed"
    CANCELLED = "task_cancelled"
    PAUSED = "task_paused"
    RESUMED = "task_resumed"
    RETRIED = "task_retried"


@dataclass(slots=True, frozen=True)
class TaskEvent:
    """
    One state transition as seen by subscribers.

    `task` is a detached snapshot taken at emit time, one per subscriber;
    mutating it has no effect on the engine or on other subscribers.
    """

    kind: TaskEventKind
    task_id: str
    task: Task
    progress: int | None = None
    error: str | None = None


class EventBus:
    """Synchronous fan-out to subscribers, in subscription order."""

    def __init__(self) -> None:
        self._listeners: list[TaskListener] = []

    def subscribe(self, listener: TaskListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: TaskListener) -> bool:
        try:
            self._listeners.remove(listener)
        except ValueError:
            return False
        return True

    def __len__(self) -> int:
        return len(self._listeners)

    def emit(
        self,
        kind: TaskEventKind,
        task: Task,
        *,
        progress: int | None = None,
        error: str | None = None,
    ) -> TaskEvent:
        event = TaskEvent(
            kind=kind,
            task_id=task.id,
            task=task.snapshot(),
            progress=progress,
            error=error,
        )
        # Copy: a listener may unsubscribe itself while being notified. Each one
        # gets its own copy of the emit-time snapshot.
        for listener in list(self._listeners):
            try:
                listener(replace(event, task=event.task.snapshot()))
            except Exception:
                logger.exception("Task listener crashed kind=%s task_id=%s", kind.value, task.id)
        return event
