# src/agent_orchestrator/tasks/pipeline.py

from __future__ import annotations

"""
Execution pipeline.

Drives one task at a time through its state machine:

    pending -> running -> (checkpoints 20/40/60/80/100) -> completed
                       -> failed      (retry budget exhausted)
    pending|running -> cancelled
    running -> pending (pause), pending -> running (resume)
    failed -> pending (manual retry)

Nothing here sleeps. Every checkpoint is a clock callback carrying the run
token it was scheduled for; a callback whose task is no longer running, or
whose token is stale (pause, cancel, retry happened meanwhile), does nothing.

All public methods expect the caller to hold the engine lock; clock
callbacks take it themselves.
"""

import functools
import itertools
import logging
import threading
from dataclasses import dataclass
from typing import Any

from ..core.errors import ExecutionError
from ..core.ports import Clock, StepRunner, TaskRepo, TimerHandle
from .events import EventBus, TaskEventKind
from .retry import RetryController
from .task_models import LogLevel, Task, TaskLog, TaskStatus, new_id

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class Checkpoint:
    index: int
    progress: int
    message: str
    delay_seconds: float


CHECKPOINTS: tuple[Checkpoint, ...] = (
    Checkpoint(0, 20, "Initializing agent...", 1.0),
    Checkpoint(1, 40, "Processing request...", 1.5),
    Checkpoint(2, 60, "Executing business logic...", 2.0),
    Checkpoint(3, 80, "Finalizing results...", 1.0),
    Checkpoint(4, 100, "Task completed successfully", 0.5),
)


def simulated_step(task: Task, checkpoint: Checkpoint) -> None:
    """Default step runner: agents are simulated, so every checkpoint succeeds."""
    logger.debug("Simulated step task_id=%s progress=%d", task.id, checkpoint.progress)


class ExecutionPipeline:
    def __init__(
        self,
        *,
        tasks: TaskRepo,
        clock: Clock,
        bus: EventBus,
        retry: RetryController,
        lock: threading.RLock,
        step_runner: StepRunner | None = None,
        checkpoints: tuple[Checkpoint, ...] = CHECKPOINTS,
    ) -> None:
        if not checkpoints:
            raise ValueError("at least one checkpoint is required")
        self._tasks = tasks
        self._clock = clock
        self._bus = bus
        self._retry = retry
        self._lock = lock
        self._step_runner: StepRunner = step_runner or simulated_step
        self._checkpoints = tuple(
            Checkpoint(i, c.progress, c.message, c.delay_seconds) for i, c in enumerate(checkpoints)
        )
        self._run_seq = itertools.count(1)
        self._runs: dict[str, int] = {}
        self._timers: dict[str, TimerHandle] = {}

    # ---- helpers ----

    def add_log(
        self,
        task: Task,
        level: LogLevel,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        now = self._clock.now()
        task.logs.append(
            TaskLog(
                id=new_id(),
                task_id=task.id,
                level=level,
                message=message,
                timestamp=now,
                details=details,
            )
        )
        task.updated_at = now

    def _new_run(self, task_id: str) -> int:
        token = next(self._run_seq)
        self._runs[task_id] = token
        return token

    def _invalidate(self, task_id: str) -> None:
        self._runs.pop(task_id, None)
        timer = self._timers.pop(task_id, None)
        if timer is not None:
            timer.cancel()

    def _is_current(self, task: Task, token: int) -> bool:
        return task.status == TaskStatus.RUNNING and self._runs.get(task.id) == token

    def _schedule_step(self, task_id: str, token: int, index: int, delay: float) -> None:
        callback = functools.partial(self._run_step, task_id, token, index)
        self._timers[task_id] = self._clock.call_later(delay, callback)

    def _reset_run(self, task: Task) -> None:
        self._invalidate(task.id)
        self._retry.reset(task.id)
        task.status = TaskStatus.PENDING
        task.progress = 0
        task.started_at = None
        task.completed_at = None

    # ---- transitions ----

    def launch(self, task_id: str, delay: float = 0.0) -> None:
        """Hand a fresh pending task to the pipeline; it starts on a later clock turn."""

        def _start() -> None:
            with self._lock:
                self.start(task_id)

        self._clock.call_later(delay, _start)

    def start(self, task_id: str) -> bool:
        task = self._tasks.get(task_id)
        if task is None:
            logger.error("Task not found: %s", task_id)
            return False
        # started_at set means the task is paused, which only resume() may continue.
        if task.status != TaskStatus.PENDING or task.started_at is not None:
            logger.debug("Start ignored task_id=%s status=%s", task_id, task.status.value)
            return False

        task.status = TaskStatus.RUNNING
        task.started_at = self._clock.now()
        self.add_log(task, LogLevel.INFO, "Task execution started")
        logger.info("Executing task id=%s name=%r agent=%s", task.id, task.name, task.agent_type.value)
        self._bus.emit(TaskEventKind.STARTED, task)

        # A listener may have paused or cancelled the task during emit.
        if task.status == TaskStatus.RUNNING:
            token = self._new_run(task_id)
            self._schedule_step(task_id, token, 0, self._checkpoints[0].delay_seconds)
        return True

    def _run_step(self, task_id: str, token: int, index: int) -> None:
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None or not self._is_current(task, token):
                logger.debug("Stale checkpoint ignored task_id=%s index=%d", task_id, index)
                return
            self._timers.pop(task_id, None)

            checkpoint = self._checkpoints[index]
            try:
                self._step_runner(task.snapshot(), checkpoint)
            except Exception as exc:
                error = ExecutionError(task_id, task.progress, str(exc) or exc.__class__.__name__)
                self._on_fault(task, token, index, error)
                return

            self._retry.reset(task_id)
            task.progress = max(task.progress, checkpoint.progress)
            self.add_log(task, LogLevel.INFO, checkpoint.message, {"progress": task.progress})
            self._bus.emit(TaskEventKind.PROGRESS, task, progress=task.progress)

            # A listener may have paused or cancelled the task during emit.
            if not self._is_current(task, token):
                return

            if index + 1 < len(self._checkpoints):
                nxt = self._checkpoints[index + 1]
                self._schedule_step(task_id, token, nxt.index, nxt.delay_seconds)
            else:
                self._complete(task)

    def _on_fault(self, task: Task, token: int, index: int, error: ExecutionError) -> None:
        decision = self._retry.on_fault(error)
        # One warning per counted fault, including the one that exhausts the budget.
        if decision.attempt:
            outcome = (
                f"Retrying in {decision.delay_seconds:g}s" if decision.retry else "No retries left"
            )
            self.add_log(
                task,
                LogLevel.WARNING,
                f"Checkpoint failed: {error.message}. {outcome} "
                f"(attempt {decision.attempt}/{self._retry.max_retries})",
                {
                    "attempt": decision.attempt,
                    "delay_seconds": decision.delay_seconds,
                    "error": error.message,
                },
            )
        if decision.retry:
            self._schedule_step(task.id, token, index, decision.delay_seconds)
            return
        self._fail(task, error.message)

    def _complete(self, task: Task) -> None:
        self._invalidate(task.id)
        task.status = TaskStatus.COMPLETED
        task.completed_at = self._clock.now()
        self.add_log(task, LogLevel.SUCCESS, "Task completed successfully")
        logger.info("Task completed id=%s name=%r", task.id, task.name)
        self._bus.emit(TaskEventKind.COMPLETED, task)

    def _fail(self, task: Task, message: str) -> None:
        self._invalidate(task.id)
        task.status = TaskStatus.FAILED
        task.completed_at = self._clock.now()
        self.add_log(task, LogLevel.ERROR, f"Task failed: {message}", {"error": message})
        logger.error("Task failed id=%s name=%r: %s", task.id, task.name, message)
        self._bus.emit(TaskEventKind.FAILED, task, error=message)

    def cancel(self, task: Task) -> bool:
        if task.status not in (TaskStatus.PENDING, TaskStatus.RUNNING):
            return False
        self._invalidate(task.id)
        self._retry.reset(task.id)
        task.status = TaskStatus.CANCELLED
        self.add_log(task, LogLevel.WARNING, "Task cancelled by user")
        logger.info("Task cancelled id=%s name=%r", task.id, task.name)
        self._bus.emit(TaskEventKind.CANCELLED, task)
        return True

    def pause(self, task: Task) -> bool:
        if task.status != TaskStatus.RUNNING:
            return False
        self._invalidate(task.id)
        task.status = TaskStatus.PENDING
        self.add_log(task, LogLevel.INFO, f"Task paused at {task.progress}%")
        logger.info("Task paused id=%s progress=%d", task.id, task.progress)
        self._bus.emit(TaskEventKind.PAUSED, task)
        return True

    def resume(self, task: Task) -> bool:
        if task.status != TaskStatus.PENDING or task.started_at is None:
            return False

        task.status = TaskStatus.RUNNING
        token = self._new_run(task.id)
        self.add_log(task, LogLevel.INFO, f"Task resumed at {task.progress}%")
        logger.info("Task resumed id=%s progress=%d", task.id, task.progress)
        self._bus.emit(TaskEventKind.RESUMED, task)

        if not self._is_current(task, token):
            return True
        remaining = [c for c in self._checkpoints if c.progress > task.progress]
        if remaining:
            self._schedule_step(task.id, token, remaining[0].index, remaining[0].delay_seconds)
        else:
            self._complete(task)
        return True

    def retry(self, task: Task) -> bool:
        if task.status != TaskStatus.FAILED:
            return False
        self._reset_run(task)
        self.add_log(task, LogLevel.INFO, "Task queued for retry")
        logger.info("Task retry requested id=%s", task.id)
        self._bus.emit(TaskEventKind.RETRIED, task)
        self.launch(task.id)
        return True

    def rearm(self, task: Task) -> bool:
        """Reset a terminal task so a recurring schedule can run it again."""
        if not task.status.is_terminal:
            return False
        self._reset_run(task)
        self.add_log(task, LogLevel.INFO, "Recurring run triggered by schedule")
        return True
