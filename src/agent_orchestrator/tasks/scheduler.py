# src/agent_orchestrator/tasks/scheduler.py

from __future__ import annotations

"""
Scheduler loop.

A clock-driven periodic tick that:
- fires active schedules whose next_run is due (cron, evaluated in the schedule's timezone),
- skips a firing while the previous run of the same schedule is still in flight,
- starts deferred tasks whose scheduled_at has passed,
- advances next_run / last_run.

Stopping the loop cancels the pending tick; in-flight task runs keep going.
"""

import logging
import threading
from datetime import datetime

from ..core.ports import Clock, ScheduleRepo, TaskRepo, TimerHandle
from .cron import next_run_after
from .pipeline import ExecutionPipeline
from .task_models import Schedule, Task, TaskStatus, new_id

logger = logging.getLogger(__name__)


class SchedulerLoop:
    def __init__(
        self,
        *,
        tasks: TaskRepo,
        schedules: ScheduleRepo,
        pipeline: ExecutionPipeline,
        clock: Clock,
        lock: threading.RLock,
        interval_seconds: float = 30.0,
    ) -> None:
        self._tasks = tasks
        self._schedules = schedules
        self._pipeline = pipeline
        self._clock = clock
        self._lock = lock
        self.interval_seconds = max(0.001, float(interval_seconds))
        self._running = False
        self._timer: TimerHandle | None = None
        self._in_flight: set[str] = set()

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._arm()
        logger.info("Scheduler loop started interval=%.1fs", self.interval_seconds)

    def stop(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._running:
            self._running = False
            logger.info("Scheduler loop stopped")

    def _arm(self) -> None:
        self._timer = self._clock.call_later(self.interval_seconds, self._on_timer)

    def _on_timer(self) -> None:
        if not self._running:
            return
        try:
            self.tick()
        except Exception:
            logger.exception("Scheduler tick failed")
        finally:
            if self._running:
                self._arm()

    # ---- schedules ----

    def add_schedule(self, task: Task, cron_expression: str, timezone: str) -> Schedule:
        now = self._clock.now()
        schedule = Schedule(
            id=new_id(),
            task_id=task.id,
            cron_expression=cron_expression,
            timezone=timezone,
            is_active=True,
            created_at=now,
            updated_at=now,
            next_run=next_run_after(cron_expression, timezone, now),
        )
        self._schedules.add(schedule)
        logger.info(
            "Schedule created task_id=%s cron=%r tz=%s next_run=%s",
            task.id,
            cron_expression,
            timezone,
            schedule.next_run.isoformat() if schedule.next_run else None,
        )
        return schedule

    def set_active(self, schedule: Schedule, is_active: bool) -> None:
        now = self._clock.now()
        schedule.is_active = is_active
        schedule.updated_at = now
        if is_active:
            schedule.next_run = next_run_after(schedule.cron_expression, schedule.timezone, now)
        else:
            self._in_flight.discard(schedule.id)

    def in_flight(self, schedule_id: str) -> bool:
        return schedule_id in self._in_flight

    # ---- tick ----

    def tick(self) -> int:
        """Run one scan. Returns the number of task runs started."""
        with self._lock:
            now = self._clock.now()
            started = self._fire_due_schedules(now)
            started += self._start_deferred(now)
            return started

    def _fire_due_schedules(self, now: datetime) -> int:
        started = 0
        for schedule in self._schedules.values():
            if not schedule.is_active or schedule.next_run is None or schedule.next_run > now:
                continue

            task = self._tasks.get(schedule.task_id)
            if task is None:
                logger.warning("Schedule %s points at a missing task %s; deactivating", schedule.id, schedule.task_id)
                schedule.is_active = False
                schedule.updated_at = now
                continue

            if task.status.is_terminal:
                self._in_flight.discard(schedule.id)

            busy = task.status == TaskStatus.RUNNING or (
                task.status == TaskStatus.PENDING and task.started_at is not None
            )
            if busy or schedule.id in self._in_flight:
                logger.info(
                    "Schedule %s skipped: previous run of task %s still in flight (status=%s)",
                    schedule.id,
                    task.id,
                    task.status.value,
                )
            else:
                if task.status.is_terminal:
                    self._pipeline.rearm(task)
                if self._pipeline.start(task.id):
                    self._in_flight.add(schedule.id)
                    started += 1
                    logger.info("Schedule %s fired task %s", schedule.id, task.id)
                schedule.last_run = now

            schedule.next_run = next_run_after(schedule.cron_expression, schedule.timezone, now)
            schedule.updated_at = now
        return started

    def _start_deferred(self, now: datetime) -> int:
        started = 0
        for task in self._tasks.values():
            if (
                task.status == TaskStatus.PENDING
                and task.started_at is None
                and task.scheduled_at is not None
                and task.scheduled_at <= now
                and self._pipeline.start(task.id)
            ):
                started += 1
                logger.info("Deferred task %s started (scheduled_at=%s)", task.id, task.scheduled_at.isoformat())
        return started
