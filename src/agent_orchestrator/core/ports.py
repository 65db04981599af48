# src/agent_orchestrator/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the engine.

The engine depends on Protocols instead of concrete implementations.
This keeps time sources, registries and step execution swappable and makes
testing deterministic (virtual clock, scripted step runners).
"""

from collections.abc import Callable, Iterable
from datetime import datetime
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ..tasks.events import TaskEvent
    from ..tasks.pipeline import Checkpoint
    from ..tasks.task_models import Schedule, Task


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Clock(Protocol):
    """
    Time source and delayed-callback scheduler.

    The pipeline and the scheduler loop never sleep; they ask the clock to call
    them back. Virtual clocks advance time explicitly in tests.
    """

    def now(self) -> datetime: ...
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class TaskRepo(Protocol):
    def add(self, task: Task) -> None: ...
    def get(self, task_id: str) -> Task | None: ...
    def values(self) -> list[Task]: ...
    def remove(self, task_ids: Iterable[str]) -> int: ...
    def count(self) -> int: ...


class ScheduleRepo(Protocol):
    def add(self, schedule: Schedule) -> None: ...
    def values(self) -> list[Schedule]: ...
    def for_task(self, task_id: str) -> Schedule | None: ...
    def remove_for_tasks(self, task_ids: Iterable[str]) -> int: ...


class TaskListener(Protocol):
    """Observer called synchronously for every task transition."""

    def __call__(self, event: TaskEvent) -> None: ...


class StepRunner(Protocol):
    """
    Executes the work behind one checkpoint.

    Raising any exception marks the checkpoint as faulted and hands control to
    the retry controller.
    """

    def __call__(self, task: Task, checkpoint: Checkpoint) -> None: ...
