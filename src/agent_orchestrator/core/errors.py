# src/agent_orchestrator/core/errors.py

"""Exception hierarchy shared by the engine and its connectors."""

from __future__ import annotations


class OrchestratorError(Exception):
    """Base class for all orchestrator errors."""


class ValidationError(OrchestratorError):
    """A TaskSpec was rejected at submit time; the task never entered the registry."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class ExecutionError(OrchestratorError):
    """A checkpoint failed. Handled by the retry controller, never raised out of the engine."""

    def __init__(self, task_id: str, progress: int, message: str) -> None:
        super().__init__(message)
        self.task_id = task_id
        self.progress = progress
        self.message = message


class NotFoundError(OrchestratorError):
    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id
