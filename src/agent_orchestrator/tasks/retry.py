# src/agent_orchestrator/tasks/retry.py

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..core.errors import ExecutionError

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class RetryDecision:
    retry: bool
    attempt: int
    delay_seconds: float
    error: ExecutionError


class RetryController:
    """
    Bounded fixed-delay retry for checkpoint faults.

    Counts consecutive faults per task. Every fault within the budget is
    counted; while the count stays below max_retries the checkpoint is retried
    after retry_delay_seconds, and the fault that brings it to max_retries
    gives up. A successful checkpoint or a manual retry resets the count.
    """

    def __init__(self, *, max_retries: int = 3, retry_delay_seconds: float = 5.0) -> None:
        self.max_retries = max(0, int(max_retries))
        self.retry_delay_seconds = max(0.0, float(retry_delay_seconds))
        self._attempts: dict[str, int] = {}

    def attempts(self, task_id: str) -> int:
        return self._attempts.get(task_id, 0)

    def on_fault(self, error: ExecutionError) -> RetryDecision:
        attempt = self._attempts.get(error.task_id, 0) + 1
        if attempt < self.max_retries:
            self._attempts[error.task_id] = attempt
            logger.warning(
                "Checkpoint fault task_id=%s progress=%s, retry %d/%d in %.1fs: %s",
                error.task_id,
                error.progress,
                attempt,
                self.max_retries,
                self.retry_delay_seconds,
                error.message,
            )
            return RetryDecision(
                retry=True, attempt=attempt, delay_seconds=self.retry_delay_seconds, error=error
            )

        # Reports attempt 0 when max_retries is 0, so no warning is logged for it.
        attempt = min(attempt, self.max_retries)
        logger.error(
            "Retry budget exhausted task_id=%s after %d fault(s): %s",
            error.task_id,
            attempt,
            error.message,
        )
        self._attempts.pop(error.task_id, None)
        return RetryDecision(retry=False, attempt=attempt, delay_seconds=0.0, error=error)

    def reset(self, task_id: str) -> None:
        self._attempts.pop(task_id, None)
