# src/agent_orchestrator/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- picks the clock (background asyncio loop unless one is injected),
- wires the engine into AppState.

Nothing else constructs an OrchestrationEngine; there is no module-level instance.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ..config import get_settings
from ..core.clock import ClockBackgroundRunner, start_clock_in_background
from ..core.ports import Clock, StepRunner
from ..core.state import AppState
from ..tasks.engine import OrchestrationEngine

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    data_dir = getattr(settings, "data_dir", None)
    if data_dir:
        Path(data_dir).mkdir(parents=True, exist_ok=True)


def create_initial_state(
    *,
    settings=None,
    clock: Clock | None = None,
    step_runner: StepRunner | None = None,
) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings and clock injectable makes the app easy to test and avoids hidden global state.
    If settings is None, falls back to get_settings(); if clock is None, starts the background loop.
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    runner: ClockBackgroundRunner | None = None
    if clock is None:
        runner = start_clock_in_background()
        if runner is None:
            raise RuntimeError("Could not start the background clock loop")
        clock = runner.clock

    engine = OrchestrationEngine(clock=clock, settings=settings, step_runner=step_runner)
    logger.info(
        "Engine wired: max_retries=%s retry_delay=%ss scheduler_interval=%ss",
        getattr(settings, "max_retries", 3),
        getattr(settings, "retry_delay_seconds", 5.0),
        getattr(settings, "scheduler_interval_seconds", 30.0),
    )
    return AppState(settings=settings, engine=engine, clock_runner=runner)


def shutdown_state(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        state.engine.stop()
    except Exception:
        logger.exception("Engine stop failed.")

    runner = state.clock_runner
    if runner is not None:
        runner.stop()
        runner.join(timeout=5.0)
