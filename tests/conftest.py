# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from agent_orchestrator.cli.bootstrap import create_initial_state
from agent_orchestrator.core.clock import VirtualClock
from agent_orchestrator.core.state import AppState
from agent_orchestrator.tasks.engine import OrchestrationEngine

from fakes import T0, RecordingListener


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the engine.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="agent-orchestrator-test",
        log_level="DEBUG",
        data_dir=tmp_path / "data",
        console_enabled=False,
        # Scheduling / retry
        scheduler_interval_seconds=30.0,
        max_retries=3,
        retry_delay_seconds=5.0,
        default_timezone="UTC",
        # Retention
        retention_days=30,
    )


@pytest.fixture()
def clock() -> VirtualClock:
    return VirtualClock(T0)


@pytest.fixture()
def engine(clock: VirtualClock, settings: SimpleNamespace) -> OrchestrationEngine:
    return OrchestrationEngine(clock=clock, settings=settings)


@pytest.fixture()
def events(engine: OrchestrationEngine) -> RecordingListener:
    listener = RecordingListener()
    engine.subscribe(listener)
    return listener


@pytest.fixture()
def state(settings: SimpleNamespace, clock: VirtualClock) -> AppState:
    """AppState wired through the real composition root, on the virtual clock."""
    return create_initial_state(settings=settings, clock=clock)
