# src/agent_orchestrator/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..core.clock import ClockBackgroundRunner
from ..tasks.engine import OrchestrationEngine


@dataclass
class AppState:
    # Settings object (config.Settings or any compatible namespace).
    settings: Any

    engine: OrchestrationEngine

    # Present only when the engine runs on the background asyncio clock.
    clock_runner: ClockBackgroundRunner | None = None
