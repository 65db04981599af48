# src/agent_orchestrator/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState (engine on a background asyncio clock),
starts the orchestration scheduler, then runs the console REPL in the main
thread (or just waits for a signal when the console is disabled).
"""

from __future__ import annotations

import logging
import signal
import threading

from ..cli.bootstrap import create_initial_state, shutdown_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    log_dir = getattr(settings, "data_dir", ".local/orchestrator")
    setup_logging(log_dir=log_dir, console_level=console_level)

    logger.info("Starting %s...", getattr(settings, "app_name", "agent-orchestrator"))

    # IMPORTANT: reuse same settings object
    state = create_initial_state(settings=settings)
    state.engine.start()

    # Use an Event so main can wait without a busy while-loop.
    stop_main = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    try:
        signal.signal(signal.SIGINT, _handle_signal)
        signal.signal(signal.SIGTERM, _handle_signal)
    except Exception:
        # Some platforms may not support SIGTERM, etc.
        pass

    try:
        if settings.console_enabled:
            run_console_loop(state)
            stop_main.set()
        else:
            logger.info("Console disabled. Running scheduler only. Press Ctrl+C to stop.")
            stop_main.wait()
    finally:
        shutdown_state(state)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
