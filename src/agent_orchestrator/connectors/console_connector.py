# src/agent_orchestrator/connectors/console_connector.py

from __future__ import annotations

import logging
import sys
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.state import AppState
from ..tasks.events import TaskEvent, TaskEventKind

logger = logging.getLogger(__name__)

# Everything except per-checkpoint progress.
_ANNOUNCED = frozenset(TaskEventKind) - {TaskEventKind.PROGRESS}


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


def _rewrite_prev_line(line: str) -> None:
    """
    Replace the last terminal line with `line`.
    Best-effort: if not a TTY, just print a new line.
    """
    try:
        if sys.stdout.isatty():
            sys.stdout.write("\033[1A\033[2K\r")
            sys.stdout.write(line + "\n")
            sys.stdout.flush()
        else:
            print(line)
    except Exception:
        print(line)


def format_event(event: TaskEvent) -> str:
    kind = event.kind.value.removeprefix("task_")
    text = f"[TASK] {event.task_id[:8]} {kind}: {event.task.name}"
    if event.error:
        text += f" ({event.error})"
    return text


def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started.")
    _print_ts("[CONSOLE] Type /help for commands. Use /exit to quit.\n")

    def announce(event: TaskEvent) -> None:
        if event.kind in _ANNOUNCED:
            _print_ts(format_event(event))

    state.engine.subscribe(announce)
    try:
        while True:
            try:
                user_input = input(">>> ").strip()
                _rewrite_prev_line(f"[{_ts_local()}] >>> {user_input}")
            except EOFError:
                logger.info("Console EOF received, exiting.")
                break
            except KeyboardInterrupt:
                logger.info("Console KeyboardInterrupt, exiting.")
                print()
                break

            if not user_input:
                continue

            if user_input.lower() in ("/exit", "/quit"):
                logger.info("Console exit command received.")
                break

            try:
                reply = command_registry.handle(state, user_input, emit=_print_ts)
            except Exception:
                logger.exception("Command handler crashed.")
                reply = "Internal error while handling a command."

            if reply is None:
                reply = "Not a command. Use /help to list available commands."
            _print_ts(reply)
    finally:
        state.engine.unsubscribe(announce)
        logger.info("Console connector finished.")
