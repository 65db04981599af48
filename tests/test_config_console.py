# tests/test_config_console.py

from __future__ import annotations

import builtins
import logging
from pathlib import Path

from agent_orchestrator.cli.bootstrap import create_initial_state, shutdown_state
from agent_orchestrator.config import Settings
from agent_orchestrator.connectors.console_connector import format_event, run_console_loop
from agent_orchestrator.logging_setup import _ConsoleNoiseFilter, setup_logging
from agent_orchestrator.tasks.task_models import TaskStatus

from fakes import RecordingListener, spec


def test_settings_from_env(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("ORCH_MAX_RETRIES", "5")
    monkeypatch.setenv("ORCH_RETRY_DELAY_SECONDS", "0.5")
    monkeypatch.setenv("ORCH_SCHEDULER_INTERVAL_SECONDS", "0.1")
    monkeypatch.setenv("ORCH_CONSOLE_ENABLED", "off")
    monkeypatch.setenv("ORCH_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("ORCH_RETENTION_DAYS", "not-a-number")
    monkeypatch.setenv("ORCH_DEFAULT_TIMEZONE", "  ")

    s = Settings.from_env()

    assert s.max_retries == 5
    assert s.retry_delay_seconds == 0.5
    # Clamped to one second.
    assert s.scheduler_interval_seconds == 1.0
    assert s.console_enabled is False
    assert s.data_dir == tmp_path
    assert s.retention_days == 30
    assert s.default_timezone == "UTC"


def test_format_event(engine, clock) -> None:
    rec = RecordingListener()
    engine.subscribe(rec)
    task = engine.submit(spec("Handover docs", agent_type="handover"))
    clock.advance(10)

    created = rec.events[0]
    assert format_event(created) == f"[TASK] {task.id[:8]} created: Handover docs"


def test_console_loop_dispatches_commands(state, monkeypatch, capsys) -> None:
    lines = iter(["/stats", "", "hello", "/exit", "/stats"])
    monkeypatch.setattr(builtins, "input", lambda _prompt="": next(lines))

    run_console_loop(state)

    out = capsys.readouterr().out
    assert "Tasks: total=0" in out
    assert "Not a command" in out
    # Loop stopped at /exit; the trailing /stats was never read.
    assert next(lines) == "/stats"


def test_console_loop_announces_task_events(state, clock, monkeypatch, capsys) -> None:
    def feed():
        yield "/submit name=Ping desc=pong agent=support"
        clock.advance(10)
        yield "/exit"

    gen = feed()
    monkeypatch.setattr(builtins, "input", lambda _prompt="": next(gen))

    run_console_loop(state)

    out = capsys.readouterr().out
    assert "created: Ping" in out
    assert "completed: Ping" in out
    assert "progress" not in out
    assert state.engine.list()[0].status == TaskStatus.COMPLETED


def test_console_loop_exits_on_eof(state, monkeypatch) -> None:
    def eof(_prompt: str = "") -> str:
        raise EOFError

    monkeypatch.setattr(builtins, "input", eof)
    run_console_loop(state)


def test_bootstrap_with_background_clock(settings) -> None:
    state = create_initial_state(settings=settings)
    assert state.clock_runner is not None
    assert settings.data_dir.is_dir()

    state.engine.start()
    shutdown_state(state)

    assert not state.engine.is_running
    assert not state.clock_runner.thread.is_alive()


def test_console_noise_filter() -> None:
    f = _ConsoleNoiseFilter()

    def rec(name: str, level: int) -> logging.LogRecord:
        return logging.LogRecord(name, level, __file__, 1, "msg", None, None)

    assert f.filter(rec("agent_orchestrator.tasks.engine", logging.INFO))
    assert not f.filter(rec("agent_orchestrator.tasks.pipeline", logging.INFO))
    assert f.filter(rec("agent_orchestrator.tasks.pipeline", logging.WARNING))
    assert not f.filter(rec("py.warnings", logging.WARNING))
    assert not f.filter(rec("asyncio", logging.WARNING))
    assert f.filter(rec("asyncio", logging.ERROR))


def test_setup_logging_writes_log_file(tmp_path: Path) -> None:
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        setup_logging(log_dir=tmp_path / "logs", console_level=logging.WARNING)
        logging.getLogger("agent_orchestrator.tests").info("hello file")
        for h in root.handlers:
            h.flush()
        assert "hello file" in (tmp_path / "logs" / "orchestrator.log").read_text("utf-8")
    finally:
        for h in list(root.handlers):
            root.removeHandler(h)
            h.close()
        for h in saved_handlers:
            root.addHandler(h)
        root.setLevel(saved_level)
        logging.captureWarnings(False)
