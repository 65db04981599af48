# src/agent_orchestrator/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- Nothing required at import time; every value has a local-dev default.
- Consumers accept an injected settings object, get_settings() is only the fallback.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

ENV_PREFIX = "ORCH"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except Exception:
        return
    load_dotenv(override=False)


_load_dotenv_if_available()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    data_dir: Path

    # ---- Connector flags ----
    console_enabled: bool

    # ---- Scheduling / retry ----
    scheduler_interval_seconds: float
    max_retries: int
    retry_delay_seconds: float
    default_timezone: str

    # ---- Retention ----
    retention_days: int

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "agent-orchestrator").strip() or "agent-orchestrator"
        log_level = _env(_k("LOG_LEVEL"), "INFO")
        data_dir = _env_path(_k("DATA_DIR"), Path(".local/orchestrator"))

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        scheduler_interval_seconds = max(
            1.0, _env_float(_k("SCHEDULER_INTERVAL_SECONDS"), 30.0)
        )
        max_retries = max(0, _env_int(_k("MAX_RETRIES"), 3))
        retry_delay_seconds = max(0.0, _env_float(_k("RETRY_DELAY_SECONDS"), 5.0))
        default_timezone = _env(_k("DEFAULT_TIMEZONE"), "UTC").strip() or "UTC"

        retention_days = max(0, _env_int(_k("RETENTION_DAYS"), 30))

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            console_enabled=console_enabled,
            scheduler_interval_seconds=scheduler_interval_seconds,
            max_retries=max_retries,
            retry_delay_seconds=retry_delay_seconds,
            default_timezone=default_timezone,
            retention_days=retention_days,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
