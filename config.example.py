# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file)
by src/agent_orchestrator/config.py. Nothing here is imported at runtime.
"""

ENV_VARS = {
    # App / logging
    "ORCH_APP_NAME": "App display name (default: agent-orchestrator).",
    "ORCH_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    "ORCH_DATA_DIR": "Local directory for orchestrator.log and exports (default: .local/orchestrator).",
    # Connectors
    "ORCH_CONSOLE_ENABLED": "Run the interactive console (true/false, default: true).",
    # Scheduling / retry
    "ORCH_SCHEDULER_INTERVAL_SECONDS": "Scheduler tick period in seconds, min 1 (default: 30).",
    "ORCH_MAX_RETRIES": "Consecutive checkpoint faults that fail the task; each one before that is retried (default: 3).",
    "ORCH_RETRY_DELAY_SECONDS": "Delay between checkpoint retries (default: 5).",
    "ORCH_DEFAULT_TIMEZONE": "IANA timezone for cron schedules submitted without one (default: UTC).",
    # Retention
    "ORCH_RETENTION_DAYS": "Default window for /cleanup (default: 30).",
}

EXAMPLE_DOTENV = """\
ORCH_LOG_LEVEL=INFO
ORCH_DATA_DIR=.local/orchestrator
ORCH_SCHEDULER_INTERVAL_SECONDS=30
ORCH_MAX_RETRIES=3
ORCH_RETRY_DELAY_SECONDS=5
ORCH_DEFAULT_TIMEZONE=Europe/Berlin
ORCH_RETENTION_DAYS=30
"""
