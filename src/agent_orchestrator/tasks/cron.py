# src/agent_orchestrator/tasks/cron.py

"""Cron helpers: standard 5-field expressions evaluated in an IANA timezone."""

from __future__ import annotations

from datetime import UTC, datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from croniter import croniter


def is_valid_timezone(name: str) -> bool:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


def is_valid_cron(expression: str) -> bool:
    # croniter also takes 6/7-field forms (seconds, years); only the classic form is accepted.
    if len(expression.split()) != 5:
        return False
    return bool(croniter.is_valid(expression))


def next_run_after(expression: str, timezone: str, after: datetime) -> datetime:
    """
    Next occurrence strictly after `after`, returned in UTC.

    Field matching happens in `timezone` so "0 9 * * 1-5" means 09:00 local time.
    """
    local = after.astimezone(ZoneInfo(timezone))
    nxt = croniter(expression, local).get_next(datetime)
    result = nxt.astimezone(UTC)
    if result <= after:
        # DST folds can make croniter hand back the base instant itself.
        nxt = croniter(expression, nxt).get_next(datetime)
        result = nxt.astimezone(UTC)
    return result
