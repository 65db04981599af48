# tests/test_validation.py

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest

from agent_orchestrator.core.errors import ValidationError
from agent_orchestrator.tasks.task_models import AgentType, TaskPriority, TaskSpec
from agent_orchestrator.tasks.validation import parse_timestamp, validate_spec


def _spec(**overrides) -> TaskSpec:
    base = {
        "name": "Kickoff",
        "description": "Schedule the kickoff call",
        "priority": "medium",
        "agent_type": "pm",
    }
    base.update(overrides)
    return TaskSpec.from_dict(base)


def test_normalization_and_timezone_default() -> None:
    valid = validate_spec(
        _spec(name="  Kickoff  ", priority="HIGH", agent_type="PM"), default_timezone="Europe/Paris"
    )

    assert valid.name == "Kickoff"
    assert valid.agent_type == AgentType.PM
    assert valid.priority == TaskPriority.HIGH
    assert valid.scheduled_at is None
    assert valid.cron_expression is None
    assert valid.timezone == "Europe/Paris"


@pytest.mark.parametrize(
    ("overrides", "field"),
    [
        ({"name": ""}, "name"),
        ({"description": "   "}, "description"),
        ({"agent_type": ""}, "agent_type"),
        ({"agent_type": "sales"}, "agent_type"),
        ({"priority": ""}, "priority"),
        ({"priority": "critical"}, "priority"),
        ({"scheduled_at": "next tuesday"}, "scheduled_at"),
        ({"timezone": "Nowhere/City"}, "timezone"),
        ({"cron_expression": "*/5 * * *"}, "cron_expression"),
    ],
)
def test_rejected_fields(overrides: dict, field: str) -> None:
    with pytest.raises(ValidationError) as exc:
        validate_spec(_spec(**overrides))
    assert exc.value.field == field
    assert str(exc.value).startswith(f"{field}: ")


def test_cron_whitespace_is_collapsed() -> None:
    valid = validate_spec(_spec(cron_expression="  */5   *  * * 1-5 "))
    assert valid.cron_expression == "*/5 * * * 1-5"


def test_blank_cron_means_no_schedule() -> None:
    assert validate_spec(_spec(cron_expression="   ")).cron_expression is None


def test_parse_timestamp_variants() -> None:
    expected = datetime(2026, 1, 5, 13, 0, tzinfo=UTC)

    assert parse_timestamp("at", "2026-01-05T13:00:00Z") == expected
    assert parse_timestamp("at", "2026-01-05T13:00:00") == expected
    assert parse_timestamp("at", "2026-01-05T14:00:00+01:00") == expected
    assert parse_timestamp("at", datetime(2026, 1, 5, 13, 0)) == expected

    aware = datetime(2026, 1, 5, 8, 0, tzinfo=timezone(timedelta(hours=-5)))
    assert parse_timestamp("at", aware) == expected
    assert parse_timestamp("at", aware).tzinfo == UTC

    assert parse_timestamp("at", None) is None
    assert parse_timestamp("at", "") is None

    with pytest.raises(ValidationError):
        parse_timestamp("at", 1767618000)


def test_enum_members_are_accepted_as_is() -> None:
    valid = validate_spec(
        TaskSpec(
            name="n",
            description="d",
            priority=TaskPriority.URGENT,
            agent_type=AgentType.HANDOVER,
        )
    )
    assert valid.priority == TaskPriority.URGENT
    assert valid.agent_type == AgentType.HANDOVER


def test_missing_priority_is_rejected() -> None:
    raw = {"name": "Kickoff", "description": "Schedule the kickoff call", "agent_type": "pm"}

    with pytest.raises(ValidationError) as exc:
        validate_spec(TaskSpec.from_dict(raw))
    assert exc.value.field == "priority"
    assert str(exc.value) == "priority: is required"

    with pytest.raises(TypeError):
        TaskSpec(name="Kickoff", description="d", agent_type="pm")  # type: ignore[call-arg]
