# src/agent_orchestrator/tasks/validation.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import TypeVar

from ..core.errors import ValidationError
from .cron import is_valid_cron, is_valid_timezone
from .task_models import AgentType, TaskPriority, TaskSpec

E = TypeVar("E", bound=StrEnum)


@dataclass(slots=True, frozen=True)
class ValidTaskSpec:
    """TaskSpec after normalization: trimmed strings, real enums, aware datetimes."""

    name: str
    description: str
    priority: TaskPriority
    agent_type: AgentType
    scheduled_at: datetime | None
    cron_expression: str | None
    timezone: str


def _required_text(field: str, value: object) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(field, "is required")
    return value.strip()


def coerce_enum(field: str, enum_cls: type[E], value: object) -> E:
    if isinstance(value, enum_cls):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(field, "is required")
    try:
        return enum_cls(value.strip().lower())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(field, f"must be one of: {allowed}") from None


def parse_timestamp(field: str, value: object) -> datetime | None:
    """ISO-8601 string or datetime -> aware UTC datetime. Naive values are taken as UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        raw = value.strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(raw)
        except ValueError:
            raise ValidationError(field, f"not an ISO-8601 timestamp: {value!r}") from None
    else:
        raise ValidationError(field, "must be an ISO-8601 string or datetime")

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def validate_spec(spec: TaskSpec, *, default_timezone: str = "UTC") -> ValidTaskSpec:
    """Raise ValidationError on the first invalid field."""
    name = _required_text("name", spec.name)
    description = _required_text("description", spec.description)
    priority = coerce_enum("priority", TaskPriority, spec.priority)
    agent_type = coerce_enum("agent_type", AgentType, spec.agent_type)
    scheduled_at = parse_timestamp("scheduled_at", spec.scheduled_at)

    timezone = (spec.timezone or "").strip() or default_timezone
    if not is_valid_timezone(timezone):
        raise ValidationError("timezone", f"unknown IANA timezone: {timezone!r}")

    cron_expression: str | None = None
    if spec.cron_expression is not None and spec.cron_expression.strip():
        cron_expression = " ".join(spec.cron_expression.split())
        if not is_valid_cron(cron_expression):
            raise ValidationError(
                "cron_expression", f"not a valid 5-field cron expression: {spec.cron_expression!r}"
            )

    return ValidTaskSpec(
        name=name,
        description=description,
        priority=priority,
        agent_type=agent_type,
        scheduled_at=scheduled_at,
        cron_expression=cron_expression,
        timezone=timezone,
    )
