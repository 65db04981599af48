# src/agent_orchestrator/tasks/export.py

from __future__ import annotations

import csv
import io
import json
from dataclasses import asdict
from datetime import datetime
from typing import Any

from ..core.errors import ValidationError
from .task_models import Task

CSV_COLUMNS = (
    "id",
    "name",
    "description",
    "status",
    "priority",
    "agent_type",
    "progress",
    "created_at",
    "started_at",
    "completed_at",
)

EXPORT_FORMATS = ("json", "csv")


def _iso(value: datetime | None) -> str:
    return value.isoformat() if value is not None else ""


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"not JSON serializable: {type(value).__name__}")


def export_json(tasks: list[Task]) -> str:
    return json.dumps([asdict(t) for t in tasks], default=_json_default, ensure_ascii=False, indent=2)


def export_csv(tasks: list[Task]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for t in tasks:
        writer.writerow(
            [
                t.id,
                t.name,
                t.description,
                t.status.value,
                t.priority.value,
                t.agent_type.value,
                t.progress,
                _iso(t.created_at),
                _iso(t.started_at),
                _iso(t.completed_at),
            ]
        )
    return buf.getvalue()


def export_tasks(tasks: list[Task], fmt: str = "json") -> str:
    fmt = (fmt or "").strip().lower()
    if fmt == "json":
        return export_json(tasks)
    if fmt == "csv":
        return export_csv(tasks)
    raise ValidationError("format", f"expected one of {', '.join(EXPORT_FORMATS)}, got {fmt!r}")
