from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from ..core.task_types import (
    DEFAULT_TASK_PRIORITY,
    TASK_PRIORITY_CHOICES,
    TASK_STATUS_CHOICES,
    TASK_STATUS_COMPLETED,
    TASK_STATUS_PENDING,
    can_transition,
    normalize_choice,
    status_label,
)
from ..platform.client import fetch_one, fetch_rows
from .teams import embedded_row

logger = logging.getLogger(__name__)

TASKS_TABLE = "tasks"
TASK_COLUMNS = (
    "id, title, description, status, priority, estimated_hours, actual_hours, "
    "due_date, assigned_to, team_id, created_at, teams(name), user_profiles(full_name)"
)


def _flatten_task(row: Mapping[str, Any]) -> dict[str, Any]:
    task = {key: value for key, value in row.items() if key not in {"teams", "user_profiles"}}
    task["id"] = str(row.get("id"))
    task["team_name"] = embedded_row(row, "teams").get("name") or "Unknown"
    task["assigned_user_name"] = embedded_row(row, "user_profiles").get("full_name") or "Unassigned"
    return task


def list_tasks(client: Any, status: str | None = None, limit: int | None = None) -> list[dict[str, Any]]:
    query = client.table(TASKS_TABLE).select(TASK_COLUMNS)
    if status and status != "all":
        query = query.eq("status", normalize_choice(status, TASK_STATUS_CHOICES, TASK_STATUS_PENDING))
    query = query.order("created_at", desc=True)
    if limit:
        query = query.limit(limit)
    return [_flatten_task(row) for row in fetch_rows(query, action="tasks.list")]


def get_task(client: Any, task_id: str) -> dict[str, Any] | None:
    row = fetch_one(client.table(TASKS_TABLE).select(TASK_COLUMNS).eq("id", task_id), action="tasks.get")
    return _flatten_task(row) if row else None


def _clean_estimate(value: Any) -> float:
    if value in (None, ""):
        return 0.0
    try:
        estimate = Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError("estimated_hours must be a number") from exc
    if not estimate.is_finite() or estimate < 0:
        raise ValueError("estimated_hours must be zero or greater")
    return float(estimate)


def _clean_due_date(value: Any) -> str | None:
    if value in (None, ""):
        return None
    if isinstance(value, date):
        return value.isoformat()
    try:
        return date.fromisoformat(str(value).strip()[:10]).isoformat()
    except ValueError as exc:
        raise ValueError("due_date must be formatted YYYY-MM-DD") from exc


def create_task(client: Any, data: Mapping[str, Any]) -> dict[str, Any]:
    title = (data.get("title") or "").strip()
    if not title:
        raise ValueError("Task title is required")
    team_id = (str(data.get("team_id") or "")).strip()
    if not team_id:
        raise ValueError("team_id is required")
    payload = {
        "title": title,
        "description": (data.get("description") or "").strip() or None,
        "team_id": team_id,
        "assigned_to": (str(data.get("assigned_to") or "")).strip() or None,
        "priority": normalize_choice(data.get("priority"), TASK_PRIORITY_CHOICES, DEFAULT_TASK_PRIORITY),
        "estimated_hours": _clean_estimate(data.get("estimated_hours")),
        "due_date": _clean_due_date(data.get("due_date")),
        "status": TASK_STATUS_PENDING,
    }
    rows = fetch_rows(client.table(TASKS_TABLE).insert(payload), action="tasks.create")
    if not rows:
        raise ValueError("Task was not created")
    logger.info(
        "tasks.created",
        extra={"extra_data": {"task_id": rows[0].get("id"), "team_id": team_id, "assigned_to": payload["assigned_to"]}},
    )
    return rows[0]


def update_task_status(client: Any, task_id: str, status: str) -> dict[str, Any] | None:
    """Move a task along start/pause/resume/complete; ``None`` if the task is gone."""

    target = normalize_choice(status, TASK_STATUS_CHOICES, TASK_STATUS_PENDING)
    current = fetch_one(client.table(TASKS_TABLE).select("id, status").eq("id", task_id), action="tasks.get")
    if current is None:
        return None
    if not can_transition(current.get("status"), target):
        raise ValueError(
            f"Cannot move a task from {status_label(current.get('status')) or 'unknown'} to {status_label(target)}"
        )
    rows = fetch_rows(
        client.table(TASKS_TABLE).update({"status": target}).eq("id", task_id),
        action="tasks.update_status",
    )
    if not rows:
        return None
    logger.info(
        "tasks.status_changed",
        extra={"extra_data": {"task_id": task_id, "from": current.get("status"), "to": target}},
    )
    return rows[0]


def count_completed_tasks(client: Any, user_id: str | None) -> int:
    if not user_id:
        return 0
    query = (
        client.table(TASKS_TABLE)
        .select("id")
        .eq("assigned_to", user_id)
        .eq("status", TASK_STATUS_COMPLETED)
    )
    return len(fetch_rows(query, action="tasks.completed_count"))


__all__ = [
    "count_completed_tasks",
    "create_task",
    "get_task",
    "list_tasks",
    "update_task_status",
]
