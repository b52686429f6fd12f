"""Platform reads behind the admin monthly developer report."""

from __future__ import annotations

from datetime import date
from typing import Any

from ..platform.client import fetch_rows
from ..services import reporting
from ..core.task_types import TASK_STATUS_COMPLETED
from .tasks import count_completed_tasks, list_tasks
from .teams import admin_team_overview, embedded_row, list_active_members

NO_TASK_LINKED = "No task linked"
RECENT_TASKS = 5
DASHBOARD_MEMBERS = 10


def member_entries_for_month(client: Any, user_id: str | None, month: date) -> list[dict[str, Any]]:
    if not user_id:
        return []
    start, end = reporting.month_bounds(month)
    query = (
        client.table("work_entries")
        .select("id, hours_spent, work_date, description")
        .eq("user_id", user_id)
        .gte("work_date", start.isoformat())
        .lte("work_date", end.isoformat())
    )
    return fetch_rows(query, action="reports.member_entries")


def monthly_developer_reports(client: Any, month: date) -> list[dict[str, Any]]:
    reports = []
    for member in list_active_members(client):
        user_id = member.get("user_id")
        entries = member_entries_for_month(client, user_id, month)
        completed = count_completed_tasks(client, user_id)
        reports.append(reporting.developer_report(member, entries, completed))
    return reports


def _linked_task_title(row: dict[str, Any]) -> str:
    links = row.get("task_work_entries") or []
    if isinstance(links, dict):
        links = [links]
    for link in links:
        title = embedded_row(link, "tasks").get("title") if isinstance(link, dict) else None
        if title:
            return title
    return NO_TASK_LINKED


def developer_work_details(client: Any, user_id: str, month: date) -> list[dict[str, Any]]:
    start, end = reporting.month_bounds(month)
    query = (
        client.table("work_entries")
        .select("id, work_date, hours_spent, description, task_work_entries(tasks(title))")
        .eq("user_id", user_id)
        .gte("work_date", start.isoformat())
        .lte("work_date", end.isoformat())
        .order("work_date", desc=True)
    )
    return [
        {
            "id": str(row.get("id")),
            "work_date": str(row.get("work_date") or "")[:10],
            "hours_spent": row.get("hours_spent") or 0,
            "description": row.get("description") or "",
            "task_title": _linked_task_title(row),
        }
        for row in fetch_rows(query, action="reports.developer_details")
    ]


def admin_dashboard(client: Any) -> dict[str, Any]:
    """Stats over every team, task and active member; the lists are trimmed for display."""

    overview = admin_team_overview(client)
    all_tasks = list_tasks(client)
    members = list_active_members(client)
    return {
        "stats": {
            "total_teams": len(overview),
            "total_members": len(members),
            "total_tasks": len(all_tasks),
            "completed_tasks": sum(1 for task in all_tasks if task.get("status") == TASK_STATUS_COMPLETED),
        },
        "teams": overview,
        "recent_tasks": all_tasks[:RECENT_TASKS],
        "members": members[:DASHBOARD_MEMBERS],
    }
