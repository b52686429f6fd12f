from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from ..crud import admins, reports, tasks, teams
from ..deps.auth import AuthContext, get_platform, require_admin
from ..schemas.admin import (
    AdminDashboardOut,
    AdminProfileOut,
    AdminProfileUpdate,
    DeveloperWorkEntryOut,
    MonthlyReportOut,
)
from ..schemas.task import TaskCreate, TaskOut, TaskStatusUpdate
from ..schemas.team import TeamCreate, TeamMemberCreate, TeamMemberOut, TeamOut
from ..services import export, reporting
from ..services.timecalc import local_today, month_key, parse_month

router = APIRouter(prefix="/api/v1/admin", tags=["admin"], dependencies=[Depends(require_admin)])


def _month_or_422(value: str | None):
    try:
        return parse_month(value, local_today())
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


def _stringify(row: dict[str, Any], *keys: str) -> dict[str, Any]:
    payload = dict(row)
    for key in keys:
        if payload.get(key) is not None:
            payload[key] = str(payload[key])
    return payload


@router.get("/dashboard", response_model=AdminDashboardOut)
def api_admin_dashboard(client: Any = Depends(get_platform)):
    dashboard = reports.admin_dashboard(client)
    dashboard["recent_tasks"] = [_stringify(task, "due_date", "created_at", "team_id") for task in dashboard["recent_tasks"]]
    dashboard["members"] = [_stringify(member, "joined_at") for member in dashboard["members"]]
    return dashboard


@router.get("/teams", response_model=list[TeamOut])
def api_list_teams(client: Any = Depends(get_platform)):
    return [_stringify(team, "created_at") for team in teams.list_teams(client)]


@router.post("/teams", response_model=TeamOut, status_code=201)
def api_create_team(payload: TeamCreate, client: Any = Depends(get_platform)):
    try:
        created = teams.create_team(client, payload.name, payload.description)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return _stringify(created, "id", "created_at")


@router.get("/teams/{team_id}/members", response_model=list[TeamMemberOut])
def api_list_members(team_id: str, client: Any = Depends(get_platform)):
    return [_stringify(member, "joined_at") for member in teams.list_team_members(client, team_id)]


@router.post("/teams/{team_id}/members", status_code=201)
def api_add_member(team_id: str, payload: TeamMemberCreate, client: Any = Depends(get_platform)):
    try:
        created = teams.add_team_member(client, team_id, payload.email, payload.role, payload.hourly_rate)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return _stringify(created, "id", "joined_at")


@router.delete("/members/{member_id}", status_code=204, response_class=Response)
def api_remove_member(member_id: str, client: Any = Depends(get_platform)):
    if not teams.remove_team_member(client, member_id):
        raise HTTPException(404, "Not found")
    return Response(status_code=204)


@router.get("/tasks", response_model=list[TaskOut])
def api_list_tasks(status: str | None = None, client: Any = Depends(get_platform)):
    try:
        rows = tasks.list_tasks(client, status=status)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return [_stringify(task, "due_date", "created_at", "team_id") for task in rows]


@router.post("/tasks", response_model=TaskOut, status_code=201)
def api_create_task(payload: TaskCreate, client: Any = Depends(get_platform)):
    try:
        created = tasks.create_task(client, payload.model_dump())
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    task = tasks.get_task(client, str(created.get("id"))) or {**created, "id": str(created.get("id"))}
    return _stringify(task, "due_date", "created_at", "team_id")


@router.patch("/tasks/{task_id}/status", response_model=TaskOut)
def api_update_task_status(task_id: str, payload: TaskStatusUpdate, client: Any = Depends(get_platform)):
    try:
        updated = tasks.update_task_status(client, task_id, payload.status)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    if updated is None:
        raise HTTPException(404, "Not found")
    task = tasks.get_task(client, task_id) or {**updated, "id": str(updated.get("id"))}
    return _stringify(task, "due_date", "created_at", "team_id")


@router.get("/reports", response_model=MonthlyReportOut)
def api_monthly_reports(
    month: str | None = None,
    q: str | None = Query(default=None, description="Case-insensitive match on name, email or team"),
    client: Any = Depends(get_platform),
):
    selected = _month_or_422(month)
    rows = reports.monthly_developer_reports(client, selected)
    return {
        "month": month_key(selected),
        "developers": reporting.filter_reports(rows, q),
        "totals": reporting.report_totals(rows),
    }


@router.get("/reports/export")
def api_reports_export(month: str | None = None, client: Any = Depends(get_platform)):
    selected = _month_or_422(month)
    body = export.developer_reports_to_csv(reports.monthly_developer_reports(client, selected))
    return Response(
        body,
        media_type=export.CSV_MEDIA_TYPE,
        headers=export.attachment_headers(export.developer_reports_filename(selected)),
    )


@router.get("/reports/{user_id}/entries", response_model=list[DeveloperWorkEntryOut])
def api_developer_entries(user_id: str, month: str | None = None, client: Any = Depends(get_platform)):
    return reports.developer_work_details(client, user_id, _month_or_422(month))


@router.get("/profile", response_model=AdminProfileOut)
def api_admin_profile(ctx: AuthContext = Depends(require_admin), client: Any = Depends(get_platform)):
    profile = admins.get_admin_profile(client, ctx.user_id)
    if not profile:
        raise HTTPException(404, "Not found")
    return _stringify(profile, "id", "user_id", "created_at")


@router.patch("/profile", response_model=AdminProfileOut)
def api_update_admin_profile(
    payload: AdminProfileUpdate,
    ctx: AuthContext = Depends(require_admin),
    client: Any = Depends(get_platform),
):
    profile = admins.get_admin_profile(client, ctx.user_id)
    if not profile:
        raise HTTPException(404, "Not found")
    try:
        updated = admins.update_company_name(client, profile["id"], payload.company_name)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return _stringify(updated, "id", "user_id", "created_at")
