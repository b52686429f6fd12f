from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response

from ..core.jinja import get_templates
from ..core.task_types import (
    MEMBER_ROLE_CHOICES,
    TASK_PRIORITY_CHOICES,
    TASK_STATUS_CHOICES,
)
from ..crud import admins, reports, tasks, teams
from ..deps.auth import AuthContext, get_platform, require_admin_page
from ..services import export, reporting
from ..services.timecalc import local_today, month_key, parse_month

templates = get_templates()

router = APIRouter(prefix="/admin", dependencies=[Depends(require_admin_page)])


def _page(request: Request, template: str, ctx: AuthContext, status_code: int = 200, **context: Any):
    context.setdefault("error", "")
    context.setdefault("notice", "")
    return templates.TemplateResponse(
        request,
        template,
        {"user": ctx, **context},
        status_code=status_code,
    )


def _month(value: str | None):
    try:
        return parse_month(value, local_today())
    except ValueError:
        return local_today().replace(day=1)


@router.get("", include_in_schema=False)
@router.get("/", include_in_schema=False)
def admin_root():
    return RedirectResponse(url="/admin/dashboard", status_code=302)


@router.get("/dashboard", response_class=HTMLResponse)
def admin_dashboard(
    request: Request,
    ctx: AuthContext = Depends(require_admin_page),
    client: Any = Depends(get_platform),
):
    return _page(request, "admin/dashboard.html", ctx, **reports.admin_dashboard(client))


def _teams_page(request: Request, ctx: AuthContext, client: Any, team: str | None, status_code: int = 200, **extra: Any):
    team_rows = teams.list_teams(client)
    selected = next((row for row in team_rows if row["id"] == team), None)
    members = teams.list_team_members(client, selected["id"]) if selected else []
    return _page(
        request,
        "admin/teams.html",
        ctx,
        status_code=status_code,
        teams=team_rows,
        selected_team=selected,
        members=members,
        role_choices=MEMBER_ROLE_CHOICES,
        **extra,
    )


@router.get("/teams", response_class=HTMLResponse)
def admin_teams(
    request: Request,
    team: str | None = None,
    ctx: AuthContext = Depends(require_admin_page),
    client: Any = Depends(get_platform),
):
    return _teams_page(request, ctx, client, team)


@router.post("/teams", response_class=HTMLResponse)
def admin_create_team(
    request: Request,
    name: str = Form(""),
    description: str = Form(""),
    ctx: AuthContext = Depends(require_admin_page),
    client: Any = Depends(get_platform),
):
    try:
        created = teams.create_team(client, name, description)
    except ValueError as exc:
        return _teams_page(request, ctx, client, None, status_code=422, error=str(exc))
    return RedirectResponse(url=f"/admin/teams?team={created.get('id')}", status_code=303)


@router.post("/teams/{team_id}/members", response_class=HTMLResponse)
def admin_add_member(
    request: Request,
    team_id: str,
    email: str = Form(""),
    role: str = Form("developer"),
    hourly_rate: str = Form("0"),
    ctx: AuthContext = Depends(require_admin_page),
    client: Any = Depends(get_platform),
):
    try:
        teams.add_team_member(client, team_id, email, role, hourly_rate)
    except ValueError as exc:
        return _teams_page(request, ctx, client, team_id, status_code=422, error=str(exc))
    return RedirectResponse(url=f"/admin/teams?team={team_id}", status_code=303)


@router.post("/members/{member_id}/remove")
def admin_remove_member(
    member_id: str,
    team_id: str = Form(""),
    client: Any = Depends(get_platform),
):
    if not teams.remove_team_member(client, member_id):
        raise HTTPException(404, "Not found")
    target = f"/admin/teams?team={team_id}" if team_id else "/admin/teams"
    return RedirectResponse(url=target, status_code=303)


def _tasks_page(
    request: Request,
    ctx: AuthContext,
    client: Any,
    status: str | None,
    team: str | None,
    status_code: int = 200,
    **extra: Any,
):
    try:
        task_rows = tasks.list_tasks(client, status=status)
    except ValueError:
        status = None
        task_rows = tasks.list_tasks(client)
    return _page(
        request,
        "admin/tasks.html",
        ctx,
        status_code=status_code,
        tasks=task_rows,
        status_filter=status or "all",
        team_choices=teams.list_team_choices(client),
        selected_team=team or "",
        assignees=teams.list_team_members(client, team) if team else [],
        status_choices=TASK_STATUS_CHOICES,
        priority_choices=TASK_PRIORITY_CHOICES,
        **extra,
    )


@router.get("/tasks", response_class=HTMLResponse)
def admin_tasks(
    request: Request,
    status: str | None = None,
    team: str | None = None,
    ctx: AuthContext = Depends(require_admin_page),
    client: Any = Depends(get_platform),
):
    return _tasks_page(request, ctx, client, status, team)


@router.post("/tasks", response_class=HTMLResponse)
def admin_create_task(
    request: Request,
    title: str = Form(""),
    description: str = Form(""),
    team_id: str = Form(""),
    assigned_to: str = Form(""),
    priority: str = Form("medium"),
    estimated_hours: str = Form(""),
    due_date: str = Form(""),
    ctx: AuthContext = Depends(require_admin_page),
    client: Any = Depends(get_platform),
):
    data = {
        "title": title,
        "description": description,
        "team_id": team_id,
        "assigned_to": assigned_to,
        "priority": priority,
        "estimated_hours": estimated_hours,
        "due_date": due_date,
    }
    try:
        tasks.create_task(client, data)
    except ValueError as exc:
        return _tasks_page(request, ctx, client, None, team_id, status_code=422, error=str(exc), form=data)
    return RedirectResponse(url="/admin/tasks", status_code=303)


@router.post("/tasks/{task_id}/status")
def admin_task_status(
    task_id: str,
    status: str = Form(...),
    status_filter: str = Form("all"),
    client: Any = Depends(get_platform),
):
    try:
        updated = tasks.update_task_status(client, task_id, status)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    if updated is None:
        raise HTTPException(404, "Not found")
    target = "/admin/tasks" if status_filter in ("", "all") else f"/admin/tasks?status={status_filter}"
    return RedirectResponse(url=target, status_code=303)


@router.get("/reports", response_class=HTMLResponse)
def admin_reports(
    request: Request,
    month: str | None = None,
    q: str | None = None,
    developer: str | None = None,
    ctx: AuthContext = Depends(require_admin_page),
    client: Any = Depends(get_platform),
):
    selected_month = _month(month)
    developer_rows = reports.monthly_developer_reports(client, selected_month)
    visible = reporting.filter_reports(developer_rows, q)
    selected = next((row for row in developer_rows if row["user_id"] and row["user_id"] == developer), None)
    details = reports.developer_work_details(client, selected["user_id"], selected_month) if selected else []
    return _page(
        request,
        "admin/reports.html",
        ctx,
        month=selected_month,
        month_value=month_key(selected_month),
        search=q or "",
        developers=visible,
        totals=reporting.report_totals(developer_rows),
        selected_developer=selected,
        work_details=details,
    )


@router.get("/reports/export")
def admin_reports_export(
    month: str | None = None,
    client: Any = Depends(get_platform),
):
    selected_month = _month(month)
    body = export.developer_reports_to_csv(reports.monthly_developer_reports(client, selected_month))
    return Response(
        body,
        media_type=export.CSV_MEDIA_TYPE,
        headers=export.attachment_headers(export.developer_reports_filename(selected_month)),
    )


@router.get("/settings", response_class=HTMLResponse)
def admin_settings(
    request: Request,
    saved: int = 0,
    ctx: AuthContext = Depends(require_admin_page),
    client: Any = Depends(get_platform),
):
    profile = admins.get_admin_profile(client, ctx.user_id)
    return _page(
        request,
        "admin/settings.html",
        ctx,
        profile=profile,
        notice="Settings saved" if saved else "",
    )


@router.post("/settings", response_class=HTMLResponse)
def admin_settings_submit(
    request: Request,
    company_name: str = Form(""),
    ctx: AuthContext = Depends(require_admin_page),
    client: Any = Depends(get_platform),
):
    profile = admins.get_admin_profile(client, ctx.user_id)
    if profile is None:
        raise HTTPException(404, "Not found")
    try:
        admins.update_company_name(client, profile["id"], company_name)
    except ValueError as exc:
        return _page(request, "admin/settings.html", ctx, status_code=422, profile=profile, error=str(exc))
    return RedirectResponse(url="/admin/settings?saved=1", status_code=303)
