from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import HTMLResponse, RedirectResponse, Response

from ..core.jinja import get_templates
from ..crud.work_entries import validate_entry
from ..deps.auth import AuthContext, get_platform, require_member_page
from ..deps.preferences import hourly_rate, update_hourly_rate
from ..services import export, reporting
from ..services.calendar import calendar_cells, calendar_weeks
from ..services.statement_pdf import render_monthly_statement
from ..services.timecalc import local_now, local_today, parse_month, parse_work_date, shift_month
from ..services.worklog import WorkLog
from .auth_ui import safe_next

templates = get_templates()

router = APIRouter(dependencies=[Depends(require_member_page)])

DELETE_CONFIRMATION = "DELETE"


def _page(request: Request, template: str, ctx: AuthContext, status_code: int = 200, **context: Any):
    context.setdefault("error", "")
    context.setdefault("notice", "")
    return templates.TemplateResponse(
        request,
        template,
        {"user": ctx, **context},
        status_code=status_code,
    )


def _selected_date(value: str | None) -> date:
    if not value:
        return local_today()
    try:
        return parse_work_date(value)
    except ValueError:
        return local_today()


def _selected_month(value: str | None) -> date:
    try:
        return parse_month(value, local_today())
    except ValueError:
        return local_today().replace(day=1)


def _entry_form(**values: Any) -> dict[str, Any]:
    form = {
        "work_date": local_today().isoformat(),
        "work_time": local_now().strftime("%H:%M"),
        "description": "",
        "hours_spent": "",
        "commit_link": "",
    }
    form.update({key: value for key, value in values.items() if value is not None})
    return form


def _track_context(log: WorkLog, selected: date) -> dict[str, Any]:
    day_entries = log.entries_for_date(selected)
    return {
        "selected_date": selected,
        "entries": day_entries,
        "day_hours": reporting.total_hours(day_entries),
    }


@router.get("/", response_class=HTMLResponse)
def track_page(
    request: Request,
    date: str | None = None,
    ctx: AuthContext = Depends(require_member_page),
    client: Any = Depends(get_platform),
):
    selected = _selected_date(date)
    log = WorkLog.load(client, ctx.user_id)
    return _page(
        request,
        "track.html",
        ctx,
        form=_entry_form(work_date=selected.isoformat()),
        **_track_context(log, selected),
    )


@router.post("/entries", response_class=HTMLResponse)
async def create_entry_submit(
    request: Request,
    work_date: str = Form(""),
    work_time: str = Form(""),
    description: str = Form(""),
    hours_spent: str = Form(""),
    commit_link: str = Form(""),
    return_to: str = Form("/"),
    screenshot: UploadFile | None = File(None),
    ctx: AuthContext = Depends(require_member_page),
    client: Any = Depends(get_platform),
):
    log = WorkLog(client, ctx.user_id)
    data = {
        "work_date": work_date,
        "work_time": work_time,
        "description": description,
        "hours_spent": hours_spent,
        "commit_link": commit_link,
    }
    try:
        validate_entry(data)
        if screenshot is not None and screenshot.filename:
            content = await screenshot.read()
            data["screenshot_url"] = log.upload_screenshot(screenshot.filename, content, screenshot.content_type or "")
        row = log.add(data)
    except ValueError as exc:
        log.refetch()
        selected = _selected_date(work_date)
        return _page(
            request,
            "track.html",
            ctx,
            status_code=422,
            error=str(exc),
            form=_entry_form(**data),
            **_track_context(log, selected),
        )
    finally:
        if screenshot is not None:
            await screenshot.close()
    target = safe_next(return_to)
    if target == "/":
        target = f"/?date={row.get('work_date') or work_date}"
    return RedirectResponse(url=target, status_code=303)


@router.post("/entries/{entry_id}/delete")
def delete_entry_submit(
    entry_id: str,
    return_to: str = Form("/"),
    ctx: AuthContext = Depends(require_member_page),
    client: Any = Depends(get_platform),
):
    if not WorkLog(client, ctx.user_id).remove(entry_id):
        raise HTTPException(404, "Not found")
    return RedirectResponse(url=safe_next(return_to), status_code=303)


@router.get("/dashboard", response_class=HTMLResponse)
def dashboard_page(
    request: Request,
    ctx: AuthContext = Depends(require_member_page),
    client: Any = Depends(get_platform),
    rate: Decimal = Depends(hourly_rate),
):
    log = WorkLog.load(client, ctx.user_id)
    month = local_today().replace(day=1)
    month_entries = reporting.entries_for_month(log.entries, month)
    return _page(
        request,
        "dashboard.html",
        ctx,
        month=month,
        stats=reporting.monthly_stats(log.entries, month, rate),
        recent_days=reporting.recent_work_days(month_entries),
    )


@router.get("/monthly", response_class=HTMLResponse)
def monthly_page(
    request: Request,
    month: str | None = None,
    day: str | None = None,
    ctx: AuthContext = Depends(require_member_page),
    client: Any = Depends(get_platform),
):
    selected_month = _selected_month(month)
    log = WorkLog.load(client, ctx.user_id)
    cells = calendar_cells(log.entries, selected_month, local_today())
    selected_day = _selected_date(day) if day else None
    return _page(
        request,
        "monthly.html",
        ctx,
        month=selected_month,
        prev_month=shift_month(selected_month, -1),
        next_month=shift_month(selected_month, 1),
        weeks=calendar_weeks(cells),
        selected_day=selected_day,
        day_entries=log.entries_for_date(selected_day) if selected_day else [],
        form=_entry_form(work_date=(selected_day or local_today()).isoformat()),
    )


@router.get("/monthly-earnings", response_class=HTMLResponse)
def monthly_earnings_page(
    request: Request,
    month: str | None = None,
    ctx: AuthContext = Depends(require_member_page),
    client: Any = Depends(get_platform),
    rate: Decimal = Depends(hourly_rate),
):
    selected_month = _selected_month(month)
    log = WorkLog.load(client, ctx.user_id)
    return _page(
        request,
        "earnings.html",
        ctx,
        month=selected_month,
        prev_month=shift_month(selected_month, -1),
        next_month=shift_month(selected_month, 1),
        stats=reporting.monthly_stats(log.entries, selected_month, rate),
        history=reporting.monthly_history(log.entries, rate),
        hourly_rate=rate,
    )


@router.get("/export", response_class=HTMLResponse)
def export_page(
    request: Request,
    ctx: AuthContext = Depends(require_member_page),
    client: Any = Depends(get_platform),
):
    log = WorkLog.load(client, ctx.user_id)
    return _page(
        request,
        "export.html",
        ctx,
        summary=reporting.summarize(log.entries),
        months=reporting.months_with_data(log.entries),
        current_month=local_today().replace(day=1),
    )


@router.get("/export/download")
def export_download(
    format: str = "csv",
    month: str | None = None,
    ctx: AuthContext = Depends(require_member_page),
    client: Any = Depends(get_platform),
    rate: Decimal = Depends(hourly_rate),
):
    log = WorkLog.load(client, ctx.user_id)
    kind = (format or "").lower()
    today = local_today()
    if kind == "csv":
        body = export.entries_to_csv(log.entries)
        return Response(
            body,
            media_type=export.CSV_MEDIA_TYPE,
            headers=export.attachment_headers(export.export_filename(today, "csv")),
        )
    if kind == "json":
        body = export.entries_to_json(log.entries)
        return Response(
            body,
            media_type=export.JSON_MEDIA_TYPE,
            headers=export.attachment_headers(export.export_filename(today, "json")),
        )
    if kind == "pdf":
        selected_month = _selected_month(month)
        pdf_bytes = render_monthly_statement(
            email=ctx.email,
            month=selected_month,
            entries=log.entries,
            hourly_rate=rate,
        )
        return Response(
            pdf_bytes,
            media_type="application/pdf",
            headers=export.attachment_headers(export.statement_filename(selected_month)),
        )
    raise HTTPException(status_code=400, detail="format must be csv, json or pdf")


@router.get("/settings", response_class=HTMLResponse)
def settings_page(
    request: Request,
    saved: int = 0,
    ctx: AuthContext = Depends(require_member_page),
    client: Any = Depends(get_platform),
    rate: Decimal = Depends(hourly_rate),
):
    log = WorkLog.load(client, ctx.user_id)
    return _page(
        request,
        "settings.html",
        ctx,
        hourly_rate=rate,
        summary=reporting.summarize(log.entries),
        notice="Settings saved" if saved else "",
    )


@router.post("/settings", response_class=HTMLResponse)
def settings_submit(
    request: Request,
    hourly_rate_value: str = Form("", alias="hourly_rate"),
    ctx: AuthContext = Depends(require_member_page),
    client: Any = Depends(get_platform),
):
    try:
        update_hourly_rate(request, client, ctx, hourly_rate_value)
    except ValueError as exc:
        log = WorkLog.load(client, ctx.user_id)
        return _page(
            request,
            "settings.html",
            ctx,
            status_code=422,
            hourly_rate=hourly_rate_value,
            summary=reporting.summarize(log.entries),
            error=str(exc),
        )
    return RedirectResponse(url="/settings?saved=1", status_code=303)


@router.post("/settings/delete-all", response_class=HTMLResponse)
def delete_all_submit(
    request: Request,
    confirmation: str = Form(""),
    ctx: AuthContext = Depends(require_member_page),
    client: Any = Depends(get_platform),
    rate: Decimal = Depends(hourly_rate),
):
    log = WorkLog.load(client, ctx.user_id)
    if confirmation.strip() != DELETE_CONFIRMATION:
        return _page(
            request,
            "settings.html",
            ctx,
            status_code=422,
            hourly_rate=rate,
            summary=reporting.summarize(log.entries),
            error=f'Type "{DELETE_CONFIRMATION}" to confirm permanent deletion of all data',
        )
    removed = log.clear()
    return _page(
        request,
        "settings.html",
        ctx,
        hourly_rate=rate,
        summary=reporting.summarize(log.entries),
        notice=f"Deleted {removed} work entries",
    )
