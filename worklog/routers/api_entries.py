from __future__ import annotations

from decimal import Decimal
from typing import Any

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, Response, UploadFile

from ..crud.work_entries import get_entry
from ..deps.auth import AuthContext, current_user, get_platform
from ..deps.preferences import hourly_rate, update_hourly_rate
from ..schemas.work_entry import (
    MonthlyStatsOut,
    PreferencesOut,
    PreferencesUpdate,
    ScreenshotOut,
    WorkEntryCreate,
    WorkEntryOut,
    WorkEntryUpdate,
    WorkSummary,
)
from ..services import export, reporting
from ..services.timecalc import local_today, parse_month, parse_work_date
from ..services.worklog import WorkLog

router = APIRouter(prefix="/api/v1", tags=["entries"], dependencies=[Depends(current_user)])


def _serialize(row: dict[str, Any]) -> WorkEntryOut:
    payload = dict(row)
    payload["id"] = str(payload.get("id"))
    payload["user_id"] = str(payload.get("user_id"))
    payload["work_date"] = str(payload.get("work_date") or "")[:10]
    payload["hours_spent"] = float(reporting.total_hours([row]))
    for stamp in ("created_at", "updated_at"):
        if payload.get(stamp) is not None:
            payload[stamp] = str(payload[stamp])
    return WorkEntryOut.model_validate(payload)


def _month_or_422(value: str | None):
    try:
        return parse_month(value, local_today())
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.get("/entries", response_model=list[WorkEntryOut])
def api_list_entries(
    date: str | None = Query(default=None, description="Only entries of this YYYY-MM-DD day"),
    month: str | None = Query(default=None, description="Only entries of this YYYY-MM month"),
    ctx: AuthContext = Depends(current_user),
    client: Any = Depends(get_platform),
):
    log = WorkLog.load(client, ctx.user_id)
    rows = log.entries
    if date:
        try:
            rows = log.entries_for_date(parse_work_date(date))
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
    elif month:
        rows = reporting.entries_for_month(rows, _month_or_422(month))
    return [_serialize(row) for row in rows]


@router.post("/entries", response_model=WorkEntryOut, status_code=201)
def api_create_entry(
    payload: WorkEntryCreate,
    ctx: AuthContext = Depends(current_user),
    client: Any = Depends(get_platform),
):
    try:
        row = WorkLog(client, ctx.user_id).add(payload.model_dump())
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return _serialize(row)


@router.delete("/entries")
def api_delete_all_entries(
    confirm: str = Query(default="", description='Must be "DELETE"'),
    ctx: AuthContext = Depends(current_user),
    client: Any = Depends(get_platform),
):
    if confirm != "DELETE":
        raise HTTPException(status_code=422, detail='Pass confirm=DELETE to remove every entry')
    return {"deleted": WorkLog(client, ctx.user_id).clear()}


@router.post("/entries/screenshot", response_model=ScreenshotOut, status_code=201)
async def api_upload_screenshot(
    file: UploadFile = File(...),
    ctx: AuthContext = Depends(current_user),
    client: Any = Depends(get_platform),
):
    filename = (file.filename or "").strip()
    if not filename:
        await file.close()
        raise HTTPException(status_code=400, detail="A file upload is required")
    try:
        content = await file.read()
        url = WorkLog(client, ctx.user_id).upload_screenshot(filename, content, file.content_type or "")
    except ValueError as exc:
        raise HTTPException(status_code=415, detail=str(exc)) from exc
    finally:
        await file.close()
    return ScreenshotOut(public_url=url)


@router.get("/entries/{entry_id}", response_model=WorkEntryOut)
def api_get_entry(entry_id: str, ctx: AuthContext = Depends(current_user), client: Any = Depends(get_platform)):
    row = get_entry(client, ctx.user_id, entry_id)
    if not row:
        raise HTTPException(404, "Not found")
    return _serialize(row)


@router.patch("/entries/{entry_id}", response_model=WorkEntryOut)
def api_update_entry(
    entry_id: str,
    payload: WorkEntryUpdate,
    ctx: AuthContext = Depends(current_user),
    client: Any = Depends(get_platform),
):
    try:
        row = WorkLog(client, ctx.user_id).update(entry_id, payload.model_dump(exclude_unset=True))
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    if row is None:
        raise HTTPException(404, "Not found")
    return _serialize(row)


@router.delete("/entries/{entry_id}", status_code=204, response_class=Response)
def api_delete_entry(entry_id: str, ctx: AuthContext = Depends(current_user), client: Any = Depends(get_platform)):
    if not WorkLog(client, ctx.user_id).remove(entry_id):
        raise HTTPException(404, "Not found")
    return Response(status_code=204)


@router.get("/summary", response_model=WorkSummary)
def api_summary(ctx: AuthContext = Depends(current_user), client: Any = Depends(get_platform)):
    log = WorkLog.load(client, ctx.user_id)
    return reporting.summarize(log.entries).as_dict()


@router.get("/stats/monthly", response_model=MonthlyStatsOut)
def api_monthly_stats(
    month: str | None = None,
    ctx: AuthContext = Depends(current_user),
    client: Any = Depends(get_platform),
    rate: Decimal = Depends(hourly_rate),
):
    log = WorkLog.load(client, ctx.user_id)
    return reporting.monthly_stats(log.entries, _month_or_422(month), rate).as_dict()


@router.get("/stats/history", response_model=list[MonthlyStatsOut])
def api_monthly_history(
    ctx: AuthContext = Depends(current_user),
    client: Any = Depends(get_platform),
    rate: Decimal = Depends(hourly_rate),
):
    log = WorkLog.load(client, ctx.user_id)
    return [stats.as_dict() for stats in reporting.monthly_history(log.entries, rate)]


@router.get("/export")
def api_export(
    format: str = Query(default="json", pattern="^(csv|json)$"),
    ctx: AuthContext = Depends(current_user),
    client: Any = Depends(get_platform),
):
    log = WorkLog.load(client, ctx.user_id)
    today = local_today()
    if format == "csv":
        return Response(
            export.entries_to_csv(log.entries),
            media_type=export.CSV_MEDIA_TYPE,
            headers=export.attachment_headers(export.export_filename(today, "csv")),
        )
    return Response(
        export.entries_to_json(log.entries),
        media_type=export.JSON_MEDIA_TYPE,
        headers=export.attachment_headers(export.export_filename(today, "json")),
    )


@router.get("/preferences", response_model=PreferencesOut, tags=["preferences"])
def api_get_preferences(rate: Decimal = Depends(hourly_rate)):
    return PreferencesOut(hourly_rate=float(rate))


@router.put("/preferences", response_model=PreferencesOut, tags=["preferences"])
def api_update_preferences(
    request: Request,
    payload: PreferencesUpdate,
    ctx: AuthContext = Depends(current_user),
    client: Any = Depends(get_platform),
):
    try:
        rate = update_hourly_rate(request, client, ctx, payload.hourly_rate)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return PreferencesOut(hourly_rate=float(rate))
