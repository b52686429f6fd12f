from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable, Mapping, Sequence

from .timecalc import days_in_month, month_key, parse_work_date

TWOPLACES = Decimal("0.01")
HUNDRED = Decimal("100")
NO_ACTIVITY = "No activity"


def _to_decimal(value: Any) -> Decimal:
    """Best-effort conversion of incoming values to Decimal for hour and money math."""

    if isinstance(value, Decimal):
        return value
    if value is None:
        return Decimal("0")
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    if isinstance(value, str):
        cleaned = value.strip()
        if not cleaned:
            return Decimal("0")
        cleaned = cleaned.replace("$", "").replace(",", "")
        try:
            return Decimal(cleaned)
        except InvalidOperation:
            return Decimal("0")
    return Decimal("0")


def _quantize(value: Decimal) -> Decimal:
    return value.quantize(TWOPLACES, rounding=ROUND_HALF_UP) if value else Decimal("0.00")


def _work_date(entry: Mapping[str, Any]) -> str:
    return str(entry.get("work_date") or "")[:10]


@dataclass
class WorkSummary:
    total_hours: Decimal = Decimal("0.00")
    total_tasks: int = 0
    work_days: int = 0
    average_hours_per_day: Decimal = Decimal("0.00")

    def as_dict(self) -> dict[str, Any]:
        return {
            "total_hours": float(self.total_hours),
            "total_tasks": self.total_tasks,
            "work_days": self.work_days,
            "average_hours_per_day": float(self.average_hours_per_day),
        }


@dataclass
class MonthlyStats(WorkSummary):
    month: date = field(default_factory=lambda: date.today().replace(day=1))
    hourly_rate: Decimal = Decimal("0")
    total_earnings: Decimal = Decimal("0.00")

    def as_dict(self) -> dict[str, Any]:
        payload = super().as_dict()
        payload.update(
            {
                "month": month_key(self.month),
                "hourly_rate": float(self.hourly_rate),
                "total_earnings": float(self.total_earnings),
            }
        )
        return payload


def total_hours(entries: Iterable[Mapping[str, Any]]) -> Decimal:
    return sum((_to_decimal(entry.get("hours_spent")) for entry in entries), Decimal("0"))


def summarize(entries: Sequence[Mapping[str, Any]]) -> WorkSummary:
    """Totals shown on the stat cards: hours, task count, distinct days, average per day."""

    hours = total_hours(entries)
    days = len({_work_date(entry) for entry in entries})
    average = hours / days if days else Decimal("0")
    return WorkSummary(
        total_hours=_quantize(hours),
        total_tasks=len(entries),
        work_days=days,
        average_hours_per_day=_quantize(average),
    )


def month_bounds(day: date) -> tuple[date, date]:
    first = day.replace(day=1)
    return first, first.replace(day=days_in_month(first))


def entries_for_month(entries: Iterable[Mapping[str, Any]], month: date) -> list[Mapping[str, Any]]:
    start, end = month_bounds(month)
    low, high = start.isoformat(), end.isoformat()
    return [entry for entry in entries if low <= _work_date(entry) <= high]


def monthly_stats(entries: Iterable[Mapping[str, Any]], month: date, hourly_rate: Any) -> MonthlyStats:
    month_entries = entries_for_month(entries, month)
    summary = summarize(month_entries)
    rate = _to_decimal(hourly_rate)
    earnings = total_hours(month_entries) * rate
    return MonthlyStats(
        total_hours=summary.total_hours,
        total_tasks=summary.total_tasks,
        work_days=summary.work_days,
        average_hours_per_day=summary.average_hours_per_day,
        month=month.replace(day=1),
        hourly_rate=rate,
        total_earnings=_quantize(earnings),
    )


def months_with_data(entries: Iterable[Mapping[str, Any]]) -> list[date]:
    """First-of-month dates that have at least one entry, newest first."""

    months: set[date] = set()
    for entry in entries:
        try:
            months.add(parse_work_date(_work_date(entry)).replace(day=1))
        except ValueError:
            continue
    return sorted(months, reverse=True)


def monthly_history(entries: Sequence[Mapping[str, Any]], hourly_rate: Any) -> list[MonthlyStats]:
    return [monthly_stats(entries, month, hourly_rate) for month in months_with_data(entries)]


def recent_work_days(entries: Sequence[Mapping[str, Any]], limit: int = 10) -> list[dict[str, Any]]:
    """Per-day rows for the dashboard's recent activity bars.

    The bar is scaled against twice the average day (never below one hour) and
    capped at 100%.
    """

    average = summarize(entries).average_hours_per_day
    scale = max(average * 2, Decimal("1"))
    dates = sorted({_work_date(entry) for entry in entries}, reverse=True)[:limit]
    rows = []
    for day in dates:
        day_entries = [entry for entry in entries if _work_date(entry) == day]
        hours = total_hours(day_entries)
        percent = min(hours / scale * HUNDRED, HUNDRED)
        rows.append(
            {
                "date": day,
                "hours": _quantize(hours),
                "tasks": len(day_entries),
                "percent": percent.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP),
            }
        )
    return rows


def developer_report(
    member: Mapping[str, Any],
    entries: Sequence[Mapping[str, Any]],
    tasks_completed: int,
) -> dict[str, Any]:
    """One row of the admin monthly report for a flattened team member."""

    rate = _to_decimal(member.get("hourly_rate"))
    hours = total_hours(entries)
    dates = [_work_date(entry) for entry in entries if _work_date(entry)]
    return {
        "user_id": member.get("user_id") or "",
        "full_name": member.get("full_name") or "Unknown",
        "email": member.get("email") or "Unknown",
        "team_name": member.get("team_name") or "Unknown",
        "role": member.get("role") or "",
        "hourly_rate": rate,
        "total_hours": _quantize(hours),
        "total_earnings": _quantize(hours * rate),
        "tasks_completed": int(tasks_completed or 0),
        "work_entries": len(entries),
        "last_activity": max(dates) if dates else NO_ACTIVITY,
    }


def report_totals(reports: Iterable[Mapping[str, Any]]) -> dict[str, Any]:
    hours = Decimal("0")
    earnings = Decimal("0")
    tasks = 0
    for report in reports:
        hours += _to_decimal(report.get("total_hours"))
        earnings += _to_decimal(report.get("total_earnings"))
        tasks += int(report.get("tasks_completed") or 0)
    return {"total_hours": _quantize(hours), "total_earnings": _quantize(earnings), "total_tasks": tasks}


def filter_reports(reports: Iterable[Mapping[str, Any]], term: str | None) -> list[Mapping[str, Any]]:
    needle = (term or "").strip().casefold()
    if not needle:
        return list(reports)
    return [
        report
        for report in reports
        if any(needle in str(report.get(key) or "").casefold() for key in ("full_name", "email", "team_name"))
    ]


__all__ = [
    "MonthlyStats",
    "NO_ACTIVITY",
    "WorkSummary",
    "developer_report",
    "entries_for_month",
    "filter_reports",
    "month_bounds",
    "monthly_history",
    "monthly_stats",
    "months_with_data",
    "recent_work_days",
    "report_totals",
    "summarize",
    "total_hours",
]
