from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Iterable, Mapping

from .reporting import total_hours

GRID_DAYS = 42
FULL_DAY_HOURS = Decimal("8")


def month_grid(month: date) -> list[date]:
    """Six Sunday-first weeks covering ``month``, padded with neighbouring days."""

    first = month.replace(day=1)
    # date.weekday(): Monday == 0, so Sunday-first offset is (weekday + 1) % 7
    start = first - timedelta(days=(first.weekday() + 1) % 7)
    return [start + timedelta(days=offset) for offset in range(GRID_DAYS)]


def calendar_cells(
    entries: Iterable[Mapping[str, Any]],
    month: date,
    today: date,
) -> list[dict[str, Any]]:
    by_date: dict[str, list[Mapping[str, Any]]] = {}
    for entry in entries:
        by_date.setdefault(str(entry.get("work_date") or "")[:10], []).append(entry)

    cells = []
    for day in month_grid(month):
        day_entries = by_date.get(day.isoformat(), [])
        hours = total_hours(day_entries)
        cells.append(
            {
                "date": day,
                "in_month": day.month == month.month and day.year == month.year,
                "is_today": day == today,
                "entries": len(day_entries),
                "hours": hours,
                "percent": min(hours / FULL_DAY_HOURS * 100, Decimal("100")),
            }
        )
    return cells


def calendar_weeks(cells: list[dict[str, Any]]) -> list[list[dict[str, Any]]]:
    return [cells[index:index + 7] for index in range(0, len(cells), 7)]
