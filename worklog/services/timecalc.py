from __future__ import annotations

import calendar
from datetime import date, datetime, time
from zoneinfo import ZoneInfo

from ..core.config import settings


def local_now(tz: str | None = None) -> datetime:
    """Current wall-clock time in the configured timezone."""
    return datetime.now(ZoneInfo(tz or settings.TZ))


def local_today(tz: str | None = None) -> date:
    return local_now(tz).date()


def parse_work_date(value: date | str | None) -> date:
    """Accept a ``date`` or a ``YYYY-MM-DD`` string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value or not str(value).strip():
        raise ValueError("work_date is required")
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError as exc:
        raise ValueError("work_date must be formatted YYYY-MM-DD") from exc


def parse_work_time(value: time | str | None) -> str:
    """Normalise a clock time to ``HH:MM``."""
    if isinstance(value, time):
        return value.strftime("%H:%M")
    if not value or not str(value).strip():
        raise ValueError("work_time is required")
    text = str(value).strip()
    try:
        parsed = time.fromisoformat(text)
    except ValueError as exc:
        raise ValueError("work_time must be formatted HH:MM") from exc
    return parsed.strftime("%H:%M")


def parse_month(value: str | None, default: date | None = None) -> date:
    """Parse ``YYYY-MM`` into the first day of that month."""
    if not value:
        base = default or local_today()
        return base.replace(day=1)
    try:
        year_text, month_text = value.strip().split("-")[:2]
        return date(int(year_text), int(month_text), 1)
    except (ValueError, TypeError) as exc:
        raise ValueError("month must be formatted YYYY-MM") from exc


def shift_month(month: date, delta: int) -> date:
    index = month.year * 12 + (month.month - 1) + delta
    return date(index // 12, index % 12 + 1, 1)


def days_in_month(month: date) -> int:
    return calendar.monthrange(month.year, month.month)[1]


def month_key(value: date) -> str:
    return value.strftime("%Y-%m")
