"""Helper utilities for teaching Jinja2 how to format our data.

Templates are the presentation layer. This module explains *what* formatting
helpers exist, *when* they are used (whenever an HTML page renders), *why* we
need them (to keep hours, money and dates consistent across pages), and *how*
to hook them into the Jinja environment.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any
from zoneinfo import ZoneInfo

from fastapi.templating import Jinja2Templates

from .config import settings
from .task_types import TASK_STATUS_ACTIONS, status_label

_LOCAL_TZ = ZoneInfo(settings.TZ) if settings.TZ else None


def _to_date(value: Any) -> date | None:
    """Accept ``date``/``datetime`` objects or ISO strings from platform rows."""

    if isinstance(value, datetime):
        if value.tzinfo is not None and _LOCAL_TZ:
            value = value.astimezone(_LOCAL_TZ)
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value:
        text = value.strip().replace("Z", "+00:00")
        try:
            if len(text) <= 10:
                return date.fromisoformat(text)
            return _to_date(datetime.fromisoformat(text))
        except ValueError:
            return None
    return None


def _fmt_date(value: Any, fmt: str = "%b %d, %Y") -> str:
    """Render a work date the way the dashboard lists show it (``May 03, 2024``)."""

    parsed = _to_date(value)
    return parsed.strftime(fmt) if parsed else ""


def _fmt_long_date(value: Any) -> str:
    """Full weekday heading used by the day detail panel."""

    parsed = _to_date(value)
    if not parsed:
        return ""
    return f"{parsed:%A}, {parsed:%B} {parsed.day}, {parsed.year}"


def _fmt_month(value: Any) -> str:
    """``2024-05-01`` -> ``May 2024``."""

    parsed = _to_date(value)
    return parsed.strftime("%B %Y") if parsed else ""


def _to_decimal(value: Any) -> Decimal | None:
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


def _fmt_hours(value: Any) -> str:
    """One decimal place with an ``h`` suffix, matching the stat cards."""

    number = _to_decimal(value)
    if number is None:
        return "0.0h"
    return f"{number:.1f}h"


def _fmt_currency(value: Any, places: int = 2) -> str:
    """Add a dollar sign and commas so earnings look professional."""

    number = _to_decimal(value)
    if number is None:
        return ""
    return f"${number:,.{places}f}"


def get_templates() -> Jinja2Templates:
    """Create a ``Jinja2Templates`` instance with our standard filters registered."""

    templates = Jinja2Templates(directory=str(settings.templates_dir))
    env = templates.env
    env.filters["fmt_date"] = _fmt_date
    env.filters["fmt_long_date"] = _fmt_long_date
    env.filters["fmt_month"] = _fmt_month
    env.filters["fmt_hours"] = _fmt_hours
    env.filters["fmt_currency"] = _fmt_currency
    env.filters["status_label"] = status_label
    env.globals["task_status_actions"] = TASK_STATUS_ACTIONS
    env.globals["app_name"] = settings.APP_NAME
    return templates
