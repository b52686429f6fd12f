"""Remote storage for the single per-user preference: the hourly rate."""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any

from ..core.config import settings
from ..platform.client import fetch_one, fetch_rows

logger = logging.getLogger(__name__)

PREFERENCES_TABLE = "user_preferences"


def parse_hourly_rate(value: Any) -> Decimal:
    """Coerce form/JSON input into a non-negative ``Decimal`` rate."""

    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValueError("hourly_rate is required")
    try:
        rate = Decimal(str(value).strip().replace("$", "").replace(",", ""))
    except InvalidOperation as exc:
        raise ValueError("hourly_rate must be a number") from exc
    if not rate.is_finite() or rate < 0:
        raise ValueError("hourly_rate must be zero or greater")
    return rate


def get_hourly_rate(client: Any, user_id: str) -> Decimal:
    query = client.table(PREFERENCES_TABLE).select("hourly_rate").eq("user_id", user_id)
    row = fetch_one(query, action="preferences.get")
    if not row or row.get("hourly_rate") is None:
        return settings.DEFAULT_HOURLY_RATE
    try:
        return parse_hourly_rate(row["hourly_rate"])
    except ValueError:
        logger.warning(
            "preferences.bad_rate",
            extra={"extra_data": {"user_id": user_id, "value": row.get("hourly_rate")}},
        )
        return settings.DEFAULT_HOURLY_RATE


def save_hourly_rate(client: Any, user_id: str, hourly_rate: Any) -> Decimal:
    rate = parse_hourly_rate(hourly_rate)
    query = client.table(PREFERENCES_TABLE).upsert(
        {"user_id": user_id, "hourly_rate": float(rate)},
        on_conflict="user_id",
    )
    fetch_rows(query, action="preferences.save")
    logger.info("preferences.saved", extra={"extra_data": {"user_id": user_id, "hourly_rate": str(rate)}})
    return rate


__all__ = ["PREFERENCES_TABLE", "get_hourly_rate", "parse_hourly_rate", "save_hourly_rate"]
