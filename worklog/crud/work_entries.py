from __future__ import annotations

import logging
import time
from decimal import Decimal, InvalidOperation
from pathlib import PurePosixPath
from typing import Any, Mapping

from ..core.config import settings
from ..platform.client import call, fetch_one, fetch_rows
from ..services.timecalc import parse_work_date, parse_work_time

logger = logging.getLogger(__name__)

ENTRIES_TABLE = "work_entries"
MIN_HOURS = Decimal("0.25")
SCREENSHOT_PREFIX = "screenshots"

ALLOWED_SCREENSHOT_TYPES = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/gif": "gif",
    "image/webp": "webp",
}

EDITABLE_FIELDS = ("work_date", "work_time", "description", "hours_spent", "commit_link", "screenshot_url")


def _to_decimal(value: object) -> Decimal | None:
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    if isinstance(value, str):
        cleaned = value.strip()
        if not cleaned:
            return None
        try:
            return Decimal(cleaned)
        except InvalidOperation:
            return None
    return None


def _clean_hours(value: object) -> Decimal:
    hours = _to_decimal(value)
    if hours is None or not hours.is_finite():
        raise ValueError("hours_spent must be a number")
    if hours < MIN_HOURS:
        raise ValueError(f"hours_spent must be at least {MIN_HOURS}")
    return hours


def _clean_optional_url(value: object, field: str) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if not text.lower().startswith(("http://", "https://")):
        raise ValueError(f"{field} must start with http:// or https://")
    return text


def _normalize(data: Mapping[str, Any], *, partial: bool) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    if not partial or "work_date" in data:
        payload["work_date"] = parse_work_date(data.get("work_date")).isoformat()
    if not partial or "work_time" in data:
        payload["work_time"] = parse_work_time(data.get("work_time"))
    if not partial or "description" in data:
        description = (data.get("description") or "").strip()
        if not description:
            raise ValueError("description is required")
        payload["description"] = description
    if not partial or "hours_spent" in data:
        payload["hours_spent"] = float(_clean_hours(data.get("hours_spent")))
    if not partial or "commit_link" in data:
        payload["commit_link"] = _clean_optional_url(data.get("commit_link"), "commit_link")
    if not partial or "screenshot_url" in data:
        payload["screenshot_url"] = _clean_optional_url(data.get("screenshot_url"), "screenshot_url")
    return payload


def validate_entry(data: Mapping[str, Any]) -> dict[str, Any]:
    """Check a new entry without saving it."""

    return _normalize(data, partial=False)


def list_entries(client: Any, user_id: str) -> list[dict[str, Any]]:
    query = (
        client.table(ENTRIES_TABLE)
        .select("*")
        .eq("user_id", user_id)
        .order("work_date", desc=True)
    )
    return fetch_rows(query, action="entries.list")


def get_entry(client: Any, user_id: str, entry_id: str) -> dict[str, Any] | None:
    query = client.table(ENTRIES_TABLE).select("*").eq("id", entry_id).eq("user_id", user_id)
    return fetch_one(query, action="entries.get")


def create_entry(client: Any, user_id: str, data: Mapping[str, Any]) -> dict[str, Any]:
    payload = _normalize(data, partial=False)
    payload["user_id"] = user_id
    rows = fetch_rows(client.table(ENTRIES_TABLE).insert(payload), action="entries.create")
    if not rows:
        raise ValueError("Work entry was not saved")
    logger.info(
        "entries.created",
        extra={"extra_data": {"user_id": user_id, "entry_id": rows[0].get("id"), "work_date": payload["work_date"]}},
    )
    return rows[0]


def update_entry(client: Any, user_id: str, entry_id: str, data: Mapping[str, Any]) -> dict[str, Any] | None:
    """Apply a partial update; ``None`` means no row of this user had that id."""

    changes = _normalize({k: v for k, v in data.items() if k in EDITABLE_FIELDS}, partial=True)
    if not changes:
        return get_entry(client, user_id, entry_id)
    query = client.table(ENTRIES_TABLE).update(changes).eq("id", entry_id).eq("user_id", user_id)
    rows = fetch_rows(query, action="entries.update")
    return rows[0] if rows else None


def delete_entry(client: Any, user_id: str, entry_id: str) -> bool:
    query = client.table(ENTRIES_TABLE).delete().eq("id", entry_id).eq("user_id", user_id)
    rows = fetch_rows(query, action="entries.delete")
    if rows:
        logger.info("entries.deleted", extra={"extra_data": {"user_id": user_id, "entry_id": entry_id}})
    return bool(rows)


def delete_all_entries(client: Any, user_id: str) -> int:
    rows = fetch_rows(client.table(ENTRIES_TABLE).delete().eq("user_id", user_id), action="entries.delete_all")
    logger.warning("entries.deleted_all", extra={"extra_data": {"user_id": user_id, "count": len(rows)}})
    return len(rows)


def screenshot_path(user_id: str, filename: str, content_type: str, *, now_ms: int | None = None) -> str:
    suffix = PurePosixPath(filename or "").suffix.lstrip(".").lower()
    extension = suffix or ALLOWED_SCREENSHOT_TYPES.get(content_type, "png")
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"{SCREENSHOT_PREFIX}/{user_id}/{stamp}.{extension}"


def upload_screenshot(
    client: Any,
    user_id: str,
    filename: str,
    content: bytes,
    content_type: str,
    *,
    now_ms: int | None = None,
) -> str:
    """Store an image in the screenshot bucket and return its public URL."""

    content_type = (content_type or "").lower()
    if content_type not in ALLOWED_SCREENSHOT_TYPES:
        raise ValueError("Only image uploads (PNG, JPG, GIF, WEBP) are supported")
    if not content:
        raise ValueError("A file upload is required")
    path = screenshot_path(user_id, filename, content_type, now_ms=now_ms)
    bucket = client.storage.from_(settings.SCREENSHOT_BUCKET)
    call(bucket.upload, path, content, {"content-type": content_type}, action="screenshots.upload")
    public_url = call(bucket.get_public_url, path, action="screenshots.public_url")
    logger.info("screenshots.uploaded", extra={"extra_data": {"user_id": user_id, "path": path}})
    return str(public_url).rstrip("?")


__all__ = [
    "ALLOWED_SCREENSHOT_TYPES",
    "MIN_HOURS",
    "create_entry",
    "delete_all_entries",
    "delete_entry",
    "get_entry",
    "list_entries",
    "screenshot_path",
    "update_entry",
    "upload_screenshot",
    "validate_entry",
]
