"""In-memory mirror of one user's work entries.

``WorkLog`` wraps the platform CRUD helpers for a single signed-in user. The
local list only changes after the matching platform call returned without an
error, so a failed insert or delete never shows up as a phantom row.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Mapping

from ..crud import work_entries as store
from . import reporting


class WorkLog:
    def __init__(self, client: Any, user_id: str, entries: list[dict[str, Any]] | None = None) -> None:
        self.client = client
        self.user_id = user_id
        self.entries: list[dict[str, Any]] = list(entries or [])

    @classmethod
    def load(cls, client: Any, user_id: str) -> "WorkLog":
        return cls(client, user_id, store.list_entries(client, user_id))

    def refetch(self) -> list[dict[str, Any]]:
        self.entries = store.list_entries(self.client, self.user_id)
        return self.entries

    def entries_for_date(self, day: date | str) -> list[dict[str, Any]]:
        key = day.isoformat() if isinstance(day, date) else str(day)[:10]
        return [entry for entry in self.entries if str(entry.get("work_date") or "")[:10] == key]

    def total_hours(self) -> Decimal:
        return reporting.total_hours(self.entries)

    def total_tasks(self) -> int:
        return len(self.entries)

    def work_days(self) -> int:
        return reporting.summarize(self.entries).work_days

    def average_hours_per_day(self) -> Decimal:
        return reporting.summarize(self.entries).average_hours_per_day

    def add(self, data: Mapping[str, Any]) -> dict[str, Any]:
        row = store.create_entry(self.client, self.user_id, data)
        self.entries.insert(0, row)
        return row

    def update(self, entry_id: str, data: Mapping[str, Any]) -> dict[str, Any] | None:
        row = store.update_entry(self.client, self.user_id, entry_id, data)
        if row is not None:
            self.entries = [row if str(entry.get("id")) == str(entry_id) else entry for entry in self.entries]
        return row

    def remove(self, entry_id: str) -> bool:
        removed = store.delete_entry(self.client, self.user_id, entry_id)
        if removed:
            self.entries = [entry for entry in self.entries if str(entry.get("id")) != str(entry_id)]
        return removed

    def clear(self) -> int:
        count = store.delete_all_entries(self.client, self.user_id)
        self.entries = []
        return count

    def upload_screenshot(self, filename: str, content: bytes, content_type: str) -> str:
        return store.upload_screenshot(self.client, self.user_id, filename, content, content_type)
