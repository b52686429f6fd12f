from __future__ import annotations

import csv
import io
import json
from datetime import date, datetime, timezone
from typing import Any, Iterable, Mapping, Sequence

from . import reporting

ENTRY_CSV_HEADER = ["Date", "Time", "Description", "Hours", "Commit Link", "Screenshot URL"]
DEVELOPER_CSV_HEADER = [
    "Name",
    "Email",
    "Team",
    "Role",
    "Hourly Rate",
    "Total Hours",
    "Total Earnings",
    "Tasks Completed",
    "Work Entries",
    "Last Activity",
]

CSV_MEDIA_TYPE = "text/csv"
JSON_MEDIA_TYPE = "application/json"


def _write_csv(header: list[str], rows: Iterable[list[Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(header)
    writer.writerows(rows)
    return buffer.getvalue()


def _hours_text(value: Any) -> str:
    return format(reporting._to_decimal(value).normalize(), "f")


def entries_to_csv(entries: Iterable[Mapping[str, Any]]) -> str:
    rows = (
        [
            entry.get("work_date") or "",
            entry.get("work_time") or "",
            entry.get("description") or "",
            _hours_text(entry.get("hours_spent")),
            entry.get("commit_link") or "",
            entry.get("screenshot_url") or "",
        ]
        for entry in entries
    )
    return _write_csv(ENTRY_CSV_HEADER, rows)


def entries_to_json(entries: Sequence[Mapping[str, Any]], *, exported_at: datetime | None = None) -> str:
    summary = reporting.summarize(entries)
    stamp = exported_at or datetime.now(timezone.utc)
    payload = {
        "exported_at": stamp.isoformat(),
        "summary": {
            "total_hours": float(summary.total_hours),
            "total_tasks": summary.total_tasks,
            "work_days": summary.work_days,
        },
        "entries": [dict(entry) for entry in entries],
    }
    return json.dumps(payload, indent=2, default=str)


def export_filename(day: date, extension: str) -> str:
    return f"programming-work-{day.isoformat()}.{extension}"


def developer_reports_filename(month: date) -> str:
    return f"developer-reports-{month:%Y-%m}.csv"


def statement_filename(month: date) -> str:
    return f"earnings-statement-{month:%Y-%m}.pdf"


def developer_reports_to_csv(reports: Iterable[Mapping[str, Any]]) -> str:
    rows = (
        [
            report.get("full_name") or "",
            report.get("email") or "",
            report.get("team_name") or "",
            report.get("role") or "",
            f"{reporting._to_decimal(report.get('hourly_rate')):.2f}",
            f"{reporting._to_decimal(report.get('total_hours')):.2f}",
            f"{reporting._to_decimal(report.get('total_earnings')):.2f}",
            int(report.get("tasks_completed") or 0),
            int(report.get("work_entries") or 0),
            report.get("last_activity") or reporting.NO_ACTIVITY,
        ]
        for report in reports
    )
    return _write_csv(DEVELOPER_CSV_HEADER, rows)


def attachment_headers(filename: str) -> dict[str, str]:
    return {"Content-Disposition": f'attachment; filename="{filename}"'}
