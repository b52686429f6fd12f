"""Tests for CSV/JSON exports and the PDF earnings statement."""

import csv
import io
import json
import os
import sys
from datetime import date, datetime, timezone
from decimal import Decimal
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("SUPABASE_URL", "https://project.test")
os.environ.setdefault("SUPABASE_ANON_KEY", "anon-key")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-secret")

from worklog.services import export
from worklog.services.statement_pdf import render_monthly_statement


ENTRIES = [
    {
        "id": "e2",
        "work_date": "2024-05-03",
        "work_time": "14:00",
        "description": 'Review "auth" PR, then deploy',
        "hours_spent": 2.5,
        "commit_link": "https://git.example.com/c/2",
        "screenshot_url": None,
    },
    {
        "id": "e1",
        "work_date": "2024-05-02",
        "work_time": "09:15",
        "description": "Set up CI",
        "hours_spent": 1,
        "commit_link": None,
        "screenshot_url": "https://cdn.example.com/s.png",
    },
]


def test_entries_to_csv_header_and_quoting():
    body = export.entries_to_csv(ENTRIES)
    rows = list(csv.reader(io.StringIO(body)))

    assert rows[0] == ["Date", "Time", "Description", "Hours", "Commit Link", "Screenshot URL"]
    assert rows[1] == [
        "2024-05-03",
        "14:00",
        'Review "auth" PR, then deploy',
        "2.5",
        "https://git.example.com/c/2",
        "",
    ]
    assert rows[2][3] == "1"
    assert '"Review ""auth"" PR, then deploy"' in body


def test_entries_to_json_wraps_entries_with_summary():
    stamp = datetime(2024, 5, 4, 12, 0, tzinfo=timezone.utc)
    payload = json.loads(export.entries_to_json(ENTRIES, exported_at=stamp))

    assert payload["exported_at"] == "2024-05-04T12:00:00+00:00"
    assert payload["summary"] == {"total_hours": 3.5, "total_tasks": 2, "work_days": 2}
    assert [entry["id"] for entry in payload["entries"]] == ["e2", "e1"]


def test_export_filenames():
    assert export.export_filename(date(2024, 5, 4), "csv") == "programming-work-2024-05-04.csv"
    assert export.developer_reports_filename(date(2024, 5, 1)) == "developer-reports-2024-05.csv"
    assert export.statement_filename(date(2024, 5, 1)) == "earnings-statement-2024-05.pdf"
    assert export.attachment_headers("a.csv") == {"Content-Disposition": 'attachment; filename="a.csv"'}


def test_developer_reports_to_csv_formats_money():
    body = export.developer_reports_to_csv(
        [
            {
                "full_name": "Ada",
                "email": "ada@example.com",
                "team_name": "Core",
                "role": "lead",
                "hourly_rate": Decimal("80"),
                "total_hours": Decimal("7.5"),
                "total_earnings": Decimal("600"),
                "tasks_completed": 3,
                "work_entries": 4,
                "last_activity": "2024-05-10",
            },
            {"full_name": "Idle", "email": "idle@example.com"},
        ]
    )
    rows = list(csv.reader(io.StringIO(body)))

    assert rows[0][0] == "Name"
    assert rows[1] == ["Ada", "ada@example.com", "Core", "lead", "80.00", "7.50", "600.00", "3", "4", "2024-05-10"]
    assert rows[2][-1] == "No activity"


def test_monthly_statement_renders_pdf_bytes():
    pdf = render_monthly_statement(
        email="dev@example.com",
        month=date(2024, 5, 1),
        entries=ENTRIES + [{"work_date": "2024-05-05", "work_time": "10:00", "description": "Café ☕ sync", "hours_spent": 1}],
        hourly_rate=Decimal("50"),
        generated_at=datetime(2024, 6, 1, tzinfo=timezone.utc),
    )

    assert pdf.startswith(b"%PDF-")
    assert b"%%EOF" in pdf[-16:]


def test_monthly_statement_for_empty_month_still_renders():
    pdf = render_monthly_statement(email=None, month=date(2023, 1, 1), entries=ENTRIES, hourly_rate=0)

    assert pdf.startswith(b"%PDF-")
