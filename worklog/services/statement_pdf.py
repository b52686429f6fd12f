"""Render a one-month earnings statement as PDF with fpdf2."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Mapping, Sequence

from fpdf import FPDF
from fpdf.enums import XPos, YPos

from . import reporting

STATEMENT_FONT_FAMILY = "Helvetica"
COLUMN_WIDTHS = (28, 16, 0, 18)


def _latin1(text: Any) -> str:
    # Core PDF fonts only cover latin-1.
    return str(text or "").encode("latin-1", "replace").decode("latin-1")


def _money(value: Any) -> str:
    return f"${reporting._to_decimal(value):,.2f}"


def _hours(value: Any) -> str:
    return f"{reporting._to_decimal(value):.2f}"


def render_monthly_statement(
    *,
    email: str | None,
    month: date,
    entries: Sequence[Mapping[str, Any]],
    hourly_rate: Any,
    generated_at: datetime | None = None,
) -> bytes:
    """Statement header, summary block, then one row per work entry of ``month``."""

    stats = reporting.monthly_stats(entries, month, hourly_rate)
    month_entries = sorted(
        reporting.entries_for_month(entries, month),
        key=lambda entry: (str(entry.get("work_date") or ""), str(entry.get("work_time") or "")),
    )

    pdf = FPDF(unit="mm", format="A4")
    pdf.set_auto_page_break(auto=True, margin=15)
    pdf.add_page()
    effective_width = pdf.w - pdf.l_margin - pdf.r_margin

    pdf.set_font(STATEMENT_FONT_FAMILY, "B", 16)
    pdf.cell(effective_width, 10, _latin1(f"Earnings Statement - {month:%B %Y}"), new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    stamp = (generated_at or datetime.now(timezone.utc)).strftime("%Y-%m-%d %H:%M %Z")
    pdf.set_font(STATEMENT_FONT_FAMILY, size=10)
    pdf.cell(effective_width, 5, _latin1(f"Prepared for: {email or 'Unknown'}"), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.cell(effective_width, 5, _latin1(f"Generated: {stamp}"), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.ln(3)

    pdf.set_font(STATEMENT_FONT_FAMILY, "", 11)
    for label, value in (
        ("Hourly rate", _money(stats.hourly_rate)),
        ("Total hours", _hours(stats.total_hours)),
        ("Tasks logged", str(stats.total_tasks)),
        ("Days worked", str(stats.work_days)),
        ("Average per day", f"{_hours(stats.average_hours_per_day)}h"),
        ("Total earnings", _money(stats.total_earnings)),
    ):
        pdf.cell(45, 6, f"{label}:")
        pdf.cell(effective_width - 45, 6, value, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.ln(4)

    pdf.set_font(STATEMENT_FONT_FAMILY, "B", 12)
    pdf.cell(effective_width, 6, "Work entries", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    if not month_entries:
        pdf.set_font(STATEMENT_FONT_FAMILY, "I", 10)
        pdf.multi_cell(effective_width, 5, "No work was logged this month.")
    else:
        date_w, time_w, _, hours_w = COLUMN_WIDTHS
        desc_w = effective_width - date_w - time_w - hours_w
        pdf.set_font(STATEMENT_FONT_FAMILY, "B", 10)
        pdf.cell(date_w, 6, "Date")
        pdf.cell(time_w, 6, "Time")
        pdf.cell(desc_w, 6, "Description")
        pdf.cell(hours_w, 6, "Hours", align="R", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.set_font(STATEMENT_FONT_FAMILY, "", 10)
        for entry in month_entries:
            description = _latin1(entry.get("description")).replace("\n", " ")
            if len(description) > 70:
                description = description[:67] + "..."
            pdf.cell(date_w, 5.5, _latin1(str(entry.get("work_date") or "")[:10]))
            pdf.cell(time_w, 5.5, _latin1(entry.get("work_time")))
            pdf.cell(desc_w, 5.5, description)
            pdf.cell(hours_w, 5.5, _hours(entry.get("hours_spent")), align="R", new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    output = pdf.output()
    if isinstance(output, str):
        return output.encode("latin1")
    return bytes(output)
