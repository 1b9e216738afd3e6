"""Timestamp helpers shared by the crud layer and the reports.

Rows store UTC timestamps as ``YYYY-MM-DDTHH:MM:SSZ`` text, which sorts and
range-compares correctly as plain strings.
"""

from __future__ import annotations

from datetime import date, datetime, timezone


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_day(value: str | date | None) -> date | None:
    """Accept ``YYYY-MM-DD`` (or a full ISO timestamp) and return the calendar day."""

    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError as exc:
        raise ValueError(f"invalid date: {value!r}") from exc


def months_back(day: date, months: int) -> date:
    """First day of the month ``months`` before ``day``'s month."""

    index = day.year * 12 + (day.month - 1) - months
    return date(index // 12, index % 12 + 1, 1)


def default_report_range(today: date | None = None, months: int = 3) -> tuple[date, date]:
    today = today or datetime.now(timezone.utc).date()
    return months_back(today, months), today


def range_bounds(start: date, end: date) -> tuple[str, str]:
    """Inclusive string bounds covering every timestamp on ``start`` .. ``end``."""

    if end < start:
        raise ValueError("end date is before start date")
    return f"{start.isoformat()}T00:00:00Z", f"{end.isoformat()}T23:59:59Z"


def month_key(timestamp: str) -> str:
    """``YYYY-MM`` bucket for a stored timestamp."""

    return (timestamp or "")[:7]
