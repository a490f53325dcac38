from __future__ import annotations

import calendar
from datetime import date, datetime, time, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from flask import current_app, has_app_context


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def company_timezone() -> ZoneInfo:
    name = "UTC"
    if has_app_context():
        name = current_app.config.get("TIMEZONE") or "UTC"
    return ZoneInfo(name)


def local_now() -> datetime:
    """
    Civil wall-clock 'now' in the company timezone (naive).

    Punch timestamps and the record's YYYY-MM-DD date are civil time,
    so schedule comparisons happen on the same clock the employee sees.
    """
    return datetime.now(company_timezone()).replace(tzinfo=None, microsecond=0)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string into a naive civil datetime.

    - None / "" -> None
    - "YYYY-MM-DDTHH:MM" (naive) is taken as company civil time
    - "...Z" or "...+/-HH:MM" is converted to the company timezone and tzinfo is stripped

    Raises ValueError on malformed input.
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    # Accept trailing Z
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)

    if dt.tzinfo is None:
        return dt

    return dt.astimezone(company_timezone()).replace(tzinfo=None)


def to_iso(dt: Optional[datetime]) -> Optional[str]:
    """Serialize a naive civil datetime without a zone suffix."""
    if dt is None:
        return None
    return dt.replace(microsecond=0).isoformat()


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


def parse_date_string(value: str) -> date:
    """Parse a YYYY-MM-DD calendar date. Raises ValueError when malformed."""
    return datetime.strptime(value.strip(), "%Y-%m-%d").date()


def format_date(d: date) -> str:
    return d.strftime("%Y-%m-%d")


def local_day_start_utc(d: date) -> datetime:
    """Midnight of a company-local calendar day, as naive UTC."""
    local = datetime.combine(d, time.min, tzinfo=company_timezone())
    return local.astimezone(timezone.utc).replace(tzinfo=None)


def month_bounds(year: int, month: int) -> tuple[str, str]:
    """First and last YYYY-MM-DD strings of a calendar month."""
    last_day = calendar.monthrange(year, month)[1]
    return f"{year:04d}-{month:02d}-01", f"{year:04d}-{month:02d}-{last_day:02d}"
