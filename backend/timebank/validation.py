from __future__ import annotations

import math
import re
from datetime import datetime
from typing import Any

from .errors import ValidationError
from .time_utils import parse_date_string, parse_iso_datetime


HHMM_RE = re.compile(r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$")

# A single ledger movement or overtime request larger than this is a typo
MAX_HOURS = 24 * 31

RECORD_STATUSES = ("pending", "approved", "rejected")
RECORD_TYPES = ("credit", "debit")


def require_fields(data: dict, *fields: str) -> None:
    missing = [f for f in fields if data.get(f) in (None, "")]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}", missing=missing)


def coerce_hours(value: Any, field: str = "hours", *, allow_zero: bool = False) -> float:
    """
    Parse a decimal hour quantity.

    Accepts ints, floats and numeric strings; rejects booleans, NaN/inf
    and values outside (0, MAX_HOURS].
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be a number")
        try:
            value = float(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be a number")
    if not isinstance(value, (int, float)):
        raise ValidationError(f"{field} must be a number")

    try:
        hours = float(value)
    except OverflowError:
        raise ValidationError(f"{field} cannot exceed {MAX_HOURS}")
    if math.isnan(hours) or math.isinf(hours):
        raise ValidationError(f"{field} must be a finite number")
    if hours < 0 or (hours == 0 and not allow_zero):
        raise ValidationError(f"{field} must be greater than 0", requested=hours)
    if hours > MAX_HOURS:
        raise ValidationError(f"{field} cannot exceed {MAX_HOURS}", requested=hours)
    return hours


def coerce_int(value: Any, field: str, *, minimum: int | None = None, maximum: int | None = None) -> int:
    """Strict integer parsing: no floats, no scientific notation, no bools."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped or not re.fullmatch(r"-?\d+", stripped):
            raise ValidationError(f"{field} must be an integer")
        result = int(stripped)
    else:
        raise ValidationError(f"{field} must be an integer")

    if minimum is not None and result < minimum:
        raise ValidationError(f"{field} must be >= {minimum}")
    if maximum is not None and result > maximum:
        raise ValidationError(f"{field} must be <= {maximum}")
    return result


def coerce_date(value: Any, field: str = "date") -> str:
    """Validate a YYYY-MM-DD calendar date and return it normalized."""
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a YYYY-MM-DD string")
    try:
        return parse_date_string(value).strftime("%Y-%m-%d")
    except ValueError:
        raise ValidationError(f"{field} must be a YYYY-MM-DD string")


def coerce_hhmm(value: Any, field: str) -> str:
    """Validate an HH:MM wall-clock time and zero-pad it."""
    if not isinstance(value, str) or not HHMM_RE.match(value.strip()):
        raise ValidationError(f"{field} must be in HH:MM format")
    hour, minute = value.strip().split(":")
    return f"{int(hour):02d}:{int(minute):02d}"


def coerce_datetime(value: Any, field: str) -> datetime | None:
    """ISO-8601 datetime or None (explicit clear)."""
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be an ISO-8601 datetime")
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 datetime")


def coerce_choice(value: Any, field: str, choices: tuple[str, ...]) -> str:
    if value not in choices:
        raise ValidationError(
            f"{field} must be one of: {', '.join(choices)}",
            allowed=list(choices),
        )
    return value


def coerce_reason(value: Any, field: str = "reason") -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required")
    return value.strip()
