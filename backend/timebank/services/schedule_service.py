# Overview: Service-layer operations for work schedules; normalizes and resolves weekly windows.

"""
Work Schedule Resolver

Employee.work_schedule is always stored as the fixed 7-key mapping
monday..sunday, each day either {"start_time": "HH:MM", "end_time": "HH:MM"}
or None (day off). normalize_schedule is the only writer-facing entry point.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..errors import NoScheduleConfigured, ValidationError
from ..validation import HHMM_RE
from .time_calc import WEEKDAYS, combine, parse_hhmm


# Older clients sent Portuguese weekday names
LEGACY_WEEKDAY_NAMES = {
    "segunda": "monday",
    "terca": "tuesday",
    "terça": "tuesday",
    "quarta": "wednesday",
    "quinta": "thursday",
    "sexta": "friday",
    "sabado": "saturday",
    "sábado": "saturday",
    "domingo": "sunday",
}


@dataclass(frozen=True)
class ScheduleWindow:
    start_time: str
    end_time: str

    def start_on(self, day: date):
        return combine(day, self.start_time)

    def end_on(self, day: date):
        return combine(day, self.end_time)


def empty_schedule() -> dict:
    return {day: None for day in WEEKDAYS}


def _canonical_day(name: str) -> Optional[str]:
    key = name.strip().lower()
    if key in WEEKDAYS:
        return key
    return LEGACY_WEEKDAY_NAMES.get(key)


def _pad(value: str) -> str:
    hour, minute = value.strip().split(":")
    return f"{int(hour):02d}:{int(minute):02d}"


def normalize_schedule(raw) -> dict:
    """
    Validate a weekly schedule and return the canonical 7-key mapping.

    Accepts English or legacy Portuguese day names and either snake_case
    (start_time) or camelCase (startTime) keys. Raises ValidationError with
    a list of per-day problems.
    """
    if not isinstance(raw, dict):
        raise ValidationError("work_schedule must be an object keyed by weekday")

    schedule = empty_schedule()
    errors: list[str] = []

    for name, window in raw.items():
        day = _canonical_day(str(name))
        if day is None:
            errors.append(f"{name}: unknown weekday")
            continue
        if window in (None, {}, False):
            schedule[day] = None
            continue
        if not isinstance(window, dict):
            errors.append(f"{day}: must be an object with start_time and end_time")
            continue

        start = window.get("start_time", window.get("startTime"))
        end = window.get("end_time", window.get("endTime"))
        if not start or not end:
            errors.append(f"{day}: start_time and end_time are required")
            continue
        if not isinstance(start, str) or not HHMM_RE.match(start.strip()):
            errors.append(f"{day}: invalid start_time, use HH:MM")
            continue
        if not isinstance(end, str) or not HHMM_RE.match(end.strip()):
            errors.append(f"{day}: invalid end_time, use HH:MM")
            continue

        start, end = _pad(start), _pad(end)
        if parse_hhmm(end) <= parse_hhmm(start):
            errors.append(f"{day}: end_time must be after start_time")
            continue

        schedule[day] = {"start_time": start, "end_time": end}

    if not errors and not any(schedule.values()):
        errors.append("at least one working day is required")

    if errors:
        raise ValidationError("Invalid work schedule", errors=errors)
    return schedule


def resolve(schedule: Optional[dict], day: date) -> Optional[ScheduleWindow]:
    """The working window for `day`'s weekday, or None for a day off."""
    if not schedule:
        return None
    window = schedule.get(WEEKDAYS[day.weekday()])
    if not window:
        return None
    return ScheduleWindow(start_time=window["start_time"], end_time=window["end_time"])


def require_window(employee, day: date) -> ScheduleWindow:
    if not employee.work_schedule:
        raise NoScheduleConfigured(
            "No work schedule configured for this employee",
            employee_id=employee.id,
        )
    window = resolve(employee.work_schedule, day)
    if window is None:
        raise NoScheduleConfigured(
            f"No work schedule configured for {WEEKDAYS[day.weekday()]}",
            employee_id=employee.id,
            weekday=WEEKDAYS[day.weekday()],
        )
    return window
