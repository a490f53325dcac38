# Overview: Pure time arithmetic for punch records; no database or app context.

"""
Time Arithmetic

All hour quantities are plain floats and are never rounded here. Rounding to
2 decimal places is a display concern (see round_hours). Minute quantities are
rounded to the nearest integer because they are stored as integers.

Datetimes are naive civil datetimes in the company timezone; schedules are
"HH:MM" strings on the same clock.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from datetime import date, datetime, time, timedelta
from typing import Optional


WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def parse_hhmm(value: str) -> time:
    hour, minute = value.split(":")
    return time(int(hour), int(minute))


def combine(day: date, hhmm: str) -> datetime:
    """Wall-clock datetime for an HH:MM on the given civil day."""
    return datetime.combine(day, parse_hhmm(hhmm))


def hours_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 3600.0


def minutes_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 60.0


def round_hours(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    return round(value, 2)


def worked_hours(
    entry: datetime,
    exit: datetime,
    lunch_exit: Optional[datetime],
    lunch_return: Optional[datetime],
    default_lunch_hours: float,
) -> float:
    """
    Elapsed hours between entry and exit minus lunch.

    Actual lunch is used when both lunch punches exist, otherwise the
    employee's default lunch duration. Never negative.
    """
    span = hours_between(entry, exit)
    if lunch_exit is not None and lunch_return is not None:
        lunch = hours_between(lunch_exit, lunch_return)
    else:
        lunch = default_lunch_hours or 0.0
    return max(0.0, span - lunch)


def window_hours(start_time: str, end_time: str, lunch_hours: float) -> float:
    """Length of a HH:MM..HH:MM working window minus lunch, floored at 0."""
    start = parse_hhmm(start_time)
    end = parse_hhmm(end_time)
    span = (end.hour * 60 + end.minute - start.hour * 60 - start.minute) / 60.0
    return max(0.0, span - (lunch_hours or 0.0))


def scheduled_hours(schedule: Optional[dict], day: date, default_lunch_hours: float) -> float:
    """
    Expected working hours for the weekday of `day`.

    `schedule` is the normalized 7-key weekday mapping. A missing schedule or
    an empty weekday yields 0.
    """
    if not schedule:
        return 0.0
    window = schedule.get(WEEKDAYS[day.weekday()])
    if not window:
        return 0.0
    return window_hours(window["start_time"], window["end_time"], default_lunch_hours)


def late_minutes(entry: datetime, scheduled_start: datetime, tolerance_minutes: int) -> int:
    """Minutes late beyond the grace period. 09:15 vs 09:00 with 10 min tolerance -> 5."""
    late = minutes_between(scheduled_start, entry) - (tolerance_minutes or 0)
    return max(0, int(round(late)))


def lunch_late_minutes(
    lunch_exit: Optional[datetime],
    lunch_return: Optional[datetime],
    expected_lunch_hours: float,
) -> int:
    if lunch_exit is None or lunch_return is None or not expected_lunch_hours:
        return 0
    expected_return = lunch_exit + timedelta(hours=expected_lunch_hours)
    return max(0, int(round(minutes_between(expected_return, lunch_return))))


def lunch_overtime(
    lunch_exit: Optional[datetime],
    lunch_return: Optional[datetime],
    expected_lunch_hours: float,
) -> float:
    """A lunch cut short counts as extra worked time."""
    if lunch_exit is None or lunch_return is None or not expected_lunch_hours:
        return 0.0
    actual = hours_between(lunch_exit, lunch_return)
    return max(0.0, expected_lunch_hours - actual)


def overtime_hours(worked: float, scheduled: float, extra_from_lunch: float = 0.0) -> float:
    # No schedule for the day means no comparison term
    over = max(0.0, worked - scheduled) if scheduled > 0 else 0.0
    return over + (extra_from_lunch or 0.0)


def negative_hours(worked: float, scheduled: float) -> float:
    if scheduled <= 0:
        return 0.0
    return max(0.0, scheduled - worked)


def overtime_request_hours(start_time: str, end_time: str) -> float:
    """HH:MM difference modulo 24h, so 22:00 -> 02:00 is 4 hours."""
    start = parse_hhmm(start_time)
    end = parse_hhmm(end_time)
    minutes = (end.hour * 60 + end.minute) - (start.hour * 60 + start.minute)
    return (minutes % (24 * 60)) / 60.0


def earliest_entry_time(scheduled_start: datetime, tolerance_minutes: int) -> datetime:
    return scheduled_start - timedelta(minutes=tolerance_minutes or 0)


@dataclass(frozen=True)
class DailyTotals:
    total_worked_hours: float
    scheduled_hours: float
    late_minutes: int
    lunch_late_minutes: int
    overtime_hours: float
    negative_hours: float

    def to_dict(self) -> dict:
        return asdict(self)


def compute_daily_totals(
    *,
    day: date,
    entry: datetime,
    exit: datetime,
    lunch_exit: Optional[datetime],
    lunch_return: Optional[datetime],
    schedule: Optional[dict],
    lunch_break_hours: float,
    late_tolerance: int,
) -> DailyTotals:
    """Every derived field of a finished day, computed from scratch."""
    worked = worked_hours(entry, exit, lunch_exit, lunch_return, lunch_break_hours)
    expected = scheduled_hours(schedule, day, lunch_break_hours)

    late = 0
    window = (schedule or {}).get(WEEKDAYS[day.weekday()])
    if window:
        late = late_minutes(entry, combine(day, window["start_time"]), late_tolerance)

    return DailyTotals(
        total_worked_hours=worked,
        scheduled_hours=expected,
        late_minutes=late,
        lunch_late_minutes=lunch_late_minutes(lunch_exit, lunch_return, lunch_break_hours),
        overtime_hours=overtime_hours(
            worked, expected, lunch_overtime(lunch_exit, lunch_return, lunch_break_hours)
        ),
        negative_hours=negative_hours(worked, expected),
    )
