"""
Daily arithmetic for punch records.

Pure functions only: no app, no database.
"""

from datetime import date, datetime

import pytest

from timebank.services.time_calc import (
    compute_daily_totals,
    late_minutes,
    lunch_late_minutes,
    lunch_overtime,
    negative_hours,
    overtime_hours,
    overtime_request_hours,
    scheduled_hours,
    worked_hours,
)


DAY = date(2026, 10, 19)  # Monday

SCHEDULE = {
    "monday": {"start_time": "09:00", "end_time": "18:00"},
    "tuesday": None,
    "wednesday": None,
    "thursday": None,
    "friday": None,
    "saturday": None,
    "sunday": None,
}


def t(hhmm: str) -> datetime:
    hour, minute = hhmm.split(":")
    return datetime(DAY.year, DAY.month, DAY.day, int(hour), int(minute))


class TestWorkedHours:
    def test_actual_lunch_is_subtracted(self):
        assert worked_hours(t("09:00"), t("17:00"), t("12:00"), t("13:00"), 1) == 7.0

    def test_default_lunch_when_punches_absent(self):
        assert worked_hours(t("09:00"), t("17:00"), None, None, 1) == 7.0

    def test_half_a_lunch_pair_falls_back_to_default(self):
        assert worked_hours(t("09:00"), t("17:00"), t("12:00"), None, 1.5) == 6.5

    def test_never_negative(self):
        assert worked_hours(t("09:00"), t("09:30"), None, None, 1) == 0.0


class TestLateness:
    @pytest.mark.parametrize("entry,expected", [
        ("09:07", 0),
        ("09:10", 0),
        ("09:15", 5),
        ("09:20", 10),
        ("08:30", 0),
    ])
    def test_late_minutes_beyond_tolerance(self, entry, expected):
        assert late_minutes(t(entry), t("09:00"), 10) == expected

    def test_lunch_late_minutes(self):
        assert lunch_late_minutes(t("12:00"), t("13:20"), 1) == 20
        assert lunch_late_minutes(t("12:00"), t("12:40"), 1) == 0
        assert lunch_late_minutes(None, t("13:00"), 1) == 0

    def test_short_lunch_counts_as_overtime(self):
        assert lunch_overtime(t("12:00"), t("12:30"), 1) == pytest.approx(0.5)
        assert lunch_overtime(t("12:00"), t("13:30"), 1) == 0.0


class TestOvertimeAndShortfall:
    def test_shortfall(self):
        assert negative_hours(6, 8) == 2
        assert overtime_hours(6, 8) == 0

    def test_overtime(self):
        assert overtime_hours(9, 8) == 1
        assert negative_hours(9, 8) == 0

    def test_unscheduled_day_has_no_comparison(self):
        assert overtime_hours(5, 0) == 0
        assert negative_hours(5, 0) == 0

    def test_lunch_overtime_is_added(self):
        assert overtime_hours(8, 8, 0.25) == pytest.approx(0.25)


class TestScheduledHours:
    def test_window_minus_lunch(self):
        assert scheduled_hours(SCHEDULE, DAY, 1) == 8.0

    def test_day_off(self):
        assert scheduled_hours(SCHEDULE, date(2026, 10, 20), 1) == 0.0

    def test_no_schedule(self):
        assert scheduled_hours(None, DAY, 1) == 0.0


class TestOvertimeRequestHours:
    def test_same_day(self):
        assert overtime_request_hours("18:00", "20:30") == 2.5

    def test_crosses_midnight(self):
        assert overtime_request_hours("22:00", "02:00") == 4.0


def test_daily_totals_for_a_late_long_monday():
    totals = compute_daily_totals(
        day=DAY,
        entry=t("09:20"),
        exit=t("18:30"),
        lunch_exit=None,
        lunch_return=None,
        schedule=SCHEDULE,
        lunch_break_hours=1,
        late_tolerance=10,
    )

    assert totals.late_minutes == 10
    assert totals.scheduled_hours == 8.0
    assert totals.total_worked_hours == pytest.approx(8.1667, abs=1e-3)
    assert totals.overtime_hours == pytest.approx(0.1667, abs=1e-3)
    assert totals.negative_hours == 0.0
    assert totals.lunch_late_minutes == 0
