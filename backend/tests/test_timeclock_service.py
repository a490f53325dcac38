"""
Time-clock state machine, daily totals and generated ledger entries.

Punches pass explicit `at=` datetimes so weekday-dependent results do not
depend on when the suite runs.
"""

from datetime import datetime

import pytest

from timebank.errors import (
    DuplicateEntry,
    DuplicateExit,
    DuplicateLunchExit,
    DuplicateLunchReturn,
    Forbidden,
    JustificationRequired,
    MissingEntry,
    MissingLunchExit,
    NoScheduleConfigured,
    ValidationError,
)
from timebank.extensions import db
from timebank.models import AuditLog, HourBankRecord, TimeClockRecord
from timebank.services import hour_bank_service, justification_service, settings_service, timeclock_service

from conftest import MONDAY, at, scope_of


def punch_day(employee, entry, exit, lunch=None, day=MONDAY):
    timeclock_service.clock_in(employee_id=employee.id, actor_id=employee.id, at=at(day, entry))
    if lunch:
        timeclock_service.clock_out_lunch(employee_id=employee.id, actor_id=employee.id, at=at(day, lunch[0]))
        timeclock_service.clock_in_lunch(employee_id=employee.id, actor_id=employee.id, at=at(day, lunch[1]))
    return timeclock_service.clock_out(employee_id=employee.id, actor_id=employee.id, at=at(day, exit))


class TestClockIn:
    def test_creates_record_with_lateness(self, employee):
        result = timeclock_service.clock_in(employee_id=employee.id, actor_id=employee.id, at=at(MONDAY, "09:20"))

        assert result.record.date == "2026-10-19"
        assert result.record.late_minutes == 10
        assert result.record.state == "ENTERED"
        assert result.requires_justification is False

    def test_second_clock_in_is_duplicate(self, employee):
        first = timeclock_service.clock_in(employee_id=employee.id, actor_id=employee.id, at=at(MONDAY, "09:00"))

        with pytest.raises(DuplicateEntry):
            timeclock_service.clock_in(employee_id=employee.id, actor_id=employee.id, at=at(MONDAY, "09:30"))

        assert TimeClockRecord.query.filter_by(employee_id=employee.id).count() == 1
        assert db.session.get(TimeClockRecord, first.record.id).entry_time == at(MONDAY, "09:00")

    def test_concurrent_insert_is_reported_as_duplicate(self, employee, monkeypatch):
        first = timeclock_service.clock_in(employee_id=employee.id, actor_id=employee.id, at=at(MONDAY, "09:00"))

        # Simulate a racing request that read the day before the first insert landed
        monkeypatch.setattr("timebank.services.timeclock_service._get_day_record", lambda *args, **kwargs: None)
        with pytest.raises(DuplicateEntry):
            timeclock_service.clock_in(employee_id=employee.id, actor_id=employee.id, at=at(MONDAY, "09:05"))
        monkeypatch.undo()

        assert TimeClockRecord.query.filter_by(employee_id=employee.id).count() == 1
        result = timeclock_service.clock_out_lunch(employee_id=employee.id, actor_id=employee.id, at=at(MONDAY, "12:00"))
        assert result.record.id == first.record.id
        assert result.record.entry_time == at(MONDAY, "09:00")

    def test_day_off_has_no_schedule(self, employee):
        saturday = datetime(2026, 10, 24)
        with pytest.raises(NoScheduleConfigured):
            timeclock_service.clock_in(employee_id=employee.id, actor_id=employee.id, at=at(saturday, "09:00"))

    def test_earliest_entry_guard(self, app, employee):
        app.config["ENFORCE_EARLIEST_ENTRY"] = True
        with pytest.raises(ValidationError) as exc:
            timeclock_service.clock_in(employee_id=employee.id, actor_id=employee.id, at=at(MONDAY, "08:30"))
        assert exc.value.context["earliest_entry"] == "2026-10-19T08:50:00"

        result = timeclock_service.clock_in(employee_id=employee.id, actor_id=employee.id, at=at(MONDAY, "08:55"))
        assert result.record.late_minutes == 0


class TestLatePolicy:
    def test_flag_policy_accepts_and_lists_justifications(self, manager, employee):
        justification_service.create(actor_scope=scope_of(manager), reason="Traffic")

        result = timeclock_service.clock_in(employee_id=employee.id, actor_id=employee.id, at=at(MONDAY, "09:30"))

        assert result.record.id is not None
        assert result.requires_justification is True
        assert [j["reason"] for j in result.to_dict()["justifications"]] == ["Traffic"]

    def test_require_policy_blocks_until_justified(self, app, manager, employee):
        app.config["LATE_ARRIVAL_POLICY"] = "require_justification"
        reason = justification_service.create(actor_scope=scope_of(manager), reason="Doctor")

        with pytest.raises(JustificationRequired) as exc:
            timeclock_service.clock_in(employee_id=employee.id, actor_id=employee.id, at=at(MONDAY, "09:30"))
        assert exc.value.context["late_minutes"] == 20
        assert TimeClockRecord.query.count() == 0

        result = timeclock_service.clock_in(
            employee_id=employee.id, actor_id=employee.id, at=at(MONDAY, "09:30"), justification_id=reason.id,
        )
        assert result.record.justification == "Doctor"

    def test_require_policy_without_catalog_does_not_block(self, app, employee):
        app.config["LATE_ARRIVAL_POLICY"] = "require_justification"
        result = timeclock_service.clock_in(employee_id=employee.id, actor_id=employee.id, at=at(MONDAY, "09:30"))
        assert result.record.late_minutes == 20


class TestLunch:
    def test_lunch_requires_entry(self, employee):
        with pytest.raises(MissingEntry):
            timeclock_service.clock_out_lunch(employee_id=employee.id, actor_id=employee.id, at=at(MONDAY, "12:00"))

    def test_lunch_return_requires_lunch_exit(self, employee):
        timeclock_service.clock_in(employee_id=employee.id, actor_id=employee.id, at=at(MONDAY, "09:00"))
        with pytest.raises(MissingLunchExit):
            timeclock_service.clock_in_lunch(employee_id=employee.id, actor_id=employee.id, at=at(MONDAY, "13:00"))

    def test_each_lunch_punch_once(self, employee):
        timeclock_service.clock_in(employee_id=employee.id, actor_id=employee.id, at=at(MONDAY, "09:00"))
        timeclock_service.clock_out_lunch(employee_id=employee.id, actor_id=employee.id, at=at(MONDAY, "12:00"))
        with pytest.raises(DuplicateLunchExit):
            timeclock_service.clock_out_lunch(employee_id=employee.id, actor_id=employee.id, at=at(MONDAY, "12:05"))

        result = timeclock_service.clock_in_lunch(employee_id=employee.id, actor_id=employee.id, at=at(MONDAY, "13:20"))
        assert result.record.lunch_late_minutes == 20
        assert result.record.state == "RETURNED_FROM_LUNCH"

        with pytest.raises(DuplicateLunchReturn):
            timeclock_service.clock_in_lunch(employee_id=employee.id, actor_id=employee.id, at=at(MONDAY, "13:25"))

    def test_punches_must_be_in_order(self, employee):
        timeclock_service.clock_in(employee_id=employee.id, actor_id=employee.id, at=at(MONDAY, "09:00"))
        with pytest.raises(ValidationError):
            timeclock_service.clock_out_lunch(employee_id=employee.id, actor_id=employee.id, at=at(MONDAY, "08:00"))


class TestClockOut:
    def test_late_long_monday_proposes_pending_credit(self, employee):
        result = punch_day(employee, "09:20", "18:30")
        record = result.record

        assert record.state == "EXITED"
        assert record.late_minutes == 10
        assert record.scheduled_hours == 8.0
        assert record.total_worked_hours == pytest.approx(8.1667, abs=1e-3)
        assert record.overtime_hours == pytest.approx(0.1667, abs=1e-3)
        assert record.negative_hours == 0.0

        credit = db.session.get(HourBankRecord, record.hour_bank_credit_id)
        assert credit.type == "credit"
        assert credit.status == "pending"
        assert credit.hours == pytest.approx(0.1667, abs=1e-3)
        assert credit.time_clock_record_id == record.id
        assert record.hour_bank_debit_id is None

    def test_actual_lunch_is_used(self, employee):
        record = punch_day(employee, "09:00", "17:00", lunch=("12:00", "13:00")).record

        assert record.total_worked_hours == 7.0
        assert record.negative_hours == 1.0

    def test_shortfall_debit_is_not_capped_by_balance(self, manager, employee):
        record = punch_day(employee, "09:00", "15:00").record

        debit = db.session.get(HourBankRecord, record.hour_bank_debit_id)
        assert debit.type == "debit"
        assert debit.hours == pytest.approx(3.0)
        assert debit.status == "pending"

        hour_bank_service.set_status(actor_scope=scope_of(manager), record_id=debit.id, status="approved")
        assert hour_bank_service.get_balance(employee.id).total_balance == pytest.approx(-3.0)

    def test_exact_day_creates_no_entries(self, employee):
        result = punch_day(employee, "09:00", "18:00")

        assert result.ledger == []
        assert HourBankRecord.query.count() == 0

    def test_exit_only_once(self, employee):
        punch_day(employee, "09:00", "18:00")
        with pytest.raises(DuplicateExit):
            timeclock_service.clock_out(employee_id=employee.id, actor_id=employee.id, at=at(MONDAY, "18:05"))
        with pytest.raises(DuplicateExit):
            timeclock_service.clock_out_lunch(employee_id=employee.id, actor_id=employee.id, at=at(MONDAY, "18:05"))

    def test_clock_out_without_entry(self, employee):
        with pytest.raises(MissingEntry):
            timeclock_service.clock_out(employee_id=employee.id, actor_id=employee.id, at=at(MONDAY, "18:00"))

    def test_credit_over_accumulation_limit_is_skipped(self, admin, employee):
        settings_service.update_settings(actor_scope=scope_of(admin), changes={"default_accumulation_limit": 0.5})

        result = punch_day(employee, "09:00", "19:00")

        assert result.record.exit_time == at(MONDAY, "19:00")
        assert result.record.hour_bank_credit_id is None
        assert [e["action"] for e in result.ledger] == ["skipped"]
        assert HourBankRecord.query.count() == 0
        assert AuditLog.query.filter_by(action="hourbank_auto_credit_skipped").count() == 1

    def test_punches_are_audited(self, employee):
        punch_day(employee, "09:00", "18:00", lunch=("12:00", "13:00"))

        actions = {a.action for a in AuditLog.query.filter_by(target_id=employee.id)}
        assert {"timeclock_entry", "timeclock_lunch_exit", "timeclock_lunch_return", "timeclock_exit"} <= actions


class TestEditRecord:
    def test_edit_supersedes_stale_ledger_entries(self, manager, employee):
        record = punch_day(employee, "09:00", "19:00").record
        credit_id = record.hour_bank_credit_id

        result = timeclock_service.edit_record(
            actor_scope=scope_of(manager),
            record_id=record.id,
            changes={"exit_time": "2026-10-19T17:00:00"},
        )

        superseded = db.session.get(HourBankRecord, credit_id)
        assert superseded.status == "rejected"
        assert superseded.rejected_by == manager.id

        edited = result.record
        assert edited.total_worked_hours == 7.0
        assert edited.overtime_hours == 0.0
        assert edited.hour_bank_credit_id is None
        debit = db.session.get(HourBankRecord, edited.hour_bank_debit_id)
        assert debit.hours == pytest.approx(1.0)
        assert debit.status == "pending"
        assert {e["action"] for e in result.ledger} == {"superseded", "created"}

    def test_unchanged_totals_keep_entries(self, manager, employee):
        record = punch_day(employee, "09:00", "19:00").record
        credit_id = record.hour_bank_credit_id

        result = timeclock_service.edit_record(
            actor_scope=scope_of(manager),
            record_id=record.id,
            changes={"entry_time": "2026-10-19T09:00:00"},
        )

        assert result.record.hour_bank_credit_id == credit_id
        assert db.session.get(HourBankRecord, credit_id).status == "pending"

    def test_out_of_order_edit_rolls_back(self, manager, employee):
        record = punch_day(employee, "09:00", "18:00").record

        with pytest.raises(ValidationError):
            timeclock_service.edit_record(
                actor_scope=scope_of(manager),
                record_id=record.id,
                changes={"exit_time": "2026-10-19T08:00:00"},
            )

        db.session.expire_all()
        assert db.session.get(TimeClockRecord, record.id).exit_time == at(MONDAY, "18:00")

    def test_unknown_fields_rejected(self, manager, employee):
        record = punch_day(employee, "09:00", "18:00").record
        with pytest.raises(ValidationError):
            timeclock_service.edit_record(
                actor_scope=scope_of(manager), record_id=record.id, changes={"overtime_hours": 5},
            )

    def test_employee_cannot_edit(self, employee):
        record = punch_day(employee, "09:00", "18:00").record
        with pytest.raises(Forbidden):
            timeclock_service.edit_record(
                actor_scope=scope_of(employee), record_id=record.id, changes={"exit_time": "2026-10-19T19:00:00"},
            )

    def test_manager_outside_department_cannot_edit(self, manager, outsider):
        record = punch_day(outsider, "09:00", "18:00").record
        with pytest.raises(Forbidden):
            timeclock_service.edit_record(
                actor_scope=scope_of(manager), record_id=record.id, changes={"exit_time": "2026-10-19T19:00:00"},
            )


class TestListRecords:
    def test_pagination_envelope(self, employee):
        for day in (19, 20, 21):
            punch_day(employee, "09:00", "18:00", day=datetime(2026, 10, day))

        result = timeclock_service.list_records(actor_scope=scope_of(employee), employee_id=employee.id, limit=2)

        assert [r["date"] for r in result["records"]] == ["2026-10-21", "2026-10-20"]
        assert result["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}

    def test_manager_cannot_list_other_department(self, manager):
        with pytest.raises(Forbidden):
            timeclock_service.list_records(actor_scope=scope_of(manager), department="Sales")


class TestSideEffects:
    def test_mail_failure_does_not_fail_the_punch(self, app, employee, monkeypatch):
        app.config["MAIL_ENABLED"] = True

        def refuse(*args, **kwargs):
            raise OSError("connection refused")

        monkeypatch.setattr("timebank.services.notification_service.smtplib.SMTP", refuse)

        result = timeclock_service.clock_in(employee_id=employee.id, actor_id=employee.id, at=at(MONDAY, "09:00"))
        assert result.record.id is not None

    def test_audit_failure_does_not_fail_the_punch(self, employee, monkeypatch):
        def broken(**kwargs):
            raise RuntimeError("audit table unavailable")

        monkeypatch.setattr("timebank.services.audit_service.AuditLog", broken)

        result = punch_day(employee, "09:00", "18:00")

        assert result.record.state == "EXITED"
        assert AuditLog.query.count() == 0
