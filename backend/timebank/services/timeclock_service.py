# Overview: Service-layer operations for the time clock; punch state machine, daily totals and ledger side effects.

"""
Time-Clock State Machine

WHY: One record per (employee, civil date) is the state:

    NOT_STARTED -> ENTERED -> ON_LUNCH -> RETURNED_FROM_LUNCH -> EXITED
                      \\________________________________________/
                                  (lunch is optional)

Each punch may be recorded once. Clock-out computes every derived field from
scratch and proposes ledger entries in the same transaction:
- overtime > 0  -> pending credit (skipped with a warning when it would pass
                   the accumulation limit; the clock-out itself still succeeds)
- shortfall > 0 -> pending debit for the full shortfall (not capped at the
                   current balance)

CONCURRENCY: Clock-in relies on the (employee_id, date) unique constraint.
A losing concurrent insert surfaces as IntegrityError and is translated to
DuplicateEntry. Updates to an existing record are guarded by version_id.

Audit and notification calls happen after the commit and never fail a punch.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import (
    AccumulationLimitExceeded,
    DuplicateEntry,
    DuplicateExit,
    DuplicateLunchExit,
    DuplicateLunchReturn,
    Forbidden,
    JustificationRequired,
    MissingEntry,
    MissingLunchExit,
    NotFound,
    ValidationError,
)
from ..extensions import db
from ..models import Employee, HourBankRecord, Justification, TimeClockRecord
from ..models.hour_bank import STATUS_REJECTED, TYPE_CREDIT, TYPE_DEBIT
from ..time_utils import format_date, local_now, to_iso
from ..validation import coerce_date, coerce_datetime, coerce_int
from . import audit_service, hour_bank_service, justification_service, notification_service, schedule_service
from .concurrency import lock_employee
from .time_calc import (
    compute_daily_totals,
    earliest_entry_time,
    late_minutes,
    lunch_late_minutes,
)


POLICY_FLAG = "flag"
POLICY_REQUIRE = "require_justification"

PUNCH_FIELDS = ("entry_time", "lunch_exit_time", "lunch_return_time", "exit_time")
EDITABLE_FIELDS = set(PUNCH_FIELDS) | {"justification_id"}

MAX_PAGE_SIZE = 200


@dataclass
class PunchResult:
    record: TimeClockRecord
    punch_type: str
    requires_justification: bool = False
    justifications: list = field(default_factory=list)
    ledger: list = field(default_factory=list)

    def to_dict(self) -> dict:
        payload = {
            "record": self.record.to_dict(),
            "punch_type": self.punch_type,
            "requires_justification": self.requires_justification,
            "ledger": self.ledger,
        }
        if self.requires_justification:
            payload["justifications"] = [j.to_dict() for j in self.justifications]
        return payload


def _late_policy() -> str:
    policy = current_app.config.get("LATE_ARRIVAL_POLICY") or POLICY_FLAG
    return policy if policy in (POLICY_FLAG, POLICY_REQUIRE) else POLICY_FLAG


def _get_employee(employee_id: int) -> Employee:
    employee = db.session.get(Employee, employee_id)
    if employee is None or not employee.is_active:
        raise NotFound("Employee not found", employee_id=employee_id)
    return employee


def _get_day_record(employee_id: int, date_str: str) -> TimeClockRecord | None:
    return db.session.query(TimeClockRecord).filter_by(employee_id=employee_id, date=date_str).first()


def _resolve_justification(justification_id) -> Justification | None:
    if justification_id in (None, ""):
        return None
    return justification_service.get_active(justification_id)


def _attach_justification(record: TimeClockRecord, justification: Justification | None) -> None:
    if justification is not None:
        record.justification_id = justification.id
        record.justification = justification.reason


def _require_after(previous: datetime | None, current: datetime, label: str) -> None:
    if previous is not None and current < previous:
        raise ValidationError(f"{label} cannot be earlier than the previous punch", previous=to_iso(previous))


def _after_punch(employee: Employee, record: TimeClockRecord, punch_type: str, actor_id: int, metadata: dict) -> None:
    audit_service.record(
        action=f"timeclock_{punch_type}",
        entity_type="timeclock",
        entity_id=record.id,
        actor_id=actor_id,
        target_id=employee.id,
        description=f"{punch_type.replace('_', ' ').capitalize()} punch on {record.date}",
        metadata=metadata,
    )
    notification_service.notify_punch(employee, record, punch_type)


# -- Derived fields and ledger regeneration --

def _recompute(record: TimeClockRecord, employee: Employee) -> None:
    """Rebuild every derived field from the punches currently on the record."""
    day = datetime.strptime(record.date, "%Y-%m-%d").date()
    window = schedule_service.resolve(employee.work_schedule, day)

    if record.entry_time is not None and window is not None:
        record.late_minutes = late_minutes(record.entry_time, window.start_on(day), employee.late_tolerance)
    elif record.entry_time is not None:
        record.late_minutes = 0
    else:
        record.late_minutes = None

    if record.lunch_exit_time is not None and record.lunch_return_time is not None:
        record.lunch_late_minutes = lunch_late_minutes(
            record.lunch_exit_time, record.lunch_return_time, employee.lunch_break_hours
        )
    else:
        record.lunch_late_minutes = None

    if record.entry_time is not None and record.exit_time is not None:
        totals = compute_daily_totals(
            day=day,
            entry=record.entry_time,
            exit=record.exit_time,
            lunch_exit=record.lunch_exit_time,
            lunch_return=record.lunch_return_time,
            schedule=employee.work_schedule,
            lunch_break_hours=employee.lunch_break_hours,
            late_tolerance=employee.late_tolerance,
        )
        record.total_worked_hours = totals.total_worked_hours
        record.scheduled_hours = totals.scheduled_hours
        record.overtime_hours = totals.overtime_hours
        record.negative_hours = totals.negative_hours
    else:
        record.total_worked_hours = None
        record.scheduled_hours = None
        record.overtime_hours = None
        record.negative_hours = None


def _linked_entry(record: TimeClockRecord, entry_type: str) -> HourBankRecord | None:
    """The live generated entry of one type, by back-reference or by tag."""
    linked_id = record.hour_bank_credit_id if entry_type == TYPE_CREDIT else record.hour_bank_debit_id
    if linked_id is not None:
        entry = db.session.get(HourBankRecord, linked_id)
        if entry is not None and entry.status != STATUS_REJECTED:
            return entry
    return (
        db.session.query(HourBankRecord)
        .filter(
            HourBankRecord.time_clock_record_id == record.id,
            HourBankRecord.type == entry_type,
            HourBankRecord.status != STATUS_REJECTED,
        )
        .order_by(HourBankRecord.id.desc())
        .first()
    )


def _set_link(record: TimeClockRecord, entry_type: str, entry_id: int | None) -> None:
    if entry_type == TYPE_CREDIT:
        record.hour_bank_credit_id = entry_id
    else:
        record.hour_bank_debit_id = entry_id


def _sync_ledger(record: TimeClockRecord, employee: Employee, actor_id: int) -> list[dict]:
    """
    Make the generated ledger entries match the record's current totals.

    An existing entry whose type and hours still match is kept; otherwise it
    is superseded (rejected by actor_id) and a fresh pending entry proposed.
    Runs inside the caller's transaction.
    """
    events: list[dict] = []
    lock_employee(employee.id)

    wanted = {
        TYPE_CREDIT: record.overtime_hours if (record.overtime_hours or 0) > hour_bank_service.EPSILON else None,
        TYPE_DEBIT: record.negative_hours if (record.negative_hours or 0) > hour_bank_service.EPSILON else None,
    }

    for entry_type, hours in wanted.items():
        existing = _linked_entry(record, entry_type)
        if existing is not None and hours is not None and abs(existing.hours - hours) < hour_bank_service.EPSILON:
            _set_link(record, entry_type, existing.id)
            events.append({"action": "kept", "type": entry_type, "id": existing.id, "hours": existing.hours})
            continue

        if existing is not None:
            hour_bank_service.supersede(existing, actor_id=actor_id)
            events.append({"action": "superseded", "type": entry_type, "id": existing.id, "hours": existing.hours})
        _set_link(record, entry_type, None)

        if hours is None:
            continue

        if entry_type == TYPE_CREDIT:
            try:
                hour_bank_service.check_accumulation(employee.id, hours)
            except AccumulationLimitExceeded as e:
                current_app.logger.warning(
                    "Skipped overtime credit of %.2fh for employee %s on %s: %s",
                    hours, employee.id, record.date, e.message,
                )
                events.append({"action": "skipped", "type": entry_type, "hours": hours, **e.to_dict()})
                continue
            reason = f"Overtime on {record.date} ({hours:.2f}h) from time clock"
        else:
            reason = f"Negative hours on {record.date} ({hours:.2f}h) from time clock"

        entry = hour_bank_service.add_clock_entry(
            employee_id=employee.id,
            date=record.date,
            type=entry_type,
            hours=hours,
            reason=reason,
            created_by=actor_id,
            time_clock_record_id=record.id,
        )
        _set_link(record, entry_type, entry.id)
        events.append({"action": "created", "type": entry_type, "id": entry.id, "hours": hours})

    return events


# -- Punches --

def clock_in(*, employee_id: int, actor_id: int, at: datetime | None = None, justification_id=None) -> PunchResult:
    """
    First punch of the day.

    Lateness is computed immediately. Under the "flag" policy a late entry is
    accepted and the result says whether a justification is expected; under
    "require_justification" it is refused until one is supplied.
    """
    employee = _get_employee(employee_id)
    now = at or local_now()
    day = now.date()
    date_str = format_date(day)

    existing = _get_day_record(employee.id, date_str)
    if existing is not None and existing.entry_time is not None:
        raise DuplicateEntry("Entry already recorded for today", date=date_str, record_id=existing.id)

    window = schedule_service.require_window(employee, day)
    scheduled_start = window.start_on(day)

    if current_app.config.get("ENFORCE_EARLIEST_ENTRY"):
        earliest = earliest_entry_time(scheduled_start, employee.late_tolerance)
        if now < earliest:
            raise ValidationError(
                "Too early to clock in",
                earliest_entry=to_iso(earliest),
                scheduled_start=window.start_time,
            )

    late = late_minutes(now, scheduled_start, employee.late_tolerance)
    justification = _resolve_justification(justification_id)

    catalog = []
    if late > 0 and justification is None:
        catalog = justification_service.list_active()
        if catalog and _late_policy() == POLICY_REQUIRE:
            raise JustificationRequired(
                "A justification is required for a late entry",
                late_minutes=late,
                justifications=[j.to_dict() for j in catalog],
            )

    record = existing or TimeClockRecord(employee_id=employee.id, date=date_str)
    record.entry_time = now
    record.late_minutes = late
    _attach_justification(record, justification)

    try:
        db.session.add(record)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise DuplicateEntry("Entry already recorded for today", date=date_str)

    _after_punch(employee, record, "entry", actor_id, {"late_minutes": late, "entry_time": to_iso(now)})

    return PunchResult(
        record=record,
        punch_type="entry",
        requires_justification=bool(catalog),
        justifications=catalog,
    )


def _require_open_record(employee_id: int, date_str: str) -> TimeClockRecord:
    record = _get_day_record(employee_id, date_str)
    if record is None or record.entry_time is None:
        raise MissingEntry("No entry recorded for today", date=date_str)
    return record


def clock_out_lunch(*, employee_id: int, actor_id: int, at: datetime | None = None) -> PunchResult:
    employee = _get_employee(employee_id)
    now = at or local_now()
    date_str = format_date(now.date())

    record = _require_open_record(employee.id, date_str)
    if record.exit_time is not None:
        raise DuplicateExit("Exit already recorded for today", date=date_str)
    if record.lunch_exit_time is not None:
        raise DuplicateLunchExit("Lunch exit already recorded for today", date=date_str)
    _require_after(record.entry_time, now, "Lunch exit")

    record.lunch_exit_time = now
    db.session.commit()

    _after_punch(employee, record, "lunch_exit", actor_id, {"lunch_exit_time": to_iso(now)})
    return PunchResult(record=record, punch_type="lunch_exit")


def clock_in_lunch(*, employee_id: int, actor_id: int, at: datetime | None = None) -> PunchResult:
    employee = _get_employee(employee_id)
    now = at or local_now()
    date_str = format_date(now.date())

    record = _require_open_record(employee.id, date_str)
    if record.exit_time is not None:
        raise DuplicateExit("Exit already recorded for today", date=date_str)
    if record.lunch_exit_time is None:
        raise MissingLunchExit("No lunch exit recorded for today", date=date_str)
    if record.lunch_return_time is not None:
        raise DuplicateLunchReturn("Lunch return already recorded for today", date=date_str)
    _require_after(record.lunch_exit_time, now, "Lunch return")

    record.lunch_return_time = now
    record.lunch_late_minutes = lunch_late_minutes(record.lunch_exit_time, now, employee.lunch_break_hours)
    db.session.commit()

    _after_punch(
        employee, record, "lunch_return", actor_id,
        {"lunch_return_time": to_iso(now), "lunch_late_minutes": record.lunch_late_minutes},
    )
    return PunchResult(record=record, punch_type="lunch_return")


def clock_out(*, employee_id: int, actor_id: int, at: datetime | None = None, justification_id=None) -> PunchResult:
    """
    Final punch: derive the day's totals and propose ledger entries.

    Everything, the punch and its generated entries, commits together.
    """
    employee = _get_employee(employee_id)
    now = at or local_now()
    date_str = format_date(now.date())

    record = _require_open_record(employee.id, date_str)
    if record.exit_time is not None:
        raise DuplicateExit("Exit already recorded for today", date=date_str)
    _require_after(record.lunch_return_time or record.lunch_exit_time or record.entry_time, now, "Exit")

    justification = _resolve_justification(justification_id)

    totals = compute_daily_totals(
        day=now.date(),
        entry=record.entry_time,
        exit=now,
        lunch_exit=record.lunch_exit_time,
        lunch_return=record.lunch_return_time,
        schedule=employee.work_schedule,
        lunch_break_hours=employee.lunch_break_hours,
        late_tolerance=employee.late_tolerance,
    )

    catalog = []
    if totals.negative_hours > hour_bank_service.EPSILON and justification is None and record.justification_id is None:
        catalog = justification_service.list_active()
        if catalog and _late_policy() == POLICY_REQUIRE:
            raise JustificationRequired(
                "A justification is required when leaving before completing the schedule",
                negative_hours=round(totals.negative_hours, 2),
                justifications=[j.to_dict() for j in catalog],
            )

    try:
        record.exit_time = now
        _attach_justification(record, justification)
        _recompute(record, employee)
        ledger = _sync_ledger(record, employee, actor_id)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    for event in ledger:
        if event["action"] == "skipped":
            audit_service.record(
                action="hourbank_auto_credit_skipped",
                entity_type="timeclock",
                entity_id=record.id,
                actor_id=actor_id,
                target_id=employee.id,
                description=f"Overtime credit of {event['hours']:.2f}h skipped: accumulation limit reached",
                metadata=event,
            )

    _after_punch(employee, record, "exit", actor_id, {"exit_time": to_iso(now), **totals.to_dict()})

    return PunchResult(
        record=record,
        punch_type="exit",
        requires_justification=bool(catalog),
        justifications=catalog,
        ledger=ledger,
    )


# -- Corrections --

def edit_record(*, actor_scope, record_id: int, changes: dict) -> PunchResult:
    """
    Admin/manager correction of a day's punches.

    Any punch may be set or cleared, in any order. Derived fields and the
    generated ledger entries are then rebuilt from scratch. The edit is one
    transaction: any failure leaves the record and ledger untouched.
    """
    actor_scope.require_manager()
    if not isinstance(changes, dict) or not changes:
        raise ValidationError("No changes supplied")

    unknown = sorted(k for k in changes if k not in EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Fields cannot be edited: {', '.join(unknown)}", fields=unknown)

    record = db.session.get(TimeClockRecord, record_id)
    if record is None:
        raise NotFound("Time clock record not found", record_id=record_id)
    employee = db.session.get(Employee, record.employee_id)
    actor_scope.require_access(employee)

    parsed = {name: coerce_datetime(changes[name], name) for name in PUNCH_FIELDS if name in changes}
    justification = None
    if "justification_id" in changes and changes["justification_id"] not in (None, ""):
        justification = justification_service.get_active(changes["justification_id"])

    before = record.to_dict()

    try:
        for name, value in parsed.items():
            setattr(record, name, value)
        if "justification_id" in changes:
            if justification is None:
                record.justification_id = None
                record.justification = None
            else:
                _attach_justification(record, justification)

        _validate_punch_sequence(record)
        _recompute(record, employee)
        ledger = _sync_ledger(record, employee, actor_scope.actor_id)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    audit_service.record(
        action="timeclock_edited",
        entity_type="timeclock",
        entity_id=record.id,
        actor_id=actor_scope.actor_id,
        target_id=employee.id,
        description=f"Time clock record for {record.date} corrected",
        metadata={"before": before, "changes": sorted(changes), "ledger": ledger},
    )
    return PunchResult(record=record, punch_type="edit", ledger=ledger)


def _validate_punch_sequence(record: TimeClockRecord) -> None:
    if record.exit_time is not None and record.entry_time is None:
        raise ValidationError("exit_time requires entry_time")
    if record.lunch_exit_time is not None and record.entry_time is None:
        raise ValidationError("lunch_exit_time requires entry_time")
    if record.lunch_return_time is not None and record.lunch_exit_time is None:
        raise ValidationError("lunch_return_time requires lunch_exit_time")

    previous_name, previous = None, None
    for name in PUNCH_FIELDS:
        value = getattr(record, name)
        if value is None:
            continue
        if previous is not None and value < previous:
            raise ValidationError(f"{name} cannot be earlier than {previous_name}")
        previous_name, previous = name, value


# -- Reads --

def get_today(*, employee_id: int) -> dict:
    employee = _get_employee(employee_id)
    today = local_now().date()
    record = _get_day_record(employee.id, format_date(today))
    window = schedule_service.resolve(employee.work_schedule, today)
    return {
        "date": format_date(today),
        "state": record.state if record else "NOT_STARTED",
        "record": record.to_dict() if record else None,
        "schedule": {"start_time": window.start_time, "end_time": window.end_time} if window else None,
    }


def list_records(
    *,
    actor_scope,
    employee_id: int | None = None,
    department: str | None = None,
    start_date=None,
    end_date=None,
    page=1,
    limit=50,
) -> dict:
    """Records visible to the actor, newest day first, with a pagination envelope."""
    page = coerce_int(page, "page", minimum=1)
    limit = coerce_int(limit, "limit", minimum=1, maximum=MAX_PAGE_SIZE)

    query = db.session.query(TimeClockRecord).join(Employee, TimeClockRecord.employee_id == Employee.id)

    if employee_id is not None:
        employee = db.session.get(Employee, employee_id)
        if employee is None:
            raise NotFound("Employee not found", employee_id=employee_id)
        actor_scope.require_access(employee)
        query = query.filter(TimeClockRecord.employee_id == employee.id)
    else:
        query = actor_scope.filter_employees(query)
        if department:
            if actor_scope.kind == "department" and department != actor_scope.department:
                raise Forbidden("Access denied for this department", department=department)
            query = query.filter(Employee.department == department)

    if start_date:
        query = query.filter(TimeClockRecord.date >= coerce_date(start_date, "start_date"))
    if end_date:
        query = query.filter(TimeClockRecord.date <= coerce_date(end_date, "end_date"))

    total = query.count()
    records = (
        query.order_by(TimeClockRecord.date.desc(), TimeClockRecord.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "records": [r.to_dict() for r in records],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": (total + limit - 1) // limit,
        },
    }
