# Overview: Service-layer operations for the hour bank; balance fold, limit checks and status transitions.

"""
Hour-Bank Ledger

WHY: Compensatory time must be auditable. Entries are append-only; only the
status fields move (pending -> approved | rejected). The balance is never
cached: it is recomputed from the approved rows on every read.

LIMITS (company settings, 0 = unlimited):
- accumulation_limit: maximum approved balance an employee may hold.
  Checked when a credit is proposed and again when it is approved.
- usage_limit: maximum approved debit hours per calendar month.
  Checked when a debit is proposed and again when it is approved.

Limit checks run after lock_employee(), so concurrent requests for the same
employee are serialized on databases that honor SELECT ... FOR UPDATE.
Approval-time re-validation is the authoritative gate either way.

NEGATIVE BALANCE: manual debits require enough approved balance
(InsufficientBalance). Shortfall debits generated by the time clock are not
capped; approving one may drive the balance below zero, which is logged.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from flask import current_app
from sqlalchemy import func

from ..errors import (
    AccumulationLimitExceeded,
    InsufficientBalance,
    NotFound,
    UsageLimitExceeded,
    ValidationError,
)
from ..extensions import db
from ..models import Employee, HourBankRecord
from ..models.hour_bank import (
    STATUS_APPROVED,
    STATUS_PENDING,
    STATUS_REJECTED,
    TYPE_CREDIT,
    TYPE_DEBIT,
)
from ..time_utils import local_now, month_bounds, parse_date_string, utcnow
from ..validation import RECORD_STATUSES, RECORD_TYPES, coerce_choice, coerce_date, coerce_hours, coerce_int, coerce_reason
from . import audit_service, settings_service
from .concurrency import lock_employee
from .time_calc import round_hours


# Float sums of fractional hours; ignore noise below a second
EPSILON = 1e-6


@dataclass(frozen=True)
class Balance:
    employee_id: int
    total_balance: float
    available_balance: float
    pending_credit: float
    pending_debit: float

    def to_dict(self) -> dict:
        return {
            "employee_id": self.employee_id,
            "total_balance": round_hours(self.total_balance),
            "available_balance": round_hours(self.available_balance),
            "pending_credit": round_hours(self.pending_credit),
            "pending_debit": round_hours(self.pending_debit),
        }


def _sum_hours(employee_id: int, *, type: str, status: str, start: str | None = None, end: str | None = None) -> float:
    query = db.session.query(func.coalesce(func.sum(HourBankRecord.hours), 0.0)).filter(
        HourBankRecord.employee_id == employee_id,
        HourBankRecord.type == type,
        HourBankRecord.status == status,
    )
    if start:
        query = query.filter(HourBankRecord.date >= start)
    if end:
        query = query.filter(HourBankRecord.date <= end)
    return float(query.scalar() or 0.0)


def get_balance(employee_id: int) -> Balance:
    """Fold over the ledger: approved credits minus approved debits."""
    approved_credit = _sum_hours(employee_id, type=TYPE_CREDIT, status=STATUS_APPROVED)
    approved_debit = _sum_hours(employee_id, type=TYPE_DEBIT, status=STATUS_APPROVED)
    total = approved_credit - approved_debit
    return Balance(
        employee_id=employee_id,
        total_balance=total,
        available_balance=total,
        pending_credit=_sum_hours(employee_id, type=TYPE_CREDIT, status=STATUS_PENDING),
        pending_debit=_sum_hours(employee_id, type=TYPE_DEBIT, status=STATUS_PENDING),
    )


def get_limits() -> dict:
    settings = settings_service.get_or_create_settings()
    return {
        "accumulation_limit": settings.default_accumulation_limit or 0.0,
        "usage_limit": settings.default_usage_limit or 0.0,
    }


def monthly_usage(employee_id: int, date_str: str) -> float:
    """Approved debit hours in the calendar month containing date_str."""
    day = parse_date_string(date_str)
    start, end = month_bounds(day.year, day.month)
    return _sum_hours(employee_id, type=TYPE_DEBIT, status=STATUS_APPROVED, start=start, end=end)


def check_accumulation(employee_id: int, hours: float, *, balance: Balance | None = None) -> None:
    limit = get_limits()["accumulation_limit"]
    if limit <= 0:
        return
    balance = balance or get_balance(employee_id)
    if balance.total_balance + hours > limit + EPSILON:
        raise AccumulationLimitExceeded(
            f"Credit would exceed the accumulation limit of {limit:g}h",
            current_balance=round_hours(balance.total_balance),
            limit=limit,
            requested=round_hours(hours),
        )


def check_usage(employee_id: int, date_str: str, hours: float) -> None:
    limit = get_limits()["usage_limit"]
    if limit <= 0:
        return
    used = monthly_usage(employee_id, date_str)
    if used + hours > limit + EPSILON:
        raise UsageLimitExceeded(
            f"Debit would exceed the monthly usage limit of {limit:g}h",
            current_usage=round_hours(used),
            limit=limit,
            requested=round_hours(hours),
        )


def check_limits(*, employee_id: int, hours: float, type: str) -> dict:
    """
    Dry run of the proposal checks, for clients that want to warn before submit.

    Never raises for a limit breach; reports it in the result instead.
    """
    type = coerce_choice(type, "type", RECORD_TYPES)
    hours = coerce_hours(hours)
    today = local_now().date().strftime("%Y-%m-%d")

    balance = get_balance(employee_id)
    limits = get_limits()
    result = {
        "type": type,
        "requested": round_hours(hours),
        "current_balance": round_hours(balance.total_balance),
        "accumulation_limit": limits["accumulation_limit"],
        "usage_limit": limits["usage_limit"],
        "monthly_usage": round_hours(monthly_usage(employee_id, today)),
        "can_proceed": True,
        "code": None,
    }

    try:
        if type == TYPE_CREDIT:
            check_accumulation(employee_id, hours, balance=balance)
        else:
            if balance.available_balance + EPSILON < hours:
                raise InsufficientBalance(
                    "Insufficient hour-bank balance",
                    available=round_hours(balance.available_balance),
                    requested=round_hours(hours),
                )
            check_usage(employee_id, today, hours)
    except (AccumulationLimitExceeded, InsufficientBalance, UsageLimitExceeded) as e:
        result["can_proceed"] = False
        result["code"] = e.code
        result["message"] = e.message
    return result


def balance_summary(employee: Employee) -> dict:
    """Balance plus limit usage percentages, clamped to [0, 100]."""
    balance = get_balance(employee.id)
    limits = get_limits()
    today = local_now().date()
    used = monthly_usage(employee.id, today.strftime("%Y-%m-%d"))

    def _pct(value: float, limit: float) -> Optional[float]:
        if limit <= 0:
            return None
        return round(min(100.0, max(0.0, value / limit * 100.0)), 1)

    summary = balance.to_dict()
    summary.update({
        "employee": employee.to_summary(),
        "accumulation_limit": limits["accumulation_limit"],
        "usage_limit": limits["usage_limit"],
        "monthly_usage": round_hours(used),
        "accumulation_percentage": _pct(balance.total_balance, limits["accumulation_limit"]),
        "usage_percentage": _pct(used, limits["usage_limit"]),
    })
    return summary


def _load_employee(actor_scope, employee_id) -> Employee:
    if employee_id is None:
        raise ValidationError("employee_id is required")
    employee_id = coerce_int(employee_id, "employee_id", minimum=1)
    employee = lock_employee(employee_id)
    if employee is None:
        raise NotFound("Employee not found", employee_id=employee_id)
    actor_scope.require_access(employee)
    return employee


def propose_credit(
    *,
    actor_scope,
    employee_id: int,
    date,
    hours,
    reason,
    overtime_request_id: int | None = None,
) -> HourBankRecord:
    """
    Insert a pending credit.

    Employees may only credit themselves; managers within their department;
    admins anyone. Rejected with AccumulationLimitExceeded (no mutation) when
    the approved balance plus hours would pass a nonzero accumulation limit.
    """
    hours = coerce_hours(hours)
    date = coerce_date(date)
    reason = coerce_reason(reason)

    employee = _load_employee(actor_scope, employee_id)
    check_accumulation(employee.id, hours)

    record = HourBankRecord(
        employee_id=employee.id,
        date=date,
        type=TYPE_CREDIT,
        hours=hours,
        reason=reason,
        status=STATUS_PENDING,
        created_by=actor_scope.actor_id,
        overtime_request_id=overtime_request_id,
    )
    db.session.add(record)
    db.session.commit()

    audit_service.record(
        action="hourbank_credit_created",
        entity_type="hourbank",
        entity_id=record.id,
        actor_id=actor_scope.actor_id,
        target_id=employee.id,
        description=f"Credit of {hours:.2f}h proposed for {date}",
        metadata={"hours": hours, "date": date, "reason": reason},
    )
    return record


def propose_debit(*, actor_scope, employee_id: int, date, hours, reason) -> HourBankRecord:
    """
    Insert a manual debit (admin/manager only).

    Manual debits are created approved with the creator as approver, so they
    must pass the balance floor and the monthly usage limit up front.
    """
    actor_scope.require_manager()
    hours = coerce_hours(hours)
    date = coerce_date(date)
    reason = coerce_reason(reason)

    employee = _load_employee(actor_scope, employee_id)

    balance = get_balance(employee.id)
    if balance.available_balance + EPSILON < hours:
        raise InsufficientBalance(
            "Insufficient hour-bank balance",
            available=round_hours(balance.available_balance),
            requested=round_hours(hours),
        )
    check_usage(employee.id, date, hours)

    record = HourBankRecord(
        employee_id=employee.id,
        date=date,
        type=TYPE_DEBIT,
        hours=hours,
        reason=reason,
        status=STATUS_APPROVED,
        created_by=actor_scope.actor_id,
        approved_by=actor_scope.actor_id,
        approved_at=utcnow(),
    )
    db.session.add(record)
    db.session.commit()

    audit_service.record(
        action="hourbank_debit_created",
        entity_type="hourbank",
        entity_id=record.id,
        actor_id=actor_scope.actor_id,
        target_id=employee.id,
        description=f"Debit of {hours:.2f}h recorded for {date}",
        metadata={"hours": hours, "date": date, "reason": reason},
    )
    return record


def set_status(*, actor_scope, record_id: int, status) -> HourBankRecord:
    """
    Approve or reject a pending entry (admin/manager within scope).

    Approval re-validates the limit relevant to the entry type, since the
    balance may have moved since the entry was proposed.
    """
    actor_scope.require_manager()
    status = coerce_choice(status, "status", (STATUS_APPROVED, STATUS_REJECTED))

    record = db.session.get(HourBankRecord, record_id)
    if record is None:
        raise NotFound("Hour bank record not found", record_id=record_id)

    employee = _load_employee(actor_scope, record.employee_id)
    # Re-read under the employee lock
    db.session.refresh(record)

    if record.status != STATUS_PENDING:
        raise ValidationError(
            f"Only pending records can change status (current: {record.status})",
            current_status=record.status,
        )

    now = utcnow()
    if status == STATUS_APPROVED:
        if record.type == TYPE_CREDIT:
            check_accumulation(employee.id, record.hours)
        else:
            check_usage(employee.id, record.date, record.hours)
            projected = get_balance(employee.id).total_balance - record.hours
            if projected < 0:
                current_app.logger.warning(
                    "Approving debit %s drives employee %s balance negative (%.2fh)",
                    record.id, employee.id, projected,
                )
        record.status = STATUS_APPROVED
        record.approved_by = actor_scope.actor_id
        record.approved_at = now
        record.rejected_by = None
        record.rejected_at = None
    else:
        record.status = STATUS_REJECTED
        record.rejected_by = actor_scope.actor_id
        record.rejected_at = now
        record.approved_by = None
        record.approved_at = None

    db.session.commit()

    audit_service.record(
        action=f"hourbank_{status}",
        entity_type="hourbank",
        entity_id=record.id,
        actor_id=actor_scope.actor_id,
        target_id=employee.id,
        description=f"{record.type.capitalize()} of {record.hours:.2f}h {status}",
        metadata={"type": record.type, "hours": record.hours, "date": record.date},
    )
    return record


def list_records(
    *,
    actor_scope,
    employee_id: int | None = None,
    start_date=None,
    end_date=None,
    type=None,
    status=None,
) -> list[HourBankRecord]:
    """
    Ledger rows visible to the actor, newest first.

    Without employee_id, employees see their own rows, managers their
    department, admins everything.
    """
    query = db.session.query(HourBankRecord).join(Employee, HourBankRecord.employee_id == Employee.id)

    if employee_id is not None:
        employee = db.session.get(Employee, employee_id)
        if employee is None:
            raise NotFound("Employee not found", employee_id=employee_id)
        actor_scope.require_access(employee)
        query = query.filter(HourBankRecord.employee_id == employee.id)
    else:
        query = actor_scope.filter_employees(query)

    if start_date:
        query = query.filter(HourBankRecord.date >= coerce_date(start_date, "start_date"))
    if end_date:
        query = query.filter(HourBankRecord.date <= coerce_date(end_date, "end_date"))
    if type:
        query = query.filter(HourBankRecord.type == coerce_choice(type, "type", RECORD_TYPES))
    if status:
        query = query.filter(HourBankRecord.status == coerce_choice(status, "status", RECORD_STATUSES))

    return query.order_by(HourBankRecord.date.desc(), HourBankRecord.id.desc()).all()


# -- Entries generated by the time clock (caller owns the transaction) --

def add_clock_entry(
    *,
    employee_id: int,
    date: str,
    type: str,
    hours: float,
    reason: str,
    created_by: int,
    time_clock_record_id: int,
) -> HourBankRecord:
    """Pending entry tagged to a punch record. Flushed, not committed."""
    record = HourBankRecord(
        employee_id=employee_id,
        date=date,
        type=type,
        hours=hours,
        reason=reason,
        status=STATUS_PENDING,
        created_by=created_by,
        time_clock_record_id=time_clock_record_id,
    )
    db.session.add(record)
    db.session.flush()
    current_app.logger.info(
        "Auto %s of %.2fh for employee %s on %s (time clock record %s)",
        type, hours, employee_id, date, time_clock_record_id,
    )
    return record


def supersede(record: HourBankRecord, *, actor_id: int, at: datetime | None = None) -> None:
    """Retire a generated entry whose source punches were edited. Not committed."""
    record.status = STATUS_REJECTED
    record.rejected_by = actor_id
    record.rejected_at = at or utcnow()
    record.approved_by = None
    record.approved_at = None
