# Overview: Service-layer operations for overtime requests; monthly caps and approval credits.

"""
Overtime Request Workflow

An employee (or a manager on their behalf) submits a block of extra hours
worked on a given day. Submissions count against a monthly cap:

    cap = (employee.overtime_limit if set else company default)
          + that month's OvertimeException.additional_hours

Approved and pending requests both count, so a month cannot be overbooked
while approvals are outstanding.

Approval credits the hour bank exactly once: an approved credit linked by
overtime_request_id. The link is existence-checked before insert, so
retried or repeated approvals never create a second credit.
"""

from __future__ import annotations

from datetime import date as date_type

from sqlalchemy import func

from ..errors import MonthlyLimitExceeded, NotFound, ValidationError
from ..extensions import db
from ..models import Employee, HourBankRecord, OvertimeRequest
from ..models.hour_bank import STATUS_APPROVED, STATUS_PENDING, STATUS_REJECTED, TYPE_CREDIT
from ..time_utils import local_now, month_bounds, parse_date_string, utcnow
from ..validation import RECORD_STATUSES, coerce_choice, coerce_date, coerce_hhmm, coerce_reason
from . import audit_service, employee_service, hour_bank_service
from .concurrency import lock_employee
from .time_calc import overtime_request_hours, round_hours


WARNING_THRESHOLD = 80.0
ALERT_THRESHOLD = 100.0


def _get_request(request_id: int) -> OvertimeRequest:
    request = db.session.get(OvertimeRequest, request_id)
    if request is None:
        raise NotFound("Overtime request not found", request_id=request_id)
    return request


def month_hours(employee_id: int, year: int, month: int, *, statuses=(STATUS_APPROVED, STATUS_PENDING)) -> float:
    start, end = month_bounds(year, month)
    total = (
        db.session.query(func.coalesce(func.sum(OvertimeRequest.hours), 0.0))
        .filter(
            OvertimeRequest.employee_id == employee_id,
            OvertimeRequest.status.in_(statuses),
            OvertimeRequest.date >= start,
            OvertimeRequest.date <= end,
        )
        .scalar()
    )
    return float(total or 0.0)


def submit(*, actor_scope, employee_id: int, date, start_time, end_time, reason) -> OvertimeRequest:
    date = coerce_date(date)
    start_time = coerce_hhmm(start_time, "start_time")
    end_time = coerce_hhmm(end_time, "end_time")
    reason = coerce_reason(reason)

    hours = overtime_request_hours(start_time, end_time)
    if hours <= 0:
        raise ValidationError("end_time must differ from start_time")

    employee = lock_employee(employee_id)
    if employee is None:
        raise NotFound("Employee not found", employee_id=employee_id)
    actor_scope.require_access(employee)

    day = parse_date_string(date)
    limit = employee_service.effective_overtime_limit(employee, day.month, day.year)
    current = month_hours(employee.id, day.year, day.month)
    if current + hours > limit + hour_bank_service.EPSILON:
        raise MonthlyLimitExceeded(
            f"Monthly overtime limit of {limit:g}h would be exceeded",
            current=round_hours(current),
            requested=round_hours(hours),
            limit=limit,
        )

    request = OvertimeRequest(
        employee_id=employee.id,
        date=date,
        start_time=start_time,
        end_time=end_time,
        hours=hours,
        reason=reason,
        status=STATUS_PENDING,
        created_by=actor_scope.actor_id,
    )
    db.session.add(request)
    db.session.commit()

    audit_service.record(
        action="overtime_created",
        entity_type="overtime",
        entity_id=request.id,
        actor_id=actor_scope.actor_id,
        target_id=employee.id,
        description=f"Overtime request of {hours:.2f}h for {date}",
        metadata={"date": date, "start_time": start_time, "end_time": end_time, "hours": hours},
    )
    return request


def _existing_credit(request: OvertimeRequest) -> HourBankRecord | None:
    return (
        db.session.query(HourBankRecord)
        .filter(
            HourBankRecord.overtime_request_id == request.id,
            HourBankRecord.type == TYPE_CREDIT,
            HourBankRecord.status != STATUS_REJECTED,
        )
        .first()
    )


def _ensure_credit(request: OvertimeRequest, actor_id: int) -> tuple[HourBankRecord, bool]:
    """Approved credit for the request; (credit, created). Flushed, not committed."""
    existing = _existing_credit(request)
    if existing is not None:
        return existing, False

    hour_bank_service.check_accumulation(request.employee_id, request.hours)
    now = utcnow()
    credit = HourBankRecord(
        employee_id=request.employee_id,
        date=request.date,
        type=TYPE_CREDIT,
        hours=request.hours,
        reason=f"Overtime request #{request.id}: {request.reason}",
        status=STATUS_APPROVED,
        created_by=actor_id,
        approved_by=actor_id,
        approved_at=now,
        overtime_request_id=request.id,
    )
    db.session.add(credit)
    db.session.flush()
    return credit, True


def set_status(*, actor_scope, request_id: int, status) -> OvertimeRequest:
    """
    Approve or reject a request (admin/manager within scope).

    Re-approving an approved request is a no-op that still guarantees the
    single linked credit. Any other transition out of a final state is a
    ValidationError.
    """
    actor_scope.require_manager()
    status = coerce_choice(status, "status", (STATUS_APPROVED, STATUS_REJECTED))

    request = _get_request(request_id)
    employee = lock_employee(request.employee_id)
    actor_scope.require_access(employee)
    db.session.refresh(request)

    if status == STATUS_APPROVED and request.status == STATUS_APPROVED:
        _credit, created = _ensure_credit(request, actor_scope.actor_id)
        if created:
            db.session.commit()
        return request

    if request.status != STATUS_PENDING:
        raise ValidationError(
            f"Only pending requests can change status (current: {request.status})",
            current_status=request.status,
        )

    now = utcnow()
    credit = None
    try:
        if status == STATUS_APPROVED:
            credit, _created = _ensure_credit(request, actor_scope.actor_id)
            request.status = STATUS_APPROVED
            request.approved_by = actor_scope.actor_id
            request.approved_at = now
            request.rejected_by = None
            request.rejected_at = None
        else:
            request.status = STATUS_REJECTED
            request.rejected_by = actor_scope.actor_id
            request.rejected_at = now
            request.approved_by = None
            request.approved_at = None
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    audit_service.record(
        action=f"overtime_{status}",
        entity_type="overtime",
        entity_id=request.id,
        actor_id=actor_scope.actor_id,
        target_id=employee.id,
        description=f"Overtime request of {request.hours:.2f}h for {request.date} {status}",
        metadata={"hours": request.hours, "hour_bank_record_id": credit.id if credit else None},
    )
    return request


def list_requests(*, actor_scope, employee_id: int | None = None, status=None, start_date=None, end_date=None) -> list[OvertimeRequest]:
    query = db.session.query(OvertimeRequest).join(Employee, OvertimeRequest.employee_id == Employee.id)

    if employee_id is not None:
        employee = db.session.get(Employee, employee_id)
        if employee is None:
            raise NotFound("Employee not found", employee_id=employee_id)
        actor_scope.require_access(employee)
        query = query.filter(OvertimeRequest.employee_id == employee.id)
    else:
        query = actor_scope.filter_employees(query)

    if status:
        query = query.filter(OvertimeRequest.status == coerce_choice(status, "status", RECORD_STATUSES))
    if start_date:
        query = query.filter(OvertimeRequest.date >= coerce_date(start_date, "start_date"))
    if end_date:
        query = query.filter(OvertimeRequest.date <= coerce_date(end_date, "end_date"))

    return query.order_by(OvertimeRequest.date.desc(), OvertimeRequest.id.desc()).all()


def employee_month_summary(employee: Employee, today: date_type) -> dict:
    approved = month_hours(employee.id, today.year, today.month, statuses=(STATUS_APPROVED,))
    pending = month_hours(employee.id, today.year, today.month, statuses=(STATUS_PENDING,))
    used = approved + pending
    limit = employee_service.effective_overtime_limit(employee, today.month, today.year)

    if limit > 0:
        percentage = used / limit * 100.0
    else:
        percentage = 100.0 if used > 0 else 0.0

    return {
        "employee": employee.to_summary(),
        "month": today.month,
        "year": today.year,
        "approved_hours": round_hours(approved),
        "pending_hours": round_hours(pending),
        "total_hours": round_hours(used),
        "limit": limit,
        "remaining_hours": round_hours(max(0.0, limit - used)),
        "percentage": round(percentage, 1),
        "show_warning": percentage >= WARNING_THRESHOLD,
        "show_alert": percentage >= ALERT_THRESHOLD,
    }


def current_month_summary(*, actor_scope, employee_id: int | None = None) -> dict:
    """
    Overtime used this month against the effective cap.

    With a target (or for plain employees) one summary; for managers and
    admins without a target, one summary per visible active employee.
    """
    today = local_now().date()

    if employee_id is None and not actor_scope.is_manager:
        employee_id = actor_scope.actor_id

    if employee_id is not None:
        employee = db.session.get(Employee, employee_id)
        if employee is None:
            raise NotFound("Employee not found", employee_id=employee_id)
        actor_scope.require_access(employee)
        return {"summary": employee_month_summary(employee, today)}

    employees = (
        actor_scope.filter_employees(db.session.query(Employee))
        .filter(Employee.is_active.is_(True))
        .order_by(Employee.name.asc())
        .all()
    )
    return {"summaries": [employee_month_summary(e, today) for e in employees]}
