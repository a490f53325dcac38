# Overview: Service-layer operations for the employee directory; overtime caps, exceptions and schedules.

"""
User Directory

Reads and the narrow set of updates the time-clock and hour-bank engines
depend on. Writes go through an AccessScope: managers may only touch
employees in their own department, admins anyone.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy.exc import IntegrityError

from ..errors import Forbidden, NotFound, ValidationError
from ..extensions import db
from ..models import Employee, OvertimeException, ROLES
from ..validation import coerce_hours, coerce_int
from . import audit_service, schedule_service, session_service, settings_service
from .access_service import SCOPE_DEPARTMENT


SCHEDULE_FIELDS = ("work_schedule", "lunch_break_hours", "late_tolerance")


def find_by_id(employee_id: int) -> Optional[Employee]:
    return db.session.get(Employee, employee_id)


def get_employee(employee_id: int) -> Employee:
    employee = find_by_id(employee_id)
    if employee is None:
        raise NotFound("Employee not found", employee_id=employee_id)
    return employee


def find_by_department(department: str, *, active_only: bool = True) -> list[Employee]:
    query = db.session.query(Employee).filter(Employee.department == department)
    if active_only:
        query = query.filter(Employee.is_active.is_(True))
    return query.order_by(Employee.name.asc()).all()


def list_employees(*, actor_scope, department: str | None = None) -> list[Employee]:
    if department and actor_scope.is_manager:
        if actor_scope.kind == SCOPE_DEPARTMENT and department != actor_scope.department:
            raise Forbidden("Access denied for this department", department=department)
        return find_by_department(department, active_only=False)

    query = actor_scope.filter_employees(db.session.query(Employee))
    if department:
        query = query.filter(Employee.department == department)
    return query.order_by(Employee.name.asc()).all()


def _get_for_update(actor_scope, employee_id: int) -> Employee:
    actor_scope.require_manager()
    employee = get_employee(employee_id)
    actor_scope.require_access(employee)
    return employee


def effective_overtime_limit(employee: Employee, month: int, year: int) -> float:
    """
    Monthly overtime cap for one employee.

    Base is the employee's own limit when set (0 included), otherwise the
    company default; plus any exception hours for that month/year.
    """
    if employee.overtime_limit is not None:
        base = employee.overtime_limit
    else:
        base = settings_service.get_or_create_settings().default_overtime_limit

    exception = (
        db.session.query(OvertimeException)
        .filter_by(employee_id=employee.id, month=month, year=year)
        .first()
    )
    extra = exception.additional_hours if exception else 0.0
    return base + extra


def update_overtime_limit(*, actor_scope, employee_id: int, overtime_limit) -> Employee:
    """Set the monthly cap; None clears it back to the company default."""
    employee = _get_for_update(actor_scope, employee_id)
    before = employee.overtime_limit
    if overtime_limit is None:
        employee.overtime_limit = None
    else:
        employee.overtime_limit = coerce_hours(overtime_limit, "overtime_limit", allow_zero=True)
    db.session.commit()

    audit_service.record(
        action="overtime_limit_updated",
        entity_type="employee",
        entity_id=employee.id,
        actor_id=actor_scope.actor_id,
        target_id=employee.id,
        description=f"Overtime limit changed from {before} to {employee.overtime_limit}",
        metadata={"before": before, "after": employee.overtime_limit},
    )
    return employee


def upsert_overtime_exception(*, actor_scope, employee_id: int, month, year, additional_hours) -> OvertimeException:
    """
    Raise one month's cap. An existing (month, year) row is overwritten,
    so the latest write wins and duplicates cannot exist.
    """
    employee = _get_for_update(actor_scope, employee_id)
    month = coerce_int(month, "month", minimum=1, maximum=12)
    year = coerce_int(year, "year", minimum=2000, maximum=2100)
    hours = coerce_hours(additional_hours, "additional_hours", allow_zero=True)

    exception = (
        db.session.query(OvertimeException)
        .filter_by(employee_id=employee.id, month=month, year=year)
        .first()
    )
    if exception is None:
        exception = OvertimeException(employee_id=employee.id, month=month, year=year, additional_hours=hours)
        db.session.add(exception)
    else:
        exception.additional_hours = hours

    try:
        db.session.commit()
    except IntegrityError:
        # A concurrent writer inserted the same period first; overwrite it.
        db.session.rollback()
        exception = (
            db.session.query(OvertimeException)
            .filter_by(employee_id=employee.id, month=month, year=year)
            .one()
        )
        exception.additional_hours = hours
        db.session.commit()

    audit_service.record(
        action="overtime_exception_set",
        entity_type="employee",
        entity_id=employee.id,
        actor_id=actor_scope.actor_id,
        target_id=employee.id,
        description=f"Overtime exception {month:02d}/{year}: +{hours}h",
        metadata={"month": month, "year": year, "additional_hours": hours},
    )
    return exception


def remove_overtime_exception(*, actor_scope, employee_id: int, month, year) -> None:
    employee = _get_for_update(actor_scope, employee_id)
    month = coerce_int(month, "month", minimum=1, maximum=12)
    year = coerce_int(year, "year", minimum=2000, maximum=2100)

    exception = (
        db.session.query(OvertimeException)
        .filter_by(employee_id=employee.id, month=month, year=year)
        .first()
    )
    if exception is None:
        raise NotFound("Overtime exception not found", month=month, year=year)

    db.session.delete(exception)
    db.session.commit()

    audit_service.record(
        action="overtime_exception_removed",
        entity_type="employee",
        entity_id=employee.id,
        actor_id=actor_scope.actor_id,
        target_id=employee.id,
        description=f"Overtime exception {month:02d}/{year} removed",
        metadata={"month": month, "year": year},
    )


def get_work_schedule(*, actor_scope, employee_id: int) -> dict:
    employee = get_employee(employee_id)
    actor_scope.require_access(employee)
    return {
        "employee_id": employee.id,
        "work_schedule": employee.work_schedule or schedule_service.empty_schedule(),
        "lunch_break_hours": employee.lunch_break_hours,
        "late_tolerance": employee.late_tolerance,
    }


def update_work_schedule(*, actor_scope, employee_id: int, changes: dict) -> Employee:
    """
    Apply any of work_schedule, lunch_break_hours and late_tolerance.

    Every field present in ``changes`` is validated before the employee is
    touched, so a bad value leaves the stored schedule as it was.
    """
    employee = _get_for_update(actor_scope, employee_id)
    if not any(field in changes for field in SCHEDULE_FIELDS):
        raise ValidationError("work_schedule, lunch_break_hours or late_tolerance is required")

    updates = {}
    if "work_schedule" in changes:
        updates["work_schedule"] = schedule_service.normalize_schedule(changes["work_schedule"])
    if "lunch_break_hours" in changes:
        lunch = coerce_hours(changes["lunch_break_hours"], "lunch_break_hours", allow_zero=True)
        if lunch > 12:
            raise ValidationError("lunch_break_hours cannot exceed 12")
        updates["lunch_break_hours"] = lunch
    if "late_tolerance" in changes:
        updates["late_tolerance"] = coerce_int(changes["late_tolerance"], "late_tolerance", minimum=0, maximum=240)

    before = {field: getattr(employee, field) for field in updates}
    for field, value in updates.items():
        setattr(employee, field, value)
    db.session.commit()

    if "work_schedule" in updates:
        audit_service.record(
            action="work_schedule_updated",
            entity_type="employee",
            entity_id=employee.id,
            actor_id=actor_scope.actor_id,
            target_id=employee.id,
            description="Work schedule updated",
            metadata={"work_schedule": employee.work_schedule},
        )
    time_settings = {f: updates[f] for f in ("lunch_break_hours", "late_tolerance") if f in updates}
    if time_settings:
        audit_service.record(
            action="time_settings_updated",
            entity_type="employee",
            entity_id=employee.id,
            actor_id=actor_scope.actor_id,
            target_id=employee.id,
            description="Lunch break / late tolerance updated",
            metadata={"before": {f: before[f] for f in time_settings}, "after": time_settings},
        )
    return employee


def change_role(*, actor_scope, employee_id: int, role) -> Employee:
    """Admin-only role change. The employee's open sessions are revoked."""
    actor_scope.require_admin()
    if role not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(ROLES)}")
    employee = get_employee(employee_id)
    if employee.id == actor_scope.actor_id:
        raise ValidationError("You cannot change your own role")

    before = employee.role
    employee.role = role
    db.session.commit()
    session_service.revoke_all_sessions(employee.id)

    audit_service.record(
        action="employee_role_changed",
        entity_type="employee",
        entity_id=employee.id,
        actor_id=actor_scope.actor_id,
        target_id=employee.id,
        description=f"Role of {employee.name} changed from {before} to {role}",
        metadata={"before": before, "after": role},
    )
    return employee
