from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


ROLE_ADMIN = "admin"
ROLE_MANAGER = "manager"
ROLE_EMPLOYEE = "employee"
ROLES = (ROLE_ADMIN, ROLE_MANAGER, ROLE_EMPLOYEE)


class Employee(db.Model):
    """
    Employee directory entry: identity, role, department and the per-person
    time rules (overtime cap, weekly schedule, lunch duration, late tolerance).

    work_schedule is a fixed 7-key mapping (monday..sunday). A null day is a
    non-working day:
        {"monday": {"start_time": "09:00", "end_time": "18:00"}, "sunday": null, ...}
    """
    __tablename__ = "employees"
    __table_args__ = (
        db.Index("ix_employees_department", "department"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(16), nullable=False, default=ROLE_EMPLOYEE)
    department = db.Column(db.String(64), nullable=True)

    # Monthly overtime cap in hours; null falls back to the company default
    overtime_limit = db.Column(db.Float, nullable=True)

    work_schedule = db.Column(db.JSON, nullable=True)
    lunch_break_hours = db.Column(db.Float, nullable=False, default=0)
    late_tolerance = db.Column(db.Integer, nullable=False, default=10)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    overtime_exceptions = db.relationship(
        "OvertimeException",
        backref="employee",
        lazy=True,
        order_by=lambda: [OvertimeException.year, OvertimeException.month],
        cascade="all, delete-orphan",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "department": self.department,
            "overtime_limit": self.overtime_limit,
            "overtime_exceptions": [e.to_dict() for e in self.overtime_exceptions],
            "work_schedule": self.work_schedule,
            "lunch_break_hours": self.lunch_break_hours,
            "late_tolerance": self.late_tolerance,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }

    def to_summary(self) -> dict:
        return {"id": self.id, "name": self.name, "email": self.email, "department": self.department}


class OvertimeException(db.Model):
    """
    Per-employee, per-month raise of the overtime cap.

    At most one row per (employee, month, year); writers upsert.
    """
    __tablename__ = "overtime_exceptions"
    __table_args__ = (
        db.UniqueConstraint("employee_id", "month", "year", name="uq_overtime_exceptions_period"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)
    month = db.Column(db.Integer, nullable=False)
    year = db.Column(db.Integer, nullable=False)
    additional_hours = db.Column(db.Float, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "month": self.month,
            "year": self.year,
            "additional_hours": self.additional_hours,
        }
