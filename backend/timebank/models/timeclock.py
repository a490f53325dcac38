from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso, to_utc_z
from ..services.time_calc import round_hours


STATE_NOT_STARTED = "NOT_STARTED"
STATE_ENTERED = "ENTERED"
STATE_ON_LUNCH = "ON_LUNCH"
STATE_RETURNED_FROM_LUNCH = "RETURNED_FROM_LUNCH"
STATE_EXITED = "EXITED"


class TimeClockRecord(db.Model):
    """
    One employee's punches for one civil day.

    LIFECYCLE (derived from which punches are set):
    - NOT_STARTED -> ENTERED -> ON_LUNCH -> RETURNED_FROM_LUNCH -> EXITED
    - Lunch is optional: ENTERED -> EXITED is valid.

    The (employee_id, date) unique constraint is what makes concurrent
    clock-ins safe; the service converts the violation to DuplicateEntry.

    Derived totals stay null until exit_time is recorded. late_minutes is
    set at clock-in and lunch_late_minutes at lunch return.
    """
    __tablename__ = "time_clock_records"
    __table_args__ = (
        db.UniqueConstraint("employee_id", "date", name="uq_time_clock_employee_date"),
        db.Index("ix_time_clock_records_date", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)

    # Civil calendar day, YYYY-MM-DD
    date = db.Column(db.String(10), nullable=False)

    # Punches (naive civil datetimes in the company timezone)
    entry_time = db.Column(db.DateTime, nullable=True)
    lunch_exit_time = db.Column(db.DateTime, nullable=True)
    lunch_return_time = db.Column(db.DateTime, nullable=True)
    exit_time = db.Column(db.DateTime, nullable=True)

    # Derived
    total_worked_hours = db.Column(db.Float, nullable=True)
    scheduled_hours = db.Column(db.Float, nullable=True)
    late_minutes = db.Column(db.Integer, nullable=True)
    lunch_late_minutes = db.Column(db.Integer, nullable=True)
    overtime_hours = db.Column(db.Float, nullable=True)
    negative_hours = db.Column(db.Float, nullable=True)

    # Current ledger entries generated from this record (at most one of each).
    # Plain ids: hour_bank_records already points back here via time_clock_record_id.
    hour_bank_credit_id = db.Column(db.Integer, nullable=True)
    hour_bank_debit_id = db.Column(db.Integer, nullable=True)

    justification_id = db.Column(db.Integer, db.ForeignKey("justifications.id"), nullable=True)
    # Snapshot of the catalog text at the time it was attached
    justification = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    employee = db.relationship("Employee", backref=db.backref("time_clock_records", lazy=True))

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def state(self) -> str:
        if self.entry_time is None:
            return STATE_NOT_STARTED
        if self.exit_time is not None:
            return STATE_EXITED
        if self.lunch_exit_time is not None and self.lunch_return_time is None:
            return STATE_ON_LUNCH
        if self.lunch_return_time is not None:
            return STATE_RETURNED_FROM_LUNCH
        return STATE_ENTERED

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "date": self.date,
            "state": self.state,
            "entry_time": to_iso(self.entry_time),
            "lunch_exit_time": to_iso(self.lunch_exit_time),
            "lunch_return_time": to_iso(self.lunch_return_time),
            "exit_time": to_iso(self.exit_time),
            "total_worked_hours": round_hours(self.total_worked_hours),
            "scheduled_hours": round_hours(self.scheduled_hours),
            "late_minutes": self.late_minutes,
            "lunch_late_minutes": self.lunch_late_minutes,
            "overtime_hours": round_hours(self.overtime_hours),
            "negative_hours": round_hours(self.negative_hours),
            "hour_bank_credit_id": self.hour_bank_credit_id,
            "hour_bank_debit_id": self.hour_bank_debit_id,
            "justification_id": self.justification_id,
            "justification": self.justification,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Justification(db.Model):
    """
    Catalog of reasons an employee can attach to a late or short day.

    Entries are deactivated, never deleted, so old punch records keep a
    valid reference.
    """
    __tablename__ = "justifications"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    reason = db.Column(db.String(255), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "reason": self.reason,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
