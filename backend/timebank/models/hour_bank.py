from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from ..services.time_calc import round_hours


TYPE_CREDIT = "credit"
TYPE_DEBIT = "debit"

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"


class HourBankRecord(db.Model):
    """
    Single credit or debit in an employee's hour bank.

    IMMUTABLE: employee, date, type, hours and reason never change after
    insert. Only the status fields move (pending -> approved | rejected).
    Rows are never deleted.

    Balance is a fold over approved rows; pending rows are reported
    separately and never move the balance.
    """
    __tablename__ = "hour_bank_records"
    __table_args__ = (
        db.Index("ix_hour_bank_employee_status", "employee_id", "status"),
        db.Index("ix_hour_bank_employee_date", "employee_id", "date"),
        db.CheckConstraint("hours > 0", name="ck_hour_bank_hours_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)

    date = db.Column(db.String(10), nullable=False)
    type = db.Column(db.String(8), nullable=False)
    hours = db.Column(db.Float, nullable=False)
    reason = db.Column(db.Text, nullable=False)

    status = db.Column(db.String(16), nullable=False, default=STATUS_PENDING, index=True)

    created_by = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False)
    approved_by = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    rejected_by = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True)
    rejected_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Source links
    overtime_request_id = db.Column(db.Integer, db.ForeignKey("overtime_requests.id"), nullable=True, index=True)
    time_clock_record_id = db.Column(db.Integer, db.ForeignKey("time_clock_records.id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    employee = db.relationship("Employee", foreign_keys=[employee_id], backref=db.backref("hour_bank_records", lazy=True))
    creator = db.relationship("Employee", foreign_keys=[created_by])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "employee_name": self.employee.name if self.employee else None,
            "date": self.date,
            "type": self.type,
            "hours": round_hours(self.hours),
            "reason": self.reason,
            "status": self.status,
            "created_by": self.created_by,
            "created_by_name": self.creator.name if self.creator else None,
            "approved_by": self.approved_by,
            "approved_at": to_utc_z(self.approved_at),
            "rejected_by": self.rejected_by,
            "rejected_at": to_utc_z(self.rejected_at),
            "overtime_request_id": self.overtime_request_id,
            "time_clock_record_id": self.time_clock_record_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
