from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from ..services.time_calc import round_hours


class OvertimeRequest(db.Model):
    """
    Manually submitted block of extra hours worked on a given day.

    hours is derived from start_time/end_time (HH:MM, modulo 24h) at submit.
    Approval credits the hour bank exactly once (HourBankRecord.overtime_request_id).
    """
    __tablename__ = "overtime_requests"
    __table_args__ = (
        db.Index("ix_overtime_employee_date", "employee_id", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)

    date = db.Column(db.String(10), nullable=False)
    start_time = db.Column(db.String(5), nullable=False)
    end_time = db.Column(db.String(5), nullable=False)
    hours = db.Column(db.Float, nullable=False)
    reason = db.Column(db.Text, nullable=False)

    status = db.Column(db.String(16), nullable=False, default="pending", index=True)

    created_by = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False)
    approved_by = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    rejected_by = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True)
    rejected_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    employee = db.relationship("Employee", foreign_keys=[employee_id], backref=db.backref("overtime_requests", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "employee_name": self.employee.name if self.employee else None,
            "date": self.date,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "hours": round_hours(self.hours),
            "reason": self.reason,
            "status": self.status,
            "created_by": self.created_by,
            "approved_by": self.approved_by,
            "approved_at": to_utc_z(self.approved_at),
            "rejected_by": self.rejected_by,
            "rejected_at": to_utc_z(self.rejected_at),
            "created_at": to_utc_z(self.created_at),
        }
