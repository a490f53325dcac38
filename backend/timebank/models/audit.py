from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class AuditLog(db.Model):
    """
    Audit trail of business actions (punches, ledger movements, approvals).

    IMMUTABLE: Never update or delete. Append-only.
    Writes are best-effort; a failed write never aborts the action it records.
    """
    __tablename__ = "audit_logs"
    __table_args__ = (
        db.Index("ix_audit_logs_entity", "entity_type", "entity_id"),
        db.Index("ix_audit_logs_occurred", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    action = db.Column(db.String(64), nullable=False, index=True)  # timeclock_entry, hourbank_approved, ...
    entity_type = db.Column(db.String(32), nullable=False)          # timeclock, hourbank, overtime, employee, settings
    entity_id = db.Column(db.String(64), nullable=False)

    actor_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True, index=True)
    target_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True, index=True)

    description = db.Column(db.Text, nullable=False)
    # "metadata" is reserved on declarative models
    details = db.Column("metadata", db.JSON, nullable=True)

    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(512), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "action": self.action,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "actor_id": self.actor_id,
            "target_id": self.target_id,
            "description": self.description,
            "metadata": self.details or {},
            "occurred_at": to_utc_z(self.occurred_at),
        }
