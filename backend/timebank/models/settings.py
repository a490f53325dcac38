from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


DEFAULT_OVERTIME_LIMIT = 40.0


class CompanySettings(db.Model):
    """
    Company-wide defaults (singleton row, created on first read).

    Limits of 0 mean "unlimited" for the hour bank.
    """
    __tablename__ = "company_settings"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, default="")

    default_overtime_limit = db.Column(db.Float, nullable=False, default=DEFAULT_OVERTIME_LIMIT)
    default_accumulation_limit = db.Column(db.Float, nullable=False, default=0)
    default_usage_limit = db.Column(db.Float, nullable=False, default=0)

    updated_by = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "default_overtime_limit": self.default_overtime_limit,
            "default_accumulation_limit": self.default_accumulation_limit,
            "default_usage_limit": self.default_usage_limit,
            "updated_by": self.updated_by,
            "updated_at": to_utc_z(self.updated_at),
        }
