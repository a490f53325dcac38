from __future__ import annotations

from ..errors import ValidationError
from ..extensions import db
from ..models import CompanySettings
from ..validation import coerce_hours
from . import audit_service


LIMIT_FIELDS = ("default_overtime_limit", "default_accumulation_limit", "default_usage_limit")


def get_or_create_settings() -> CompanySettings:
    """The singleton settings row, created with defaults on first read."""
    settings = db.session.query(CompanySettings).order_by(CompanySettings.id.asc()).first()
    if settings is None:
        settings = CompanySettings(name="")
        db.session.add(settings)
        db.session.commit()
    return settings


def update_settings(*, actor_scope, changes: dict) -> CompanySettings:
    """
    Update company-wide defaults (admin only).

    Limits are hours >= 0; 0 means unlimited for the hour-bank limits.
    Unknown keys are rejected rather than ignored.
    """
    actor_scope.require_admin()
    if not isinstance(changes, dict) or not changes:
        raise ValidationError("No settings supplied")

    allowed = set(LIMIT_FIELDS) | {"name"}
    unknown = sorted(k for k in changes if k not in allowed)
    if unknown:
        raise ValidationError(f"Unknown settings: {', '.join(unknown)}", unknown=unknown)

    settings = get_or_create_settings()
    before = settings.to_dict()

    for field in LIMIT_FIELDS:
        if field in changes:
            setattr(settings, field, coerce_hours(changes[field], field, allow_zero=True))
    if "name" in changes:
        name = changes["name"]
        if name is not None and not isinstance(name, str):
            raise ValidationError("name must be a string")
        settings.name = (name or "").strip()

    settings.updated_by = actor_scope.actor_id
    db.session.commit()

    audit_service.record(
        action="settings_updated",
        entity_type="settings",
        entity_id=settings.id,
        actor_id=actor_scope.actor_id,
        description="Company settings updated",
        metadata={"before": before, "after": settings.to_dict()},
    )
    return settings
