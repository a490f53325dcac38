# Overview: Service-layer operations for the justification catalog.

from __future__ import annotations

from ..errors import NotFound, ValidationError
from ..extensions import db
from ..models import Justification
from ..validation import coerce_reason


def list_active() -> list[Justification]:
    return (
        db.session.query(Justification)
        .filter(Justification.is_active.is_(True))
        .order_by(Justification.reason.asc())
        .all()
    )


def get_active(justification_id) -> Justification:
    """Catalog entry a punch may reference; missing or deactivated -> NotFound."""
    try:
        justification_id = int(justification_id)
    except (TypeError, ValueError):
        raise ValidationError("justification_id must be an integer")

    justification = db.session.get(Justification, justification_id)
    if not justification or not justification.is_active:
        raise NotFound("Justification not found", justification_id=justification_id)
    return justification


def create(*, actor_scope, reason) -> Justification:
    actor_scope.require_manager()
    justification = Justification(reason=coerce_reason(reason), is_active=True)
    db.session.add(justification)
    db.session.commit()
    return justification


def update(*, actor_scope, justification_id: int, reason=None, is_active=None) -> Justification:
    actor_scope.require_manager()
    justification = db.session.get(Justification, justification_id)
    if not justification:
        raise NotFound("Justification not found", justification_id=justification_id)

    if reason is not None:
        justification.reason = coerce_reason(reason)
    if is_active is not None:
        if not isinstance(is_active, bool):
            raise ValidationError("is_active must be a boolean")
        justification.is_active = is_active

    db.session.commit()
    return justification


def deactivate(*, actor_scope, justification_id: int) -> Justification:
    """Soft delete: punch records keep pointing at the row."""
    return update(actor_scope=actor_scope, justification_id=justification_id, is_active=False)
