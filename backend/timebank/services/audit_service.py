# Overview: Service-layer operations for the audit trail; best-effort append-only writes.

"""
Audit Log Sink

WHY: Every punch, ledger movement and approval must be attributable, but an
audit failure must never undo or fail the business action it describes.

record() is therefore called AFTER the caller's commit, in its own small
transaction. Any failure is rolled back and logged as a warning.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any

from flask import current_app, has_request_context, request

from ..extensions import db
from ..models import AuditLog
from ..time_utils import local_day_start_utc, parse_date_string
from ..validation import coerce_date, coerce_int


MAX_PAGE_SIZE = 200


def record(
    *,
    action: str,
    entity_type: str,
    entity_id,
    actor_id: int | None,
    description: str,
    target_id: int | None = None,
    metadata: dict[str, Any] | None = None,
) -> AuditLog | None:
    """Append one audit entry. Returns None when the write failed."""
    ip_address = None
    user_agent = None
    if has_request_context():
        ip_address = request.remote_addr
        user_agent = request.headers.get("User-Agent")

    try:
        entry = AuditLog(
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id),
            actor_id=actor_id,
            target_id=target_id,
            description=description,
            details=metadata or {},
            ip_address=ip_address,
            user_agent=user_agent,
        )
        db.session.add(entry)
        db.session.commit()
        return entry
    except Exception:
        db.session.rollback()
        current_app.logger.warning(
            "Audit write failed for %s %s:%s", action, entity_type, entity_id, exc_info=True
        )
        return None


def list_entries(
    *,
    action: str | None = None,
    entity_type: str | None = None,
    entity_id=None,
    actor_id=None,
    target_id=None,
    start_date=None,
    end_date=None,
    page=1,
    limit=50,
) -> dict:
    """Audit entries, newest first, with the same pagination envelope as record listings."""
    page = coerce_int(page, "page", minimum=1)
    limit = coerce_int(limit, "limit", minimum=1, maximum=MAX_PAGE_SIZE)

    query = db.session.query(AuditLog)
    if action:
        query = query.filter(AuditLog.action == action)
    if entity_type:
        query = query.filter(AuditLog.entity_type == entity_type)
    if entity_id is not None and entity_id != "":
        query = query.filter(AuditLog.entity_id == str(entity_id))
    if actor_id is not None and actor_id != "":
        query = query.filter(AuditLog.actor_id == coerce_int(actor_id, "actor_id", minimum=1))
    if target_id is not None and target_id != "":
        query = query.filter(AuditLog.target_id == coerce_int(target_id, "target_id", minimum=1))
    # Date bounds are company-local days, inclusive on both ends
    if start_date:
        start = parse_date_string(coerce_date(start_date, "start_date"))
        query = query.filter(AuditLog.occurred_at >= local_day_start_utc(start))
    if end_date:
        end = parse_date_string(coerce_date(end_date, "end_date"))
        query = query.filter(AuditLog.occurred_at < local_day_start_utc(end + timedelta(days=1)))

    total = query.count()
    entries = (
        query.order_by(AuditLog.occurred_at.desc(), AuditLog.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "logs": [e.to_dict() for e in entries],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": (total + limit - 1) // limit,
        },
    }


def list_actions() -> list[str]:
    """Distinct action names present in the log, for filter pickers."""
    rows = db.session.query(AuditLog.action).distinct().order_by(AuditLog.action.asc()).all()
    return [action for (action,) in rows]
