# Overview: Flask API routes for reading the audit trail; admin only.

from flask import Blueprint, request, jsonify

from ..decorators import require_auth, require_role
from ..errors import DomainError, error_response
from ..models import ROLE_ADMIN
from ..services import audit_service


audit_bp = Blueprint("audit", __name__, url_prefix="/api/audit")


@audit_bp.get("/logs")
@require_auth
@require_role(ROLE_ADMIN)
def list_logs_route():
    try:
        result = audit_service.list_entries(
            action=request.args.get("action"),
            entity_type=request.args.get("entity_type"),
            entity_id=request.args.get("entity_id"),
            actor_id=request.args.get("actor_id"),
            target_id=request.args.get("target_id"),
            start_date=request.args.get("start_date"),
            end_date=request.args.get("end_date"),
            page=request.args.get("page", "1"),
            limit=request.args.get("limit", "50"),
        )
        return jsonify(result)
    except DomainError as e:
        return error_response(e)


@audit_bp.get("/actions")
@require_auth
@require_role(ROLE_ADMIN)
def list_actions_route():
    return jsonify({"actions": audit_service.list_actions()})
