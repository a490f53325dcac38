# Overview: Flask API routes for the justification catalog.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_role
from ..errors import DomainError, error_response
from ..models import ROLE_ADMIN, ROLE_MANAGER
from ..services import justification_service


justifications_bp = Blueprint("justifications", __name__, url_prefix="/api/justifications")


@justifications_bp.get("")
@require_auth
def list_route():
    items = justification_service.list_active()
    return jsonify({"justifications": [j.to_dict() for j in items]})


@justifications_bp.post("")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def create_route():
    data = request.get_json(silent=True) or {}
    try:
        item = justification_service.create(actor_scope=g.access_scope, reason=data.get("reason"))
        return jsonify({"justification": item.to_dict()}), 201
    except DomainError as e:
        return error_response(e)


@justifications_bp.patch("/<int:justification_id>")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def update_route(justification_id: int):
    data = request.get_json(silent=True) or {}
    try:
        item = justification_service.update(
            actor_scope=g.access_scope,
            justification_id=justification_id,
            reason=data.get("reason"),
            is_active=data.get("is_active"),
        )
        return jsonify({"justification": item.to_dict()})
    except DomainError as e:
        return error_response(e)


@justifications_bp.delete("/<int:justification_id>")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def deactivate_route(justification_id: int):
    try:
        item = justification_service.deactivate(actor_scope=g.access_scope, justification_id=justification_id)
        return jsonify({"justification": item.to_dict()})
    except DomainError as e:
        return error_response(e)
