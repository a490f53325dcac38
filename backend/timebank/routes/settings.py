# Overview: Flask API routes for company settings; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_role
from ..errors import DomainError, error_response
from ..models import ROLE_ADMIN
from ..services import settings_service


settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("")
@require_auth
def get_settings_route():
    return jsonify({"settings": settings_service.get_or_create_settings().to_dict()})


@settings_bp.put("")
@require_auth
@require_role(ROLE_ADMIN)
def update_settings_route():
    data = request.get_json(silent=True) or {}
    try:
        settings = settings_service.update_settings(actor_scope=g.access_scope, changes=data)
        return jsonify({"settings": settings.to_dict()})
    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update settings")
        return jsonify({"error": "Internal server error"}), 500
