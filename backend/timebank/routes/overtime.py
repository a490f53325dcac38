# Overview: Flask API routes for overtime requests; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_role
from ..errors import DomainError, error_response
from ..models import ROLE_ADMIN, ROLE_MANAGER
from ..services import overtime_service


overtime_bp = Blueprint("overtime", __name__, url_prefix="/api/overtime")


@overtime_bp.get("")
@require_auth
def list_route():
    try:
        requests_ = overtime_service.list_requests(
            actor_scope=g.access_scope,
            employee_id=request.args.get("employee_id", type=int),
            status=request.args.get("status"),
            start_date=request.args.get("start_date"),
            end_date=request.args.get("end_date"),
        )
        return jsonify({"requests": [r.to_dict() for r in requests_], "count": len(requests_)})
    except DomainError as e:
        return error_response(e)


@overtime_bp.post("")
@require_auth
def submit_route():
    data = request.get_json(silent=True) or {}
    try:
        overtime = overtime_service.submit(
            actor_scope=g.access_scope,
            employee_id=data.get("employee_id") or g.current_user.id,
            date=data.get("date"),
            start_time=data.get("start_time"),
            end_time=data.get("end_time"),
            reason=data.get("reason"),
        )
        return jsonify({"request": overtime.to_dict()}), 201
    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to submit overtime request")
        return jsonify({"error": "Internal server error"}), 500


@overtime_bp.get("/current-month")
@require_auth
def current_month_route():
    try:
        return jsonify(overtime_service.current_month_summary(
            actor_scope=g.access_scope,
            employee_id=request.args.get("employee_id", type=int),
        ))
    except DomainError as e:
        return error_response(e)


@overtime_bp.patch("/<int:request_id>")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def set_status_route(request_id: int):
    data = request.get_json(silent=True) or {}
    try:
        overtime = overtime_service.set_status(
            actor_scope=g.access_scope,
            request_id=request_id,
            status=data.get("status"),
        )
        return jsonify({"request": overtime.to_dict()}), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update overtime request")
        return jsonify({"error": "Internal server error"}), 500
