# Overview: Flask API routes for the hour bank; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_role
from ..errors import DomainError, error_response
from ..models import ROLE_ADMIN, ROLE_MANAGER
from ..services import employee_service, hour_bank_service


hour_bank_bp = Blueprint("hour_bank", __name__, url_prefix="/api/hour-bank")


def _target_employee():
    """employee_id query/body param, defaulting to the caller; scope-checked."""
    employee_id = request.args.get("employee_id", type=int)
    if employee_id is None:
        return g.current_user
    employee = employee_service.get_employee(employee_id)
    g.access_scope.require_access(employee)
    return employee


@hour_bank_bp.get("/balance")
@require_auth
def balance_route():
    try:
        employee = _target_employee()
        return jsonify(hour_bank_service.balance_summary(employee))
    except DomainError as e:
        return error_response(e)


@hour_bank_bp.get("/limits")
@require_auth
def limits_route():
    """Limits, optionally with a dry-run check for ?hours=&type=."""
    try:
        employee = _target_employee()
        if request.args.get("hours") is None:
            return jsonify(hour_bank_service.get_limits())
        return jsonify(hour_bank_service.check_limits(
            employee_id=employee.id,
            hours=request.args.get("hours"),
            type=request.args.get("type", "credit"),
        ))
    except DomainError as e:
        return error_response(e)


@hour_bank_bp.get("/records")
@require_auth
def list_records_route():
    try:
        records = hour_bank_service.list_records(
            actor_scope=g.access_scope,
            employee_id=request.args.get("employee_id", type=int),
            start_date=request.args.get("start_date"),
            end_date=request.args.get("end_date"),
            type=request.args.get("type"),
            status=request.args.get("status"),
        )
        return jsonify({"records": [r.to_dict() for r in records], "count": len(records)})
    except DomainError as e:
        return error_response(e)


@hour_bank_bp.post("/credit")
@require_auth
def credit_route():
    data = request.get_json(silent=True) or {}
    try:
        record = hour_bank_service.propose_credit(
            actor_scope=g.access_scope,
            employee_id=data.get("employee_id") or g.current_user.id,
            date=data.get("date"),
            hours=data.get("hours"),
            reason=data.get("reason"),
        )
        return jsonify({"record": record.to_dict()}), 201
    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create hour bank credit")
        return jsonify({"error": "Internal server error"}), 500


@hour_bank_bp.post("/debit")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def debit_route():
    data = request.get_json(silent=True) or {}
    try:
        record = hour_bank_service.propose_debit(
            actor_scope=g.access_scope,
            employee_id=data.get("employee_id"),
            date=data.get("date"),
            hours=data.get("hours"),
            reason=data.get("reason"),
        )
        return jsonify({"record": record.to_dict()}), 201
    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create hour bank debit")
        return jsonify({"error": "Internal server error"}), 500


@hour_bank_bp.patch("/records/<int:record_id>/status")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def set_status_route(record_id: int):
    data = request.get_json(silent=True) or {}
    try:
        record = hour_bank_service.set_status(
            actor_scope=g.access_scope,
            record_id=record_id,
            status=data.get("status"),
        )
        return jsonify({"record": record.to_dict()}), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update hour bank record status")
        return jsonify({"error": "Internal server error"}), 500
