# Overview: Flask API routes for time-clock punches and records; parses input and returns JSON responses.

"""
Time-Clock Routes

SECURITY:
- Punches always act on the authenticated employee.
- Listing other employees' records and corrections require manager or admin;
  department limits are enforced by the service through g.access_scope.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_role
from ..errors import DomainError, error_response
from ..models import ROLE_ADMIN, ROLE_MANAGER
from ..services import timeclock_service
from ..services.concurrency import run_with_retry


timeclock_bp = Blueprint("timeclock", __name__, url_prefix="/api/timeclock")


def _punch(operation, punch_name: str, **kwargs):
    try:
        result = run_with_retry(lambda: operation(
            employee_id=g.current_user.id,
            actor_id=g.current_user.id,
            **kwargs,
        ))
        return jsonify(result.to_dict()), 201 if punch_name == "clock-in" else 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record %s", punch_name)
        return jsonify({"error": "Internal server error"}), 500


@timeclock_bp.post("/clock-in")
@require_auth
def clock_in_route():
    data = request.get_json(silent=True) or {}
    return _punch(timeclock_service.clock_in, "clock-in", justification_id=data.get("justification_id"))


@timeclock_bp.post("/clock-out-lunch")
@require_auth
def clock_out_lunch_route():
    return _punch(timeclock_service.clock_out_lunch, "clock-out-lunch")


@timeclock_bp.post("/clock-in-lunch")
@require_auth
def clock_in_lunch_route():
    return _punch(timeclock_service.clock_in_lunch, "clock-in-lunch")


@timeclock_bp.post("/clock-out")
@require_auth
def clock_out_route():
    data = request.get_json(silent=True) or {}
    return _punch(timeclock_service.clock_out, "clock-out", justification_id=data.get("justification_id"))


@timeclock_bp.get("/today")
@require_auth
def today_route():
    try:
        return jsonify(timeclock_service.get_today(employee_id=g.current_user.id))
    except DomainError as e:
        return error_response(e)


@timeclock_bp.get("/my-records")
@require_auth
def my_records_route():
    try:
        result = timeclock_service.list_records(
            actor_scope=g.access_scope,
            employee_id=g.current_user.id,
            start_date=request.args.get("start_date"),
            end_date=request.args.get("end_date"),
            page=request.args.get("page", "1"),
            limit=request.args.get("limit", "50"),
        )
        return jsonify(result)
    except DomainError as e:
        return error_response(e)


@timeclock_bp.get("/records")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def list_records_route():
    try:
        result = timeclock_service.list_records(
            actor_scope=g.access_scope,
            employee_id=request.args.get("employee_id", type=int),
            department=request.args.get("department"),
            start_date=request.args.get("start_date"),
            end_date=request.args.get("end_date"),
            page=request.args.get("page", "1"),
            limit=request.args.get("limit", "50"),
        )
        return jsonify(result)
    except DomainError as e:
        return error_response(e)


@timeclock_bp.patch("/records/<int:record_id>")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def edit_record_route(record_id: int):
    data = request.get_json(silent=True) or {}
    try:
        result = run_with_retry(lambda: timeclock_service.edit_record(
            actor_scope=g.access_scope,
            record_id=record_id,
            changes=data,
        ))
        return jsonify(result.to_dict()), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to edit time clock record")
        return jsonify({"error": "Internal server error"}), 500
