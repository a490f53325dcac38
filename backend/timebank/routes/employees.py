# Overview: Flask API routes for the employee directory; parses input and returns JSON responses.

"""
Employee Routes

SECURITY:
- Listing is scoped: employees see themselves, managers their department.
- Overtime caps, exceptions and schedules are changed by managers (own
  department) and admins.
- Account creation, deactivation and role changes are admin only.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_role
from ..errors import DomainError, ValidationError, error_response
from ..models import ROLE_ADMIN, ROLE_MANAGER
from ..services import auth_service, employee_service
from ..validation import require_fields


employees_bp = Blueprint("employees", __name__, url_prefix="/api/employees")


@employees_bp.get("")
@require_auth
def list_route():
    try:
        employees = employee_service.list_employees(
            actor_scope=g.access_scope,
            department=request.args.get("department"),
        )
        return jsonify({"employees": [e.to_dict() for e in employees], "count": len(employees)})
    except DomainError as e:
        return error_response(e)


@employees_bp.post("")
@require_auth
@require_role(ROLE_ADMIN)
def create_route():
    data = request.get_json(silent=True) or {}
    try:
        employee = auth_service.create_employee(
            name=data.get("name"),
            email=data.get("email"),
            password=data.get("password"),
            role=data.get("role", "employee"),
            department=data.get("department"),
            work_schedule=data.get("work_schedule"),
            lunch_break_hours=data.get("lunch_break_hours", 0.0),
            late_tolerance=data.get("late_tolerance", 10),
            overtime_limit=data.get("overtime_limit"),
        )
        return jsonify({"employee": employee.to_dict()}), 201
    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create employee")
        return jsonify({"error": "Internal server error"}), 500


@employees_bp.get("/<int:employee_id>")
@require_auth
def get_route(employee_id: int):
    try:
        employee = employee_service.get_employee(employee_id)
        g.access_scope.require_access(employee)
        return jsonify({"employee": employee.to_dict()})
    except DomainError as e:
        return error_response(e)


@employees_bp.patch("/<int:employee_id>/active")
@require_auth
@require_role(ROLE_ADMIN)
def set_active_route(employee_id: int):
    data = request.get_json(silent=True) or {}
    try:
        if not isinstance(data.get("is_active"), bool):
            raise ValidationError("is_active must be a boolean")
        if employee_id == g.current_user.id and not data["is_active"]:
            raise ValidationError("You cannot deactivate your own account")
        employee = employee_service.get_employee(employee_id)
        auth_service.set_active(employee, data["is_active"])
        return jsonify({"employee": employee.to_dict()})
    except DomainError as e:
        return error_response(e)


@employees_bp.patch("/<int:employee_id>/role")
@require_auth
@require_role(ROLE_ADMIN)
def change_role_route(employee_id: int):
    data = request.get_json(silent=True) or {}
    try:
        require_fields(data, "role")
        employee = employee_service.change_role(
            actor_scope=g.access_scope,
            employee_id=employee_id,
            role=data["role"],
        )
        return jsonify({"employee": employee.to_dict()})
    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to change employee role")
        return jsonify({"error": "Internal server error"}), 500


@employees_bp.patch("/<int:employee_id>/overtime-limit")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def overtime_limit_route(employee_id: int):
    data = request.get_json(silent=True) or {}
    if "overtime_limit" not in data:
        return jsonify({"error": "overtime_limit is required", "code": "ValidationError"}), 400
    try:
        employee = employee_service.update_overtime_limit(
            actor_scope=g.access_scope,
            employee_id=employee_id,
            overtime_limit=data.get("overtime_limit"),
        )
        return jsonify({"employee": employee.to_dict()})
    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update overtime limit")
        return jsonify({"error": "Internal server error"}), 500


@employees_bp.post("/<int:employee_id>/overtime-exceptions")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def upsert_exception_route(employee_id: int):
    data = request.get_json(silent=True) or {}
    try:
        exception = employee_service.upsert_overtime_exception(
            actor_scope=g.access_scope,
            employee_id=employee_id,
            month=data.get("month"),
            year=data.get("year"),
            additional_hours=data.get("additional_hours"),
        )
        return jsonify({"exception": exception.to_dict()}), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to save overtime exception")
        return jsonify({"error": "Internal server error"}), 500


@employees_bp.delete("/<int:employee_id>/overtime-exceptions/<int:month>/<int:year>")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def remove_exception_route(employee_id: int, month: int, year: int):
    try:
        employee_service.remove_overtime_exception(
            actor_scope=g.access_scope,
            employee_id=employee_id,
            month=month,
            year=year,
        )
        return jsonify({"message": "Overtime exception removed"}), 200
    except DomainError as e:
        return error_response(e)


@employees_bp.get("/<int:employee_id>/work-schedule")
@require_auth
def get_schedule_route(employee_id: int):
    try:
        return jsonify(employee_service.get_work_schedule(actor_scope=g.access_scope, employee_id=employee_id))
    except DomainError as e:
        return error_response(e)


@employees_bp.put("/<int:employee_id>/work-schedule")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def set_schedule_route(employee_id: int):
    data = request.get_json(silent=True) or {}
    try:
        employee_service.update_work_schedule(
            actor_scope=g.access_scope,
            employee_id=employee_id,
            changes={k: data[k] for k in employee_service.SCHEDULE_FIELDS if k in data},
        )
        return jsonify(employee_service.get_work_schedule(actor_scope=g.access_scope, employee_id=employee_id))
    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update work schedule")
        return jsonify({"error": "Internal server error"}), 500
