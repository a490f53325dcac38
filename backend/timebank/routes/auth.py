# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

Bearer-token sessions only. Accounts are created by admins
(POST /api/employees or `flask users create`), never by self-registration.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth
from ..errors import DomainError, error_response
from ..services import auth_service
from ..services import session_service


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate and create a session token.

    Token must be included in the Authorization header for protected routes.
    """
    try:
        data = request.get_json(silent=True) or {}
        email = data.get("email") or data.get("username")
        password = data.get("password")

        if not all([email, password]):
            return jsonify({"error": "email and password required"}), 400

        employee = auth_service.authenticate(email, password)
        if not employee:
            return jsonify({"error": "Invalid credentials"}), 401

        session, token = session_service.create_session(
            employee_id=employee.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )

        return jsonify({
            "employee": employee.to_dict(),
            "token": token,
            "expires_at": session.to_dict()["expires_at"],
        }), 200

    except Exception:
        current_app.logger.exception("Failed to log in")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    token = request.headers.get("Authorization", "").split(" ", 1)[1]
    session_service.revoke_session(token)
    return jsonify({"message": "Logged out"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    scope = g.access_scope
    return jsonify({
        "employee": g.current_user.to_dict(),
        "scope": {"kind": scope.kind, "department": scope.department},
    }), 200


@auth_bp.post("/change-password")
@require_auth
def change_password_route():
    data = request.get_json(silent=True) or {}
    try:
        auth_service.change_password(
            g.current_user,
            data.get("current_password"),
            data.get("new_password"),
        )
        return jsonify({"message": "Password changed; please log in again"}), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to change password")
        return jsonify({"error": "Internal server error"}), 500
