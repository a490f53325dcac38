# Overview: Flask API routes for system health; database connectivity check.

import time

from flask import Blueprint, current_app, jsonify
from sqlalchemy import text

from ..extensions import db
from ..models import Employee


system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    """Check database connectivity with a trivial query and a table count."""
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        employee_count = db.session.query(Employee).count()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {"employees": employee_count},
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    database = check_database_health()
    status = "ok" if database["status"] == "healthy" else "degraded"
    return jsonify({"status": status, "checks": {"database": database}}), 200 if status == "ok" else 503
