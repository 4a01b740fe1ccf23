# backend/stationops/routes/system.py
"""
System health and stored receipt endpoints.
"""

import os
import time

from flask import Blueprint, abort, current_app, send_from_directory
from werkzeug.utils import secure_filename

from ..extensions import db
from ..models import SessionToken, Station, User
from ..time_utils import station_now, to_iso

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        station_count = db.session.query(Station).count()
        user_count = db.session.query(User).count()
        active_sessions = db.session.query(SessionToken).filter_by(is_revoked=False).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "stations": station_count,
                "users": user_count,
                "active_sessions": active_sessions,
            }
        }
    except Exception:
        db.session.rollback()
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_upload_dir_health() -> dict:
    upload_dir = current_app.config["UPLOAD_DIR"]
    if os.path.isdir(upload_dir) and not os.access(upload_dir, os.W_OK):
        return {"status": "degraded", "warning": f"Upload directory not writable: {upload_dir}"}
    # Missing directory is created on first upload
    return {"status": "healthy", "details": {"upload_dir": upload_dir}}


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: healthy or degraded
    - 503: database unreachable
    """
    start_time = time.time()

    database_health = check_database_health()
    upload_health = check_upload_dir_health()

    all_checks = [database_health, upload_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status, http_status = "unhealthy", 503
    elif any(check["status"] == "degraded" for check in all_checks):
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    response = {
        "status": overall_status,
        "timestamp": to_iso(station_now()),
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": {
            "database": database_health,
            "receipt_storage": upload_health,
        }
    }

    return response, http_status


@system_bp.get("/uploads/receipts/<path:filename>")
def serve_receipt(filename: str):
    safe_name = secure_filename(filename)
    if not safe_name or safe_name != filename:
        abort(404)
    return send_from_directory(current_app.config["UPLOAD_DIR"], safe_name)
