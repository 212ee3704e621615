# backend/storefront/routes/system.py
"""
System health endpoint.

Reports database reachability and whether the running configuration is safe
for its environment.
"""

import time

from flask import Blueprint, current_app, jsonify
from sqlalchemy import text

from ..config import insecure_settings
from ..extensions import db

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        elapsed_ms = (time.time() - start_time) * 1000
        return {"status": "healthy", "latency_ms": round(elapsed_ms, 2)}
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: database reachable (config problems only mark the response degraded)
    - 503: database unreachable
    """
    database_health = check_database_health()
    problems = insecure_settings(current_app.config)

    if database_health["status"] == "unhealthy":
        status, code = "unhealthy", 503
    elif problems:
        status, code = "degraded", 200
    else:
        status, code = "healthy", 200

    return jsonify({
        "status": status,
        "checks": {
            "database": database_health,
            "config": {"status": "degraded" if problems else "healthy", "problems": problems},
        },
        "oauth_providers": sorted(current_app.extensions.get("oauth_providers", {})),
    }), code
