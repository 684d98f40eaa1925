# backend/app/routes/system.py
"""
System health and business profile endpoints.

/api/health needs no business context; it is used by load balancers and the
frontend's startup check.
"""

import time
from flask import Blueprint, current_app, g
from sqlalchemy import text

from ..extensions import db
from ..decorators import require_business
from ..responses import success
from app.time_utils import utcnow

API_VERSION = "1.0.0"

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    """
    Check database connectivity with a trivial query.

    Returns dict with status and latency.
    """
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
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: database reachable
    - 503: database unhealthy
    """
    database_health = check_database_health()
    healthy = database_health["status"] == "healthy"

    data = {
        "status": "healthy" if healthy else "unhealthy",
        "version": API_VERSION,
        "timestamp": utcnow().isoformat() + "Z",
        "checks": {"database": database_health},
    }
    return success(data, status=200 if healthy else 503)


@system_bp.get("/business")
@require_business
def business_profile():
    """The caller's business profile (invoice header data)."""
    return success({"business": g.business.to_dict()})
