# backend/fuelrecon/routes/system.py
"""
System health endpoint.

Reports database connectivity and the volume of open reconciliation work.
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import SalesMismatch, Shift, Station
from ..models.shifts import SHIFT_ACTIVE
from ..time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        station_count = db.session.query(Station).count()
        active_shifts = db.session.query(Shift).filter_by(status=SHIFT_ACTIVE).count()
        unresolved = db.session.query(SalesMismatch).filter_by(is_resolved=False).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "stations": station_count,
                "active_shifts": active_shifts,
                "unresolved_mismatches": unresolved,
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


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: database reachable
    - 503: database unreachable
    """
    database_health = check_database_health()
    http_status = 200 if database_health["status"] == "healthy" else 503

    response = {
        "status": database_health["status"],
        "timestamp": to_utc_z(utcnow()),
        "checks": {
            "database": database_health,
        }
    }

    return response, http_status
