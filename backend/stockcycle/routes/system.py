# backend/stockcycle/routes/system.py
"""
System health and reference catalog endpoints.
"""

import time

from flask import Blueprint, current_app, jsonify
from sqlalchemy import text

from ..extensions import db
from ..models import Inventory
from ..reference_data import DEFAULT_REFERENCE
from ..time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    """
    Check database connectivity and report the active inventory, if any.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        inventory_count = db.session.query(Inventory).count()
        active = db.session.query(Inventory).filter_by(status="active").first()

        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "inventories": inventory_count,
                "active_inventory": active.code if active else None,
            },
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
    """
    Returns:
    - 200: database reachable
    - 503: database unhealthy
    """
    database_health = check_database_health()
    healthy = database_health["status"] == "healthy"

    response = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": to_utc_z(utcnow()),
        "checks": {"database": database_health},
    }
    return response, 200 if healthy else 503


@system_bp.get("/reference-data")
def reference_data():
    """Static catalogs: stores by region, DC sectors, asset types, suppliers, families."""
    return jsonify(DEFAULT_REFERENCE.to_dict()), 200
