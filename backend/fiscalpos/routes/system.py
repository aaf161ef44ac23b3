# backend/fiscalpos/routes/system.py
"""
System health endpoint.

Reports database connectivity plus a few row counts that are cheap to
compute; used by deployment probes.
"""

import time

from flask import Blueprint, current_app
from sqlalchemy import text

from ..extensions import db
from ..models import Invoice, Product, Sale
from ..time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    """Check database connectivity and basic queries."""
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        details = {
            "products": db.session.query(Product).count(),
            "sales": db.session.query(Sale).count(),
            "invoices": db.session.query(Invoice).count(),
        }
        elapsed_ms = (time.time() - start_time) * 1000
        return {"status": "healthy", "latency_ms": round(elapsed_ms, 2), "details": details}
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {"status": "unhealthy", "latency_ms": round(elapsed_ms, 2), "error": "Database error"}
    finally:
        db.session.rollback()


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: database reachable
    - 503: database unreachable
    """
    database_health = check_database_health()
    http_status = 200 if database_health["status"] == "healthy" else 503
    return {
        "status": database_health["status"],
        "timestamp": to_utc_z(utcnow()),
        "checks": {"database": database_health},
    }, http_status
