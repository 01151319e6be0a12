# backend/backoffice/routes/system.py
"""
System health endpoint.

Checks database connectivity and that every safe still reconciles with its
cash ledger.
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import BusinessUnit, CashSafe
from ..services import treasury_service
from ..time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        unit_count = db.session.query(BusinessUnit).count()
        safe_count = db.session.query(CashSafe).count()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "business_units": unit_count,
                "safes": safe_count,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_cash_conservation() -> dict:
    """A safe whose balance drifted from its ledger degrades the service."""
    start_time = time.time()
    try:
        drifted = []
        for safe in treasury_service.list_safes():
            gap = treasury_service.conservation_gap(safe)
            if gap != 0:
                drifted.append({"safe_id": safe.id, "name": safe.name, "gap": str(gap)})
        elapsed_ms = (time.time() - start_time) * 1000
        if drifted:
            return {
                "status": "degraded",
                "latency_ms": round(elapsed_ms, 2),
                "warning": f"{len(drifted)} safe(s) out of balance",
                "details": {"safes": drifted},
            }
        return {"status": "healthy", "latency_ms": round(elapsed_ms, 2)}
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Cash conservation check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Cash ledger error"
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded
    - 503: one or more checks unhealthy
    """
    start_time = time.time()

    database_health = check_database_health()
    cash_health = check_cash_conservation()

    all_checks = [database_health, cash_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status, http_status = "unhealthy", 503
    elif any(check["status"] == "degraded" for check in all_checks):
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    response = {
        "status": overall_status,
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": {
            "database": database_health,
            "cash_conservation": cash_health,
        }
    }
    return response, http_status
