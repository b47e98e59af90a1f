# Overview: Flask API routes for system health; public and unauthenticated.

"""
System health endpoint.

Reports database reachability, the size of the token revocation ledger,
and whether roles and permissions have been seeded.
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Permission, RevokedToken, Role, User
from ..permissions import ADMIN_ROLE
from animaid.time_utils import utcnow

system_bp = Blueprint("system", __name__)


def _elapsed_ms(start_time: float) -> float:
    return round((time.time() - start_time) * 1000, 2)


def check_database_health() -> dict:
    """Check database connectivity and basic queries."""
    start_time = time.time()
    try:
        user_count = db.session.query(User).count()
        role_count = db.session.query(Role).count()

        return {
            "status": "healthy",
            "latency_ms": _elapsed_ms(start_time),
            "details": {
                "users": user_count,
                "roles": role_count,
            }
        }
    except Exception:
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": _elapsed_ms(start_time),
            "error": "Database error"
        }


def check_revocation_ledger_health() -> dict:
    """Count live and prunable revocation entries."""
    start_time = time.time()
    try:
        now = utcnow()
        active = db.session.query(RevokedToken).filter(RevokedToken.expires_at >= now).count()
        expired = db.session.query(RevokedToken).filter(RevokedToken.expires_at < now).count()

        return {
            "status": "healthy",
            "latency_ms": _elapsed_ms(start_time),
            "details": {
                "active_revocations": active,
                "expired_pending_cleanup": expired,
            }
        }
    except Exception:
        current_app.logger.exception("Revocation ledger health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": _elapsed_ms(start_time),
            "error": "Revocation ledger error"
        }


def check_auth_service_health() -> dict:
    """Check that the admin role and the permission catalogue are seeded."""
    start_time = time.time()
    try:
        admin_role = db.session.query(Role).filter_by(name=ADMIN_ROLE).first()
        permission_count = db.session.query(Permission).count()

        details = {
            "admin_role_configured": admin_role is not None,
            "permission_count": permission_count,
        }

        if admin_role is None or permission_count == 0:
            return {
                "status": "degraded",
                "latency_ms": _elapsed_ms(start_time),
                "warning": "Roles or permissions not initialized (run `flask system init`)",
                "details": details,
            }

        return {
            "status": "healthy",
            "latency_ms": _elapsed_ms(start_time),
            "details": details,
        }
    except Exception:
        current_app.logger.exception("Auth service health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": _elapsed_ms(start_time),
            "error": "Auth service error"
        }


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: healthy or degraded (still operational)
    - 503: one or more checks unhealthy
    """
    start_time = time.time()

    checks = {
        "database": check_database_health(),
        "revocation_ledger": check_revocation_ledger_health(),
        "auth_service": check_auth_service_health(),
    }

    statuses = [check["status"] for check in checks.values()]
    if "unhealthy" in statuses:
        overall_status, http_status = "unhealthy", 503
    elif "degraded" in statuses:
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    response = {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": _elapsed_ms(start_time),
        "checks": checks,
    }

    return response, http_status
