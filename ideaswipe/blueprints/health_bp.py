"""
Health check blueprint.

Endpoints:
    GET /api/v1/health/ready  — process is up
    GET /api/v1/health/live   — store round-trip, rule source, scheduler thread
"""

import logging
import time

from flask import Blueprint, current_app, jsonify

from ideaswipe.models import db
from ideaswipe.models.progression import ProgressionSetting
from ideaswipe.services.scheduler_service import SchedulerService

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__, url_prefix="/api/v1/health")


@health_bp.route("/ready", methods=["GET"])
def ready():
    return jsonify({"status": "ok"}), 200


@health_bp.route("/live", methods=["GET"])
def live():
    """Degraded (503) only when the store is unreachable; the rest is informational."""
    checks = {}
    healthy = True

    started = time.perf_counter()
    try:
        db.session.execute(db.text("SELECT 1"))
        checks["database"] = {
            "status": "ok",
            "latency_ms": round((time.perf_counter() - started) * 1000, 1),
        }
    except Exception as exc:
        db.session.rollback()
        healthy = False
        checks["database"] = {"status": "error", "detail": str(exc)}
        logger.error("Liveness probe: database unreachable: %s", exc)

    if healthy:
        stored_rules = db.session.query(ProgressionSetting).count()
        checks["progression_rules"] = {
            "source": "table" if stored_rules else "config",
            "count": stored_rules or len(current_app.config.get("PROGRESSION_RULES", [])),
        }

    checks["scheduler"] = {
        "enabled": bool(current_app.config.get("SCHEDULER_ENABLED")),
        "running": SchedulerService.is_running(),
        "interval_minutes": current_app.config.get("AUTO_PROGRESSION_INTERVAL_MINUTES"),
    }

    return jsonify({
        "status": "healthy" if healthy else "degraded",
        "checks": checks,
    }), 200 if healthy else 503
