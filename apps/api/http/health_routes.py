"""Health endpoints."""

from __future__ import annotations

import logging
import time

from flask import Blueprint, current_app, jsonify


health_bp = Blueprint("health", __name__)

logger = logging.getLogger(__name__)


@health_bp.route("/healthz")
def healthz():
    """Liveness probe."""

    return (jsonify({"status": "ok", "timestamp": time.time()}), 200)


@health_bp.route("/readyz")
def readyz():
    """Readiness probe that verifies Firestore is reachable."""

    firestore_factory = current_app.config.get("firestore_factory")

    issues = []

    if firestore_factory is None:
        issues.append("firestore:not_configured")
    else:
        firestore_status = firestore_factory.health_check()

        if firestore_status.get("status") != "healthy":
            logger.warning(f"Firestore readiness check failed: {firestore_status.get('error')}")
            issues.append("firestore")

    status_code = 200 if not issues else 503
    payload = {
        "status": "ready" if not issues else "degraded",
        "issues": issues,
        "timestamp": time.time(),
    }
    response = jsonify(payload)
    response.status_code = status_code

    return response
