"""Central route registration for the console API app."""

from __future__ import annotations

import logging

from flask import Flask

from .device_routes import device_bp
from .health_routes import health_bp


def register_routes(app: Flask) -> None:
    """Register the routes for the API."""

    logger = logging.getLogger("api.http.router")

    app.register_blueprint(health_bp)
    logger.debug("Registered health blueprint")

    app.register_blueprint(device_bp)
    logger.debug("Registered devices blueprint")
