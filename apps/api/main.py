#!/usr/bin/env python3
"""
Console API: Flask composition root for the device admission service.

Responsibilities:
- Wire config, the Firestore factory and the device registry/admission gate
- Register HTTP routes, error handlers and security headers
- Keep orchestration/DI here; decisions in application/devices/; HTTP handlers in apps/api/http/
"""

import logging
import os
from typing import Optional

from flask import Flask
from flask_cors import CORS

from adapters.db.firestore import FirestoreServiceFactory
from app_platform.config.config import ConsoleConfig
from app_platform.errors.api import register_error_handlers
from apps.api.bootstrap import build_device_services, build_firestore_factory, load_console_config
from apps.api.http.middleware import add_security_headers
from apps.api.http.router import register_routes

logger = logging.getLogger("api.main")


def create_app(
    factory: Optional[FirestoreServiceFactory] = None,
    config: Optional[ConsoleConfig] = None,
) -> Flask:
    """Build the Flask app; pass a factory with a test client to avoid real Firestore."""

    config = config or load_console_config()
    factory = factory or build_firestore_factory(config)
    registry, gate = build_device_services(factory, config)

    app = Flask(__name__)
    CORS(app)

    app.config["console_config"] = config
    app.config["firestore_factory"] = factory
    app.config["device_registry"] = registry
    app.config["admission_gate"] = gate
    app.config["admission_strict_writes"] = config.admission.strict_writes

    @app.after_request
    def _after(resp):
        return add_security_headers(resp)

    register_error_handlers(app)
    register_routes(app)

    logger.info(
        f"Console API configured (project={config.gcp_project_id}, "
        f"emulator={config.firestore_emulator_host}, strict_writes={config.admission.strict_writes})"
    )

    return app


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)

    port = int(os.getenv('PORT', '8080'))
    logger.info(f"Starting Console API on port {port}")

    create_app().run(host='0.0.0.0', port=port, debug=False)
