"""Tests for API health endpoints and readiness behaviour."""

from __future__ import annotations

from unittest.mock import Mock

from flask import Response
from google.api_core.exceptions import ServiceUnavailable


def test_health_endpoint_returns_ok(api_client):
    """Verify `/healthz` returns 200 without touching Firestore."""

    response: Response = api_client.get("/healthz")

    assert response.status_code == 200
    assert response.get_json()["status"] == "ok"


def test_readiness_succeeds_when_firestore_reachable(api_client):
    response: Response = api_client.get("/readyz")

    assert response.status_code == 200
    payload = response.get_json()
    assert payload["status"] == "ready"
    assert payload["issues"] == []


def test_readiness_degraded_when_firestore_unreachable(api_client, fake_client):
    fake_client.fail("collections", "", ServiceUnavailable("down"))

    response: Response = api_client.get("/readyz")

    assert response.status_code == 503
    payload = response.get_json()
    assert payload["status"] == "degraded"
    assert payload["issues"] == ["firestore"]


def test_readiness_degraded_when_factory_missing(api_app):
    api_app.config["firestore_factory"] = None

    with api_app.test_client() as client:
        response: Response = client.get("/readyz")

    assert response.status_code == 503
    assert response.get_json()["issues"] == ["firestore:not_configured"]


def test_readiness_uses_factory_health_check(create_api_app, firestore_factory):
    factory = Mock(wraps=firestore_factory)
    factory.health_check.return_value = {"status": "unhealthy", "error": "boom"}
    app = create_api_app(factory=factory)

    with app.test_client() as client:
        assert client.get("/readyz").status_code == 503

    factory.health_check.assert_called_once()
