"""API service specific fixtures for unit tests."""

from __future__ import annotations

from typing import Any, Callable, Iterator, Optional

import pytest
from flask import Flask

from adapters.db.firestore import FirestoreServiceFactory
from app_platform.config.admission import AdmissionSettings
from app_platform.config.config import ConsoleConfig
from apps.api.main import create_app


@pytest.fixture
def console_config() -> ConsoleConfig:
    return ConsoleConfig(gcp_project_id="test-project")


@pytest.fixture
def firestore_factory(fake_client, console_config) -> FirestoreServiceFactory:
    return FirestoreServiceFactory(fake_client, config=console_config)


@pytest.fixture
def create_api_app(firestore_factory, console_config) -> Callable[..., Flask]:
    """Factory fixture producing fresh API app instances over the fake Firestore client."""

    def _builder(*, factory: Optional[Any] = None, strict_writes: bool = False) -> Flask:
        config = console_config
        if strict_writes:
            config = ConsoleConfig(
                gcp_project_id=console_config.gcp_project_id,
                admission=AdmissionSettings(strict_writes=True),
            )

        app = create_app(factory=factory or firestore_factory, config=config)
        app.config.update(TESTING=True)

        return app

    return _builder


@pytest.fixture
def api_app(create_api_app) -> Flask:
    return create_api_app()


@pytest.fixture
def api_client(api_app) -> Iterator[Any]:
    """Yield a test client for the API app."""

    with api_app.test_client() as client:
        yield client


@pytest.fixture
def seed_device(fake_client) -> Callable[..., None]:
    def _seed(device_id: str, *user_ids: str) -> None:
        fake_client.seed(f"devices/{device_id}", {
            "deviceId": device_id,
            "accountIds": list(user_ids),
            "accountCount": len(user_ids),
            "accounts": [{"userId": uid, "email": f"{uid}@example.com"} for uid in user_ids],
        })

    return _seed
