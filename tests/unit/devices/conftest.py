"""Fixtures for device ledger and admission tests."""

import pytest

from adapters.db.firestore.devices_store import DevicesStore
from adapters.db.firestore.settings_store import AppSettingsStore
from application.devices.admission import AdmissionGate
from application.devices.registry import DeviceRegistry


@pytest.fixture
def devices_store(fake_client, fast_retry_policy):
    return DevicesStore(fake_client, retry_policy=fast_retry_policy)


@pytest.fixture
def registry(devices_store, clock):
    return DeviceRegistry(devices_store, write_retries=3, clock=clock)


@pytest.fixture
def settings_store(fake_client, fast_retry_policy):
    return AppSettingsStore(fake_client, retry_policy=fast_retry_policy)


@pytest.fixture
def gate(registry, settings_store):
    return AdmissionGate(registry, settings_store)
