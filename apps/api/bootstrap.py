"""API application bootstrap wiring.

Builds the console config, the Firestore factory and the device services.
Centralizes DI for the API app.
"""

from __future__ import annotations

from typing import Tuple

from adapters.db.firestore import FirestoreServiceFactory, build_service_factory_with_config
from app_platform.config.config import ConsoleConfig, get_console_config
from application.devices.admission import AdmissionGate
from application.devices.registry import DeviceRegistry


def load_console_config() -> ConsoleConfig:
    return get_console_config()


def build_firestore_factory(cfg: ConsoleConfig) -> FirestoreServiceFactory:
    """Factory with a lazily built client; nothing touches the network here."""
    return build_service_factory_with_config(cfg)


def build_device_services(factory: FirestoreServiceFactory, cfg: ConsoleConfig) -> Tuple[DeviceRegistry, AdmissionGate]:
    """Return (registry, gate) sharing one devices store."""

    registry = DeviceRegistry(factory.get_devices_store(), write_retries=cfg.admission.write_retries)
    gate = AdmissionGate(registry, factory.get_settings_store())

    return registry, gate
