"""Top-level pytest configuration for the console core test suites."""

from __future__ import annotations

import pytest


def pytest_configure(config: pytest.Config) -> None:  # pragma: no cover - configuration hook
    """Register global markers used across the repository."""

    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (Firestore emulator)")
    config.addinivalue_line("markers", "devices: Device ledger and admission tests")
    config.addinivalue_line("markers", "reconcile: Reconciliation sweep tests")


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Ensure sensible default markers based on collection context."""

    for item in items:
        if not any(marker.name == "integration" for marker in item.iter_markers()):
            item.add_marker(pytest.mark.unit)

        fspath = str(item.fspath)
        if "devices" in fspath:
            item.add_marker(pytest.mark.devices)
        if "reconcile" in fspath:
            item.add_marker(pytest.mark.reconcile)
