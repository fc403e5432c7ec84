"""Console configuration loader with emulator support."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Optional

from .admission import AdmissionSettings
from .collection_names import CollectionNames

logger = logging.getLogger(__name__)


def _bool_env(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class ConsoleConfig:
    """Runtime configuration shared by the API and the reconciliation jobs."""

    gcp_project_id: Optional[str] = None
    firestore_emulator_host: Optional[str] = None
    use_emulators: bool = False
    cache_url: Optional[str] = None
    collections: CollectionNames = field(default_factory=CollectionNames)
    admission: AdmissionSettings = field(default_factory=AdmissionSettings)

    @classmethod
    def from_env(cls) -> "ConsoleConfig":
        """Load configuration from environment variables."""

        cfg = cls(
            gcp_project_id=os.getenv("GOOGLE_CLOUD_PROJECT") or None,
            firestore_emulator_host=os.getenv("FIRESTORE_EMULATOR_HOST") or None,
            use_emulators=_bool_env("USE_EMULATORS", False),
            cache_url=os.getenv("DEVICES_CACHE_URL") or None,
            collections=CollectionNames.from_env(),
            admission=AdmissionSettings.from_env(),
        )

        if cfg.use_emulators and not cfg.firestore_emulator_host:
            logger.warning("USE_EMULATORS is set but FIRESTORE_EMULATOR_HOST is empty; using production client")

        return cfg


_config: Optional[ConsoleConfig] = None


def get_console_config() -> ConsoleConfig:
    """Process-wide config, loaded from the environment on first use."""

    global _config
    if _config is None:
        _config = ConsoleConfig.from_env()
    return _config


def reset_console_config() -> None:
    """Drop the cached config (tests only)."""

    global _config
    _config = None
