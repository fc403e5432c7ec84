"""Configuration utilities and loaders."""

from .admission import (
    DEFAULT_MAX_ACCOUNTS_PER_DEVICE,
    AdmissionSettings,
    ConfigurationError,
    normalize_max_accounts,
    parse_max_accounts,
)
from .collection_names import CollectionNames
from .config import ConsoleConfig, get_console_config, reset_console_config

__all__ = [
    "DEFAULT_MAX_ACCOUNTS_PER_DEVICE",
    "AdmissionSettings",
    "CollectionNames",
    "ConfigurationError",
    "ConsoleConfig",
    "get_console_config",
    "normalize_max_accounts",
    "parse_max_accounts",
    "reset_console_config",
]
