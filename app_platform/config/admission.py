"""Admission (accounts-per-device) configuration."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_MAX_ACCOUNTS_PER_DEVICE = 3


class ConfigurationError(ValueError):
    """A tunable holds a value the core cannot use."""


def parse_max_accounts(raw: Any) -> int:
    """Parse a stored maxAccountsPerDevice value; ConfigurationError when unusable."""

    if raw is None:
        raise ConfigurationError("maxAccountsPerDevice is not set")
    if isinstance(raw, bool):
        raise ConfigurationError(f"maxAccountsPerDevice must be a number, got {raw!r}")

    if isinstance(raw, float):
        if not raw.is_integer():
            raise ConfigurationError(f"maxAccountsPerDevice must be a whole number, got {raw!r}")
        value = int(raw)
    elif isinstance(raw, int):
        value = raw
    elif isinstance(raw, str):
        try:
            value = int(raw.strip())
        except ValueError as exc:
            raise ConfigurationError(f"maxAccountsPerDevice must be numeric, got {raw!r}") from exc
    else:
        raise ConfigurationError(f"maxAccountsPerDevice must be numeric, got {type(raw).__name__}")

    if value < 1:
        raise ConfigurationError(f"maxAccountsPerDevice must be >= 1, got {value}")

    return value


def normalize_max_accounts(raw: Any, default: int = DEFAULT_MAX_ACCOUNTS_PER_DEVICE) -> int:
    """Like parse_max_accounts but never raises: falls back to the safe default."""

    try:
        return parse_max_accounts(raw)
    except ConfigurationError as exc:
        logger.warning(f"{exc}; using default {default}")
        return default


def _int_env(name: str, default: int, *, minimum: int | None = None) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        parsed = int(raw)
    except ValueError:
        logger.warning(f"Invalid integer for {name}: {raw!r}; using default {default}")
        return default
    if minimum is not None and parsed < minimum:
        return minimum
    return parsed


@dataclass(slots=True)
class AdmissionSettings:
    """Normalized admission settings."""

    default_max_accounts: int = DEFAULT_MAX_ACCOUNTS_PER_DEVICE
    write_retries: int = 3
    strict_writes: bool = False  # re-check the cap inside the device write

    @classmethod
    def from_env(cls) -> "AdmissionSettings":
        """Load configuration from environment variables."""

        return cls(
            default_max_accounts=normalize_max_accounts(
                os.getenv("MAX_ACCOUNTS_PER_DEVICE_DEFAULT", str(DEFAULT_MAX_ACCOUNTS_PER_DEVICE))
            ),
            write_retries=_int_env("DEVICE_WRITE_RETRIES", 3, minimum=1),
            strict_writes=os.getenv("ADMISSION_STRICT_WRITES", "false").strip().lower() in {"1", "true", "yes", "on"},
        )
