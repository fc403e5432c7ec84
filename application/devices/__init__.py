"""Device ledger and admission gate."""

from .admission import AdmissionGate, AdmissionResult
from .exceptions import DeviceLimitExceededError
from .registry import DeviceRegistry

__all__ = ["AdmissionGate", "AdmissionResult", "DeviceLimitExceededError", "DeviceRegistry"]
