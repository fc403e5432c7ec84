"""Accounts-per-device admission gate.

Stateless decision over the device ledger and the settings document. The
check never mutates; the login flow registers the account afterwards, so two
concurrent logins on one device can both be admitted and overrun the cap.
That is accepted: admission is a product limit, not a security boundary, and
every read failure is answered with "allow".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Tuple

from adapters.db.firestore.models import Device, DeviceAccount, DeviceInfo
from app_platform.config.admission import DEFAULT_MAX_ACCOUNTS_PER_DEVICE

from .exceptions import DeviceLimitExceededError
from .registry import DeviceRegistry

logger = logging.getLogger(__name__)

REASON_EXISTING_ACCOUNT = "Existing account"
REASON_ERROR = "Error checking limit"


def limit_reached_reason(max_limit: int) -> str:
    return f"Device limit reached ({max_limit} accounts maximum)"


class MaxAccountsProvider(Protocol):
    def get_max_accounts_per_device(self) -> int: ...


@dataclass
class AdmissionResult:
    """Outcome of an admission check."""

    allowed: bool
    reason: Optional[str] = None
    current_count: int = 0
    max_limit: int = DEFAULT_MAX_ACCOUNTS_PER_DEVICE
    existing_accounts: Optional[List[DeviceAccount]] = None
    degraded: bool = field(default=False, repr=False)  # fail-open answer

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            'allowed': self.allowed,
            'reason': self.reason,
            'currentCount': self.current_count,
            'maxLimit': self.max_limit,
        }
        if self.existing_accounts is not None:
            payload['existingAccounts'] = [account.to_json() for account in self.existing_accounts]
        return payload


class AdmissionGate:
    """Decides whether an account may log in from a device."""

    def __init__(self, registry: DeviceRegistry, settings: MaxAccountsProvider):
        self._registry = registry
        self._settings = settings

    def check_admission(self, device_id: str, account_id: str) -> AdmissionResult:
        """Decide admission for account_id on device_id.

        Order: resolve the cap, look up the device (absent: allow), known
        account (allow), count at or over the cap (deny), otherwise allow.
        Devices already over a lowered cap keep admitting their own accounts.
        """

        try:
            max_limit = self._settings.get_max_accounts_per_device()
            device = self._registry.get_device(device_id, use_cache=True)
        except Exception as e:
            logger.warning(f"Admission check failed for device {device_id}, allowing: {e}")
            return AdmissionResult(
                allowed=True,
                reason=REASON_ERROR,
                current_count=0,
                max_limit=DEFAULT_MAX_ACCOUNTS_PER_DEVICE,
                degraded=True,
            )

        if device is None:
            return AdmissionResult(allowed=True, current_count=0, max_limit=max_limit)

        if device.has_account(account_id):
            return AdmissionResult(
                allowed=True,
                reason=REASON_EXISTING_ACCOUNT,
                current_count=device.account_count,
                max_limit=max_limit,
            )

        if device.account_count >= max_limit:
            logger.info(f"Admission denied for {account_id} on device {device_id} ({device.account_count}/{max_limit})")
            return AdmissionResult(
                allowed=False,
                reason=limit_reached_reason(max_limit),
                current_count=device.account_count,
                max_limit=max_limit,
                existing_accounts=list(device.accounts),
            )

        return AdmissionResult(allowed=True, current_count=device.account_count, max_limit=max_limit)

    def admit(
        self,
        device_id: str,
        account: DeviceAccount,
        device_info: Optional[DeviceInfo] = None,
        *,
        strict: bool = False,
    ) -> Tuple[AdmissionResult, Optional[Device]]:
        """Check admission and, when allowed, record the login.

        With strict=True the cap is enforced again inside the guarded device
        write, so a racing login that filled the device turns into a denial.
        The device is None when the login was denied.
        """

        result = self.check_admission(device_id, account.user_id)
        if not result.allowed:
            return result, None

        max_accounts = result.max_limit if strict and not result.degraded else None

        try:
            device = self._registry.register_login(device_id, account, device_info, max_accounts=max_accounts)
        except DeviceLimitExceededError as e:
            logger.info(f"Admission denied at write time for {account.user_id} on device {device_id}")
            return AdmissionResult(
                allowed=False,
                reason=limit_reached_reason(e.max_accounts),
                current_count=e.current_count,
                max_limit=e.max_accounts,
                existing_accounts=e.existing_accounts,
            ), None

        return result, device
