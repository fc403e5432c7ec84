"""Device admission exceptions."""

from __future__ import annotations

from typing import List, Optional

from adapters.db.firestore.base import FirestoreError
from adapters.db.firestore.models import DeviceAccount


class DeviceLimitExceededError(FirestoreError):
    """A new account would push a device past its accounts-per-device cap."""

    def __init__(
        self,
        device_id: str,
        max_accounts: int,
        current_count: int,
        existing_accounts: Optional[List[DeviceAccount]] = None,
    ):
        super().__init__(
            f"Device limit reached ({max_accounts} accounts maximum) on device {device_id}",
            "DEVICE_LIMIT_REACHED",
        )
        self.device_id = device_id
        self.max_accounts = max_accounts
        self.current_count = current_count
        self.existing_accounts = list(existing_accounts or [])
