"""Per-device account ledger.

A device document carries three redundant views of the same account set
(accountIds, accountCount, accounts). Every mutation here rewrites all three
in one document update, guarded by the update_time of the snapshot it was
computed from, so concurrent logins on one device never leave the views
disagreeing. Lost races are retried from a fresh read.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from adapters.db.firestore.base import (
    AlreadyExistsError,
    ConcurrentModificationError,
    NotFoundError,
    ValidationError,
)
from adapters.db.firestore.devices_store import DevicesStore
from adapters.db.firestore.models import Device, DeviceAccount, DeviceInfo, validate_device_id, validate_user_id

from .exceptions import DeviceLimitExceededError

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def heal_ledger(device: Device) -> bool:
    """Bring the three account views back in line; True when anything changed.

    The id set becomes the ordered union of accountIds and the embedded
    records. Ids without a record get a bare record; duplicates are dropped.
    """

    records: Dict[str, DeviceAccount] = {}
    for account in device.accounts:
        records.setdefault(account.user_id, account)

    ordered: List[str] = []
    for user_id in list(device.account_ids) + [account.user_id for account in device.accounts]:
        if user_id not in ordered:
            ordered.append(user_id)

    accounts = [records.get(user_id) or DeviceAccount(user_id=user_id) for user_id in ordered]

    changed = (
        ordered != device.account_ids
        or len(accounts) != len(device.accounts)
        or device.account_count != len(ordered)
    )

    device.account_ids = ordered
    device.accounts = accounts
    device.account_count = len(ordered)

    return changed


class DeviceRegistry:
    """Create/add/remove operations that keep the device ledger consistent."""

    def __init__(
        self,
        store: DevicesStore,
        *,
        write_retries: int = 3,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._store = store
        self._write_retries = max(1, write_retries)
        self._clock = clock

    # ------------------------------
    # Reads
    # ------------------------------

    def get_device(self, device_id: str, *, use_cache: bool = False) -> Optional[Device]:
        """Return the device, or None when absent or the id is unusable."""

        if not validate_device_id(device_id):
            logger.warning(f"Invalid device id provided to get_device: {device_id!r}")
            return None

        return self._store.get(device_id, use_cache=use_cache)

    def list_devices(self) -> List[Device]:
        return self._store.list_all()

    def list_devices_for_account(self, account_id: str) -> List[Device]:
        """Devices this account has logged in from.

        Full scan + filter: fine for admin tooling, not for high-QPS paths.
        """

        if not validate_user_id(account_id):
            return []

        return [device for device in self._store.list_all() if device.has_account(account_id)]

    # ------------------------------
    # Mutations
    # ------------------------------

    def create_device(self, device_id: str, account: DeviceAccount, device_info: Optional[DeviceInfo] = None) -> Device:
        """Create a device holding exactly one account.

        Create-if-absent: AlreadyExistsError when the device exists.
        """

        self._require_ids(device_id, account.user_id)

        now = self._clock()
        first = DeviceAccount(
            user_id=account.user_id,
            email=account.email,
            name=account.name,
            photo_url=account.photo_url,
            first_login_at=now,
            last_login_at=now,
        )
        device = Device(
            device_id=device_id,
            account_ids=[account.user_id],
            account_count=1,
            accounts=[first],
            device_info=device_info or DeviceInfo(),
            first_login_at=now,
            last_login_at=now,
            created_at=now,
            updated_at=now,
        )

        self._store.create(device)

        return device

    def add_account(
        self,
        device_id: str,
        account: DeviceAccount,
        device_info: Optional[DeviceInfo] = None,
        *,
        max_accounts: Optional[int] = None,
    ) -> Device:
        """Record a login of account on an existing device.

        Known account: refresh its lastLoginAt plus the device's lastLoginAt and
        deviceInfo. New account: append it to all three views. With max_accounts
        the append is refused (DeviceLimitExceededError) when the fresh snapshot
        is already at the cap.
        """

        self._require_ids(device_id, account.user_id)

        def _apply(device: Device) -> Dict[str, Any]:
            now = self._clock()
            heal_ledger(device)

            existing = device.find_account(account.user_id)
            if existing is not None:
                existing.last_login_at = now
                if existing.first_login_at is None:
                    existing.first_login_at = now
            else:
                if max_accounts is not None and device.account_count >= max_accounts:
                    raise DeviceLimitExceededError(device_id, max_accounts, device.account_count, device.accounts)

                device.accounts.append(DeviceAccount(
                    user_id=account.user_id,
                    email=account.email,
                    name=account.name,
                    photo_url=account.photo_url,
                    first_login_at=now,
                    last_login_at=now,
                ))
                device.account_ids.append(account.user_id)
                device.account_count = len(device.account_ids)

            if device_info is not None:
                device.device_info = device_info
            device.last_login_at = now
            device.updated_at = now

            updates = device.ledger_fields()
            updates.update({
                'deviceInfo': device.device_info.to_dict(),
                'lastLoginAt': now,
                'updatedAt': now,
            })
            return updates

        return self._guarded_mutation(device_id, "add account", _apply)

    def remove_account(self, device_id: str, account_id: str) -> Device:
        """Drop an account from all three views; the count is recomputed, never decremented."""

        self._require_ids(device_id, account_id)

        def _apply(device: Device) -> Dict[str, Any]:
            now = self._clock()

            device.accounts = [account for account in device.accounts if account.user_id != account_id]
            device.account_ids = [user_id for user_id in device.account_ids if user_id != account_id]
            heal_ledger(device)
            device.updated_at = now

            updates = device.ledger_fields()
            updates['updatedAt'] = now
            return updates

        return self._guarded_mutation(device_id, "remove account", _apply)

    def register_login(
        self,
        device_id: str,
        account: DeviceAccount,
        device_info: Optional[DeviceInfo] = None,
        *,
        max_accounts: Optional[int] = None,
    ) -> Device:
        """Create the device on first login, otherwise add/refresh the account."""

        try:
            return self.add_account(device_id, account, device_info, max_accounts=max_accounts)
        except NotFoundError:
            pass

        try:
            return self.create_device(device_id, account, device_info)
        except AlreadyExistsError:
            # Another login created the device in between
            logger.info(f"Device {device_id} created concurrently; adding account instead")
            return self.add_account(device_id, account, device_info, max_accounts=max_accounts)

    def update_device_info(self, device_id: str, device_info: DeviceInfo) -> None:
        self._require_ids(device_id)
        self._store.update(device_id, {'deviceInfo': device_info.to_dict(), 'updatedAt': self._clock()})

    def delete_device(self, device_id: str) -> None:
        """Administrative delete; devices are never removed automatically."""

        self._require_ids(device_id)
        self._store.delete(device_id)

    # ------------------------------
    # Internals
    # ------------------------------

    def _require_ids(self, device_id: str, *user_ids: str) -> None:
        if not validate_device_id(device_id):
            raise ValidationError(f"Invalid device id: {device_id!r}")
        for user_id in user_ids:
            if not validate_user_id(user_id):
                raise ValidationError(f"Invalid account id: {user_id!r}")

    def _guarded_mutation(self, device_id: str, op_name: str, apply: Callable[[Device], Dict[str, Any]]) -> Device:
        """Read-modify-write with an update_time precondition, retried on lost races."""

        last_error: Optional[ConcurrentModificationError] = None

        for attempt in range(1, self._write_retries + 1):
            device = self._store.get(device_id)
            if device is None:
                raise NotFoundError(f"Device not found: {device_id} (caller must create_device first)")

            updates = apply(device)

            try:
                self._store.update(device_id, updates, expected_update_time=device.update_time)
            except ConcurrentModificationError as e:
                last_error = e
                logger.info(f"Concurrent write on device {device_id} during {op_name} (attempt {attempt}/{self._write_retries})")
                continue

            return device

        raise ConcurrentModificationError(
            f"Gave up on {op_name} for device {device_id} after {self._write_retries} attempts",
            last_error,
        )
