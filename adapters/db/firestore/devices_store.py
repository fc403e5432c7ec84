"""Firestore devices data access layer with optional Redis read-through cache for by-ID reads."""

import logging
import os
from typing import Any, Dict, List, Optional

from .base import BaseRepository, FirestoreClientBoundary, NotFoundError, RetryPolicy, ValidationError
from .cache_utils import TOMBSTONE, CacheClient, decode_payload, encode_payload
from .lru_cache import LRUCache
from .models import Device, validate_device_id

logger = logging.getLogger(__name__)


class DevicesStore(BaseRepository):
    """Firestore-based devices data store.

    Writes always go to Firestore and invalidate both cache tiers. Cached reads
    are only served and filled when the caller asks for them (admission
    checks); mutations read fresh snapshots so their update_time preconditions
    are meaningful.

    Fills never resurrect a device that was invalidated while it was being
    loaded: the LRU refuses fills older than the latest delete of the key, and
    in Redis an invalidation leaves a short-lived tombstone that NX fills
    cannot overwrite.
    """

    def __init__(
        self,
        client: FirestoreClientBoundary,
        *,
        collection_name: str = 'devices',
        cache: Optional[CacheClient] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        """Initialize with Firestore client and optional cache client.

        Cache client is expected to provide: get(key), set(key, value, ex=, nx=)
        """
        super().__init__(client, retry_policy=retry_policy)
        self.collection_name = collection_name
        self._cache = cache
        self._cache_prefix = os.getenv('DEVICES_CACHE_PREFIX', 'dev:')
        self._ttl_s = max(1, int(os.getenv('DEVICES_MAX_TTL_S', '60')))
        self._tombstone_ttl_s = max(1, int(os.getenv('DEVICES_TOMBSTONE_TTL_S', '10')))
        self._lru = LRUCache(capacity=int(os.getenv('DEVICES_LRU_CAPACITY', '128')), ttl_s=int(os.getenv('DEVICES_LRU_TTL_S', '3')))

    @property
    def collection(self) -> Any:
        return self._client.collection(self.collection_name)

    def _cache_key_id(self, device_id: str) -> str:
        return f"{self._cache_prefix}{device_id}"

    def _doc_ref(self, device_id: str) -> Any:
        if not validate_device_id(device_id):
            raise ValidationError(f"Invalid device id: {device_id!r}")

        return self.collection.document(device_id)

    # ------------------------------
    # Cache helpers
    # ------------------------------

    def _cached(self, device_id: str, version: int) -> Optional[Device]:
        key = self._cache_key_id(device_id)

        # 1) LRU
        obj = self._lru.get(key)
        if obj is not None:
            try:
                return Device.from_dict(obj, device_id=device_id)
            except (TypeError, ValueError):
                self._lru.delete(key)

        # 2) Redis/external cache
        if self._cache is not None:
            try:
                obj = decode_payload(self._cache.get(key))
            except Exception as e:
                self.logger.debug(f"Device cache read failed for {device_id}: {e}")
                obj = None

            if obj is not None:
                try:
                    device = Device.from_dict(obj, device_id=device_id)
                except (TypeError, ValueError):
                    return None
                self._lru.set_versioned(key, obj, version)
                return device

        return None

    def _fill_cache(self, device: Device, version: int) -> None:
        key = self._cache_key_id(device.device_id)
        payload = device.to_json()

        if not self._lru.set_versioned(key, payload, version):
            self.logger.debug(f"Skipped cache fill for {device.device_id}, invalidated during read")
            return

        if self._cache is not None:
            try:
                self._cache.set(key, encode_payload(payload), ex=self._ttl_s, nx=True)
            except Exception as e:
                self.logger.debug(f"Device cache fill failed for {device.device_id}: {e}")

    def invalidate(self, device_id: str) -> None:
        """Drop a device from both cache tiers."""

        key = self._cache_key_id(device_id)
        self._lru.delete(key)

        if self._cache is not None:
            try:
                self._cache.set(key, TOMBSTONE, ex=self._tombstone_ttl_s)
            except Exception as e:
                self.logger.warning(f"Device cache invalidation failed for {device_id}: {e}")

    # ------------------------------
    # Reads
    # ------------------------------

    def get(self, device_id: str, *, use_cache: bool = False) -> Optional[Device]:
        """Get device by ID; None when absent."""

        doc_ref = self._doc_ref(device_id)

        if not use_cache:
            snapshot = self._execute_with_retry(f"get device {device_id}", doc_ref.get)
            return self._from_snapshot(snapshot)

        version = self._lru.version()
        cached = self._cached(device_id, version)
        if cached is not None:
            return cached

        snapshot = self._execute_with_retry(f"get device {device_id}", doc_ref.get)
        device = self._from_snapshot(snapshot)
        if device is not None:
            self._fill_cache(device, version)

        return device

    @staticmethod
    def _from_snapshot(snapshot: Any) -> Optional[Device]:
        if not snapshot.exists:
            return None

        return Device.from_dict(snapshot.to_dict() or {}, device_id=snapshot.id, update_time=snapshot.update_time)

    def list_all(self) -> List[Device]:
        """Every device, most recent login first."""

        snapshots = self._execute_with_retry("list devices", lambda: list(self.collection.stream()))
        devices = [
            Device.from_dict(snapshot.to_dict() or {}, device_id=snapshot.id, update_time=snapshot.update_time)
            for snapshot in snapshots
        ]
        devices.sort(key=lambda d: d.last_login_at.timestamp() if d.last_login_at else 0.0, reverse=True)

        return devices

    # ------------------------------
    # Writes
    # ------------------------------

    def create(self, device: Device) -> None:
        """Create-if-absent; AlreadyExistsError when the document exists."""

        doc_ref = self._doc_ref(device.device_id)
        self._execute_with_retry(f"create device {device.device_id}", lambda: doc_ref.create(device.to_dict()))
        self.invalidate(device.device_id)

        self.logger.info(f"Created device {device.device_id} with account {device.account_ids}")

    def update(self, device_id: str, updates: Dict[str, Any], *, expected_update_time: Any = None) -> None:
        """Update device fields, optionally guarded by the snapshot update_time."""

        doc_ref = self._doc_ref(device_id)

        def _write() -> Any:
            if expected_update_time is None:
                return doc_ref.update(updates)

            option = self._client.write_option(last_update_time=expected_update_time)
            return doc_ref.update(updates, option=option)

        try:
            self._execute_with_retry(f"update device {device_id}", _write)
        finally:
            # Invalidate even on failure; the write may have landed before the error surfaced
            self.invalidate(device_id)

    def delete(self, device_id: str) -> None:
        """Delete device by ID; NotFoundError when absent."""

        doc_ref = self._doc_ref(device_id)
        snapshot = self._execute_with_retry(f"get device {device_id}", doc_ref.get)
        if not snapshot.exists:
            raise NotFoundError(f"Device not found: {device_id}")

        self._execute_with_retry(f"delete device {device_id}", doc_ref.delete)
        self.invalidate(device_id)

        self.logger.info(f"Deleted device {device_id}")
