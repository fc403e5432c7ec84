"""App settings reader: resolves the accounts-per-device tunable."""

import logging
from typing import Optional

from app_platform.config.admission import DEFAULT_MAX_ACCOUNTS_PER_DEVICE, ConfigurationError, parse_max_accounts

from .base import BaseRepository, FirestoreClientBoundary, RetryPolicy

logger = logging.getLogger(__name__)


class AppSettingsStore(BaseRepository):
    """Reads the singleton settings document (app_settings/app_config).

    The document is owned by the settings screen; the core only reads it.
    """

    def __init__(
        self,
        client: FirestoreClientBoundary,
        *,
        collection_name: str = 'app_settings',
        document_id: str = 'app_config',
        default_max_accounts: int = DEFAULT_MAX_ACCOUNTS_PER_DEVICE,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        super().__init__(client, retry_policy=retry_policy)
        self.collection_name = collection_name
        self.document_id = document_id
        self.default_max_accounts = default_max_accounts

    def get_max_accounts_per_device(self) -> int:
        """Return maxAccountsPerDevice, or the safe default when absent/invalid.

        Read failures propagate (as FirestoreError); the admission gate decides
        what to do with them.
        """

        doc_ref = self._client.collection(self.collection_name).document(self.document_id)
        snapshot = self._execute_with_retry("get app settings", doc_ref.get)

        raw = (snapshot.to_dict() or {}).get('maxAccountsPerDevice') if snapshot.exists else None

        try:
            return parse_max_accounts(raw)
        except ConfigurationError as exc:
            self.logger.warning(f"{exc}; using default {self.default_max_accounts}")
            return self.default_max_accounts
