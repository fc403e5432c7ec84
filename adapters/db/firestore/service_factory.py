"""Service factory for creating and managing Firestore repositories."""

import logging
from typing import Any, Callable, Dict, Optional

from google.cloud import firestore

from app_platform.config.config import ConsoleConfig

from .client import get_firestore_client
from .devices_store import DevicesStore
from .document_store import DocumentStore
from .settings_store import AppSettingsStore

logger = logging.getLogger(__name__)


class FirestoreServiceFactory:
    """
    Manual DI factory for Firestore repositories.
    Boundary-first: only the Firestore client is injectable.
    Lifetimes: default singleton per factory instance.
    """

    def __init__(self, client: Optional[firestore.Client] = None, *, config: Optional[ConsoleConfig] = None, cache_client: Optional[Any] = None):
        """
        Constructor injection only. Prefer passing a client directly for tests,
        otherwise provide a config to construct a client lazily.
        """

        self._client = client
        self.config = config or ConsoleConfig()
        self._cache_client = cache_client
        self._repositories: Dict[str, Any] = {}

    @property
    def client(self) -> firestore.Client:
        """Get or create the Firestore client; raises when it cannot be built."""

        if self._client is None:
            self._client = get_firestore_client(self.config)

        return self._client

    def _get_repository(self, key: str, factory: Callable[[firestore.Client], Any]) -> Any:
        """Memoize repository instances by key."""

        if key not in self._repositories:
            self._repositories[key] = factory(self.client)

        return self._repositories[key]

    def get_document_store(self) -> DocumentStore:
        """Get the generic document store."""
        return self._get_repository('documents', lambda client: DocumentStore(client))

    def get_devices_store(self) -> DevicesStore:
        """Get devices store instance."""
        return self._get_repository(
            'devices',
            lambda client: DevicesStore(
                client,
                collection_name=self.config.collections.devices,
                cache=self._resolve_cache_client(),
            ),
        )

    def get_settings_store(self) -> AppSettingsStore:
        """Get the app settings reader."""
        return self._get_repository(
            'settings',
            lambda client: AppSettingsStore(
                client,
                collection_name=self.config.collections.settings,
                document_id=self.config.collections.settings_document,
                default_max_accounts=self.config.admission.default_max_accounts,
            ),
        )

    def _resolve_cache_client(self) -> Optional[Any]:
        """Resolve a Redis-like cache client from the injected cache or config."""

        if self._cache_client is not None:
            return self._cache_client

        url = self.config.cache_url
        if not url:
            return None

        import redis

        try:
            self._cache_client = redis.Redis.from_url(url)
        except (ValueError, redis.RedisError) as e:
            logger.warning(f"Device cache disabled, invalid cache URL: {e}")
            return None

        return self._cache_client

    def reset_repositories(self) -> None:
        """Reset all repositories (for testing)."""
        self._repositories.clear()

    def health_check(self) -> Dict[str, Any]:
        """Perform health check on the Firestore connection."""

        try:
            self.get_document_store().ping()

            result = {
                'status': 'healthy',
                'client_initialized': self._client is not None,
            }
        except Exception as e:
            logger.error(f"Firestore health check failed: {e}")
            result = {
                'status': 'unhealthy',
                'error': str(e),
                'client_initialized': self._client is not None,
            }

        return result


def build_service_factory_with_config(config: ConsoleConfig) -> FirestoreServiceFactory:
    """Composition-root helper: build a factory using config to obtain client."""
    return FirestoreServiceFactory(client=None, config=config)
