"""Firestore repositories and factories."""

from .base import (  # noqa: F401
    AlreadyExistsError,
    ConcurrentModificationError,
    FirestoreError,
    NotFoundError,
    PermissionError,
    RetryPolicy,
    TransientStoreError,
    ValidationError,
)
from .devices_store import DevicesStore  # noqa: F401
from .document_store import DocumentStore  # noqa: F401
from .models import Device, DeviceAccount, DeviceInfo, StoredDocument  # noqa: F401
from .service_factory import FirestoreServiceFactory, build_service_factory_with_config  # noqa: F401
from .settings_store import AppSettingsStore  # noqa: F401
