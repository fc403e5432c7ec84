"""Generic document access over a Firestore client.

Thin, collection-agnostic store used by the reconciliation jobs and the
settings reader. Every call goes through the repository retry policy and
breaker; nothing here spans more than one document, so callers must not
assume multi-document atomicity.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from .base import BaseRepository, FirestoreClientBoundary, RetryPolicy, ValidationError
from .models import StoredDocument

logger = logging.getLogger(__name__)


def _snapshot_to_document(snapshot: Any) -> StoredDocument:
    return StoredDocument(
        id=snapshot.id,
        data=snapshot.to_dict() or {},
        update_time=getattr(snapshot, 'update_time', None),
    )


class DocumentStore(BaseRepository):
    """Collection + id addressed document access."""

    def __init__(self, client: FirestoreClientBoundary, *, retry_policy: Optional[RetryPolicy] = None):
        super().__init__(client, retry_policy=retry_policy)

    def _document(self, collection: str, doc_id: str) -> Any:
        if not doc_id or not isinstance(doc_id, str) or not doc_id.strip():
            raise ValidationError(f"Invalid document id for {collection}: {doc_id!r}")

        return self._client.collection(collection).document(doc_id)

    def _child_collection(self, collection: str, doc_id: str, child: str) -> Any:
        return self._document(collection, doc_id).collection(child)

    # ------------------------------
    # Reads
    # ------------------------------

    def get(self, collection: str, doc_id: str) -> Optional[StoredDocument]:
        """Return the document or None when it does not exist."""

        doc_ref = self._document(collection, doc_id)
        snapshot = self._execute_with_retry(f"get {collection}/{doc_id}", doc_ref.get)

        if not snapshot.exists:
            return None

        return _snapshot_to_document(snapshot)

    def list(self, collection: str, filters: Optional[Dict[str, Any]] = None) -> List[StoredDocument]:
        """Return every document of a collection, optionally filtered by field equality."""

        query = self._client.collection(collection)
        for field, value in (filters or {}).items():
            query = query.where(field, '==', value)

        snapshots = self._execute_with_retry(f"list {collection}", lambda: list(query.stream()))

        return [_snapshot_to_document(snapshot) for snapshot in snapshots]

    def list_ids(self, collection: str) -> List[str]:
        """Return the ids of every document in a collection."""

        return [doc.id for doc in self.list(collection)]

    def list_children(self, collection: str, doc_id: str, child: str) -> List[StoredDocument]:
        """Return every document of a parent's child collection."""

        child_ref = self._child_collection(collection, doc_id, child)
        snapshots = self._execute_with_retry(
            f"list {collection}/{doc_id}/{child}",
            lambda: list(child_ref.stream()),
        )

        return [_snapshot_to_document(snapshot) for snapshot in snapshots]

    # ------------------------------
    # Writes
    # ------------------------------

    def set(self, collection: str, doc_id: str, data: Dict[str, Any], *, merge: bool = False) -> None:
        """Write a whole document (or merge into it)."""

        doc_ref = self._document(collection, doc_id)
        self._execute_with_retry(f"set {collection}/{doc_id}", lambda: doc_ref.set(data, merge=merge))

    def create(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        """Create-if-absent; raises AlreadyExistsError when the document exists."""

        doc_ref = self._document(collection, doc_id)
        self._execute_with_retry(f"create {collection}/{doc_id}", lambda: doc_ref.create(data))

    def update(
        self,
        collection: str,
        doc_id: str,
        fields: Dict[str, Any],
        *,
        expected_update_time: Any = None,
    ) -> None:
        """Update fields of an existing document.

        With expected_update_time the write only lands if the document was not
        modified since that snapshot; otherwise ConcurrentModificationError.
        """

        doc_ref = self._document(collection, doc_id)

        def _write() -> Any:
            if expected_update_time is None:
                return doc_ref.update(fields)

            option = self._client.write_option(last_update_time=expected_update_time)
            return doc_ref.update(fields, option=option)

        self._execute_with_retry(f"update {collection}/{doc_id}", _write)

    def delete(self, collection: str, doc_id: str) -> None:
        doc_ref = self._document(collection, doc_id)
        self._execute_with_retry(f"delete {collection}/{doc_id}", doc_ref.delete)

    def delete_child(self, collection: str, doc_id: str, child: str, child_id: str) -> None:
        """Delete one document of a parent's child collection."""

        child_ref = self._child_collection(collection, doc_id, child).document(child_id)
        self._execute_with_retry(f"delete {collection}/{doc_id}/{child}/{child_id}", child_ref.delete)

    # ------------------------------
    # Connectivity
    # ------------------------------

    def ping(self) -> None:
        """Force one lightweight API call; raises when the store is unreachable.

        Single attempt, no retries.
        """

        try:
            # collections() is lazy; advancing it forces one API call
            next(iter(self._client.collections()), None)
        except Exception as e:
            self._handle_firestore_error("ping", e)
