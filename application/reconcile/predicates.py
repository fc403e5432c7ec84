"""Validity oracles for referenced documents.

Each predicate scans its collection once per sweep (prime) and then answers
membership from memory.
"""

from __future__ import annotations

import logging
from typing import Optional, Set

from adapters.db.firestore.document_store import DocumentStore

logger = logging.getLogger(__name__)


class IdSetPredicate:
    """Callable predicate backed by a preloaded id set."""

    def __init__(self, collection: str):
        self.collection = collection
        self._ids: Optional[Set[str]] = None

    @property
    def primed(self) -> bool:
        return self._ids is not None

    @property
    def size(self) -> int:
        return len(self._ids or ())

    def prime(self, store: DocumentStore) -> None:
        raise NotImplementedError

    def __call__(self, candidate_id: str) -> bool:
        if self._ids is None:
            raise RuntimeError(f"Predicate over '{self.collection}' used before prime()")

        return candidate_id in self._ids


class DocumentExists(IdSetPredicate):
    """Valid while the referenced document physically exists (soft-deleted counts)."""

    def prime(self, store: DocumentStore) -> None:
        self._ids = set(store.list_ids(self.collection))
        logger.info(f"Loaded {len(self._ids)} ids from {self.collection} (including soft-deleted)")


class ActiveDocument(IdSetPredicate):
    """Valid when the referenced document exists and is not soft-deleted.

    A document without the soft-delete flag counts as active. This is looser
    than an `isDeleted == false` query, which would also reject documents that
    never had the flag written.
    """

    def __init__(self, collection: str, *, deleted_flag: str = 'isDeleted'):
        super().__init__(collection)
        self.deleted_flag = deleted_flag

    def prime(self, store: DocumentStore) -> None:
        self._ids = {doc.id for doc in store.list(self.collection) if doc.get(self.deleted_flag) is not True}
        logger.info(f"Loaded {len(self._ids)} active ids from {self.collection}")
