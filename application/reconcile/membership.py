"""Membership sources: where a parent's references live and how to prune them."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Protocol

from google.cloud import firestore

from adapters.db.firestore.base import FirestoreError
from adapters.db.firestore.document_store import DocumentStore
from adapters.db.firestore.models import StoredDocument

logger = logging.getLogger(__name__)

DEFAULT_UPDATED_BY = 'cleanup-script'


@dataclass
class RepairResult:
    """Ids actually removed and ids whose removal failed."""

    removed: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


class MembershipSource(Protocol):
    """Candidate listing and orphan removal for one kind of reference."""

    kind: str

    def describe(self) -> str: ...

    def candidates(self, store: DocumentStore, collection: str, parent: StoredDocument) -> List[str]: ...

    def repair(
        self,
        store: DocumentStore,
        collection: str,
        parent: StoredDocument,
        orphans: List[str],
        valid: List[str],
    ) -> RepairResult: ...


class ChildCollectionSource:
    """References stored as a child collection keyed by the referenced id (prompt likes/saves)."""

    kind = 'child_collection'

    def __init__(self, child_collection: str):
        self.child_collection = child_collection

    def describe(self) -> str:
        return f"child collection '{self.child_collection}'"

    def candidates(self, store: DocumentStore, collection: str, parent: StoredDocument) -> List[str]:
        return [child.id for child in store.list_children(collection, parent.id, self.child_collection)]

    def repair(
        self,
        store: DocumentStore,
        collection: str,
        parent: StoredDocument,
        orphans: List[str],
        valid: List[str],
    ) -> RepairResult:
        """Delete each orphan child on its own; one failure does not stop the rest."""

        result = RepairResult()

        for child_id in orphans:
            try:
                store.delete_child(collection, parent.id, self.child_collection, child_id)
            except FirestoreError as e:
                logger.error(f"Failed to remove {self.child_collection}/{child_id} from {collection}/{parent.id}: {e}")
                result.failed.append(child_id)
                continue

            result.removed.append(child_id)

        return result


class ArrayFieldSource:
    """References stored as an array field on the parent (country categories).

    Duplicates are kept in order; a missing or non-list field reads as empty.
    Elements keep their stored type and are matched against ids as strings.
    """

    kind = 'array_field'

    def __init__(self, field_name: str, *, updated_by: str = DEFAULT_UPDATED_BY):
        self.field_name = field_name
        self.updated_by = updated_by

    def describe(self) -> str:
        return f"array field '{self.field_name}'"

    def candidates(self, store: DocumentStore, collection: str, parent: StoredDocument) -> List[Any]:
        raw = parent.get(self.field_name)
        if not isinstance(raw, list):
            return []

        return list(raw)

    def repair(
        self,
        store: DocumentStore,
        collection: str,
        parent: StoredDocument,
        orphans: List[Any],
        valid: List[Any],
    ) -> RepairResult:
        """Write the filtered array back in a single update."""

        if not orphans:
            return RepairResult()

        fields = {
            self.field_name: list(valid),
            'updatedAt': firestore.SERVER_TIMESTAMP,
            'updatedBy': self.updated_by,
        }

        try:
            store.update(collection, parent.id, fields, expected_update_time=parent.update_time)
        except FirestoreError as e:
            logger.error(f"Failed to rewrite {self.field_name} on {collection}/{parent.id}: {e}")
            return RepairResult(failed=list(orphans))

        return RepairResult(removed=list(orphans))
