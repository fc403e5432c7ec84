"""Orphan detection and cached-counter repair."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

from adapters.db.firestore.base import FirestoreError
from adapters.db.firestore.document_store import DocumentStore
from adapters.db.firestore.models import StoredDocument

from .membership import MembershipSource

logger = logging.getLogger(__name__)

ValidityPredicate = Callable[[str], bool]


@dataclass
class OrphanReport:
    """Partition of a parent's candidate references into valid and orphaned."""

    candidates: List[str] = field(default_factory=list)
    valid: List[str] = field(default_factory=list)
    orphans: List[str] = field(default_factory=list)


def detect_orphans(
    source: MembershipSource,
    store: DocumentStore,
    collection: str,
    parent: StoredDocument,
    predicate: ValidityPredicate,
) -> OrphanReport:
    """List the parent's candidates and split them with the validity predicate. Read-only."""

    report = OrphanReport(candidates=source.candidates(store, collection, parent))

    for candidate in report.candidates:
        if predicate(str(candidate)):
            report.valid.append(candidate)
        else:
            report.orphans.append(candidate)

    return report


@dataclass
class CounterCheck:
    """Stored vs actual value of a cached counter, and what happened to it."""

    counter_field: str
    stored: Any = None
    actual: int = 0
    mismatched: bool = False
    corrected: bool = False
    failed: bool = False
    error: Optional[str] = None


def counter_matches(stored: Any, actual: int) -> bool:
    """Absent counts as 0; anything that is not an integer never matches."""

    if stored is None:
        return actual == 0
    if isinstance(stored, bool) or not isinstance(stored, int):
        return False

    return stored == actual


class CounterRepairer:
    """Overwrites drifted counters with the recomputed value."""

    def __init__(self, store: DocumentStore):
        self._store = store

    def check(self, parent: StoredDocument, counter_field: str, actual_count: int) -> CounterCheck:
        stored = parent.get(counter_field)

        return CounterCheck(
            counter_field=counter_field,
            stored=stored,
            actual=actual_count,
            mismatched=not counter_matches(stored, actual_count),
        )

    def reconcile_count(
        self,
        collection: str,
        parent: StoredDocument,
        counter_field: str,
        actual_count: int,
        *,
        dry_run: bool = False,
    ) -> CounterCheck:
        """Correct the counter when it differs from actual_count.

        The write is guarded by the snapshot update_time: if the parent changed
        since it was read (a legitimate like, say) the correction is reported
        as failed and left for the next sweep.
        """

        result = self.check(parent, counter_field, actual_count)
        if not result.mismatched or dry_run:
            return result

        try:
            self._store.update(
                collection,
                parent.id,
                {counter_field: actual_count},
                expected_update_time=parent.update_time,
            )
        except FirestoreError as e:
            logger.error(f"Failed to correct {counter_field} on {collection}/{parent.id}: {e}")
            result.failed = True
            result.error = str(e)
            return result

        result.corrected = True

        return result
