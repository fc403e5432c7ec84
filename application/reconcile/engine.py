"""Sweep driver: detect, repair and recount every parent of a collection."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from adapters.db.firestore.base import FirestoreError
from adapters.db.firestore.document_store import DocumentStore
from adapters.db.firestore.models import StoredDocument

from .exceptions import SweepSetupError
from .membership import MembershipSource
from .orphans import CounterRepairer, ValidityPredicate, detect_orphans
from .reporting import MemoryReporter, Reporter

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ParentOutcome:
    """What one sweep found and did for a single parent."""

    parent_id: str
    label: str = ""
    members_checked: int = 0
    valid_count: int = 0
    orphans: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    removal_failed: List[str] = field(default_factory=list)
    counter_field: Optional[str] = None
    stored_count: Any = None
    actual_count: Optional[int] = None
    counter_mismatched: bool = False
    counter_corrected: bool = False
    counter_failed: bool = False
    error: Optional[str] = None

    @property
    def affected(self) -> bool:
        return bool(self.orphans) or self.counter_mismatched

    @property
    def failed(self) -> bool:
        return self.error is not None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            'parentId': self.parent_id,
            'label': self.label,
            'membersChecked': self.members_checked,
            'validCount': self.valid_count,
            'orphans': list(self.orphans),
            'removed': list(self.removed),
            'removalFailed': list(self.removal_failed),
        }
        if self.counter_field:
            payload.update({
                'counterField': self.counter_field,
                'storedCount': self.stored_count,
                'actualCount': self.actual_count,
                'counterMismatched': self.counter_mismatched,
                'counterCorrected': self.counter_corrected,
                'counterFailed': self.counter_failed,
            })
        if self.error is not None:
            payload['error'] = self.error
        return payload


@dataclass
class RunSummary:
    """Totals of one sweep plus the per-parent outcomes, in listing order."""

    reconciler: str
    collection: str
    dry_run: bool
    parents_checked: int = 0
    members_checked: int = 0
    parents_affected: int = 0
    orphans_found: int = 0
    orphans_removed: int = 0
    orphan_removal_failures: int = 0
    counters_mismatched: int = 0
    counters_corrected: int = 0
    counter_correction_failures: int = 0
    parents_failed: int = 0
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    outcomes: List[ParentOutcome] = field(default_factory=list)

    def add(self, outcome: ParentOutcome) -> None:
        self.outcomes.append(outcome)
        self.parents_checked += 1

        if outcome.failed:
            self.parents_failed += 1
            return

        self.members_checked += outcome.members_checked
        self.orphans_found += len(outcome.orphans)
        self.orphans_removed += len(outcome.removed)
        self.orphan_removal_failures += len(outcome.removal_failed)
        if outcome.affected:
            self.parents_affected += 1
        if outcome.counter_mismatched:
            self.counters_mismatched += 1
        if outcome.counter_corrected:
            self.counters_corrected += 1
        if outcome.counter_failed:
            self.counter_correction_failures += 1

    @property
    def clean(self) -> bool:
        """Nothing found to repair and nothing failed."""

        return self.orphans_found == 0 and self.counters_mismatched == 0 and self.parents_failed == 0

    def to_dict(self, *, include_timing: bool = True, include_outcomes: bool = True) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            'reconciler': self.reconciler,
            'collection': self.collection,
            'dryRun': self.dry_run,
            'parentsChecked': self.parents_checked,
            'membersChecked': self.members_checked,
            'parentsAffected': self.parents_affected,
            'orphansFound': self.orphans_found,
            'orphansRemoved': self.orphans_removed,
            'orphanRemovalFailures': self.orphan_removal_failures,
            'countersMismatched': self.counters_mismatched,
            'countersCorrected': self.counters_corrected,
            'counterCorrectionFailures': self.counter_correction_failures,
            'parentsFailed': self.parents_failed,
        }
        if include_timing:
            payload['startedAt'] = self.started_at.isoformat() if self.started_at else None
            payload['finishedAt'] = self.finished_at.isoformat() if self.finished_at else None
        if include_outcomes:
            payload['outcomes'] = [outcome.to_dict() for outcome in self.outcomes]
        return payload


class ReconciliationEngine:
    """Runs one full sweep over a parent collection.

    Within a parent the steps are strictly ordered: list candidates, split
    them, remove orphans, recount. Parents are independent and may be spread
    over a thread pool. A failing parent is logged and skipped; failing to
    list the parents or to prime the predicate aborts before any write.
    """

    def __init__(
        self,
        store: DocumentStore,
        *,
        reporter: Optional[Reporter] = None,
        max_workers: int = 1,
        name: str = 'sweep',
        label_fields: Sequence[str] = (),
    ):
        self._store = store
        self._reporter = reporter or MemoryReporter()
        self._max_workers = max(1, max_workers)
        self._name = name
        self._label_fields = tuple(label_fields)
        self._counter_repairer = CounterRepairer(store)
        self._emit_lock = threading.Lock()

    def _emit(self, event: str, **fields: Any) -> None:
        record = {'event': event, 'reconciler': self._name}
        record.update(fields)
        with self._emit_lock:
            self._reporter.emit(record)

    def _label(self, parent: StoredDocument) -> str:
        values = [str(parent.get(name)) for name in self._label_fields if parent.get(name)]
        if not values:
            return parent.id
        if len(values) == 1:
            return values[0]
        return f"{values[0]} ({', '.join(values[1:])})"

    def run_sweep(
        self,
        parent_collection: str,
        source: MembershipSource,
        predicate: ValidityPredicate,
        counter_field: Optional[str] = None,
        *,
        dry_run: bool = False,
    ) -> RunSummary:
        """Sweep every parent of parent_collection.

        dry_run reads and reports exactly as an apply run would, and writes nothing.
        """

        summary = RunSummary(reconciler=self._name, collection=parent_collection, dry_run=dry_run, started_at=_utcnow())
        self._emit(
            'sweep_started',
            collection=parent_collection,
            source=source.describe(),
            counterField=counter_field,
            dryRun=dry_run,
        )

        try:
            prime = getattr(predicate, 'prime', None)
            if prime is not None:
                prime(self._store)
            parents = self._store.list(parent_collection)
        except FirestoreError as e:
            logger.error(f"Sweep setup failed for {parent_collection}: {e}")
            self._emit('sweep_aborted', collection=parent_collection, error=str(e))
            raise SweepSetupError(f"Cannot start sweep over {parent_collection}: {e}", e) from e

        self._emit('parents_listed', collection=parent_collection, parents=len(parents))

        def _run(parent: StoredDocument) -> ParentOutcome:
            return self._process_parent(parent_collection, parent, source, predicate, counter_field, dry_run)

        if self._max_workers == 1 or len(parents) <= 1:
            outcomes = [_run(parent) for parent in parents]
        else:
            # map() keeps listing order, so summaries stay deterministic
            with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
                outcomes = list(pool.map(_run, parents))

        for outcome in outcomes:
            summary.add(outcome)

        summary.finished_at = _utcnow()
        self._emit('sweep_finished', summary=summary.to_dict(include_outcomes=False))

        logger.info(
            f"Sweep {self._name} over {parent_collection} done: {summary.parents_checked} parents, "
            f"{summary.orphans_found} orphans, {summary.counters_mismatched} counter mismatches"
        )

        return summary

    def _process_parent(
        self,
        collection: str,
        parent: StoredDocument,
        source: MembershipSource,
        predicate: ValidityPredicate,
        counter_field: Optional[str],
        dry_run: bool,
    ) -> ParentOutcome:
        outcome = ParentOutcome(parent_id=parent.id, label=self._label(parent), counter_field=counter_field)

        try:
            report = detect_orphans(source, self._store, collection, parent, predicate)
            outcome.members_checked = len(report.candidates)
            outcome.valid_count = len(report.valid)
            outcome.orphans = [str(orphan) for orphan in report.orphans]

            if report.orphans and not dry_run:
                repair = source.repair(self._store, collection, parent, report.orphans, report.valid)
                outcome.removed = [str(member) for member in repair.removed]
                outcome.removal_failed = [str(member) for member in repair.failed]
                for orphan_id in outcome.removal_failed:
                    self._emit('repair_failed', parentId=parent.id, label=outcome.label, memberId=orphan_id)

            if counter_field:
                check = self._counter_repairer.reconcile_count(
                    collection, parent, counter_field, len(report.valid), dry_run=dry_run
                )
                outcome.stored_count = check.stored
                outcome.actual_count = check.actual
                outcome.counter_mismatched = check.mismatched
                outcome.counter_corrected = check.corrected
                outcome.counter_failed = check.failed
                if check.failed:
                    self._emit(
                        'counter_failed',
                        parentId=parent.id,
                        label=outcome.label,
                        counterField=counter_field,
                        error=check.error,
                    )
        except Exception as e:
            logger.error(f"Failed to reconcile {collection}/{parent.id}: {e}")
            outcome.error = str(e)
            self._emit('parent_failed', parentId=parent.id, label=outcome.label, error=outcome.error)
            return outcome

        self._emit('parent_checked', dryRun=dry_run, **outcome.to_dict())

        return outcome
