"""Referential-integrity and counter reconciliation."""

from .engine import ParentOutcome, ReconciliationEngine, RunSummary
from .exceptions import SweepSetupError
from .membership import ArrayFieldSource, ChildCollectionSource, MembershipSource, RepairResult
from .orphans import CounterCheck, CounterRepairer, OrphanReport, detect_orphans
from .predicates import ActiveDocument, DocumentExists
from .reconcilers import (
    COUNTRY_CATEGORIES,
    LIKES,
    RECONCILERS,
    SAVES,
    ReconcilerDefinition,
    get_reconciler,
    run_reconciler,
)
from .reporting import JsonLinesReporter, MemoryReporter, TextReporter

__all__ = [
    "ActiveDocument",
    "ArrayFieldSource",
    "COUNTRY_CATEGORIES",
    "ChildCollectionSource",
    "CounterCheck",
    "CounterRepairer",
    "DocumentExists",
    "JsonLinesReporter",
    "LIKES",
    "MembershipSource",
    "MemoryReporter",
    "OrphanReport",
    "ParentOutcome",
    "RECONCILERS",
    "ReconcilerDefinition",
    "ReconciliationEngine",
    "RepairResult",
    "RunSummary",
    "SAVES",
    "SweepSetupError",
    "TextReporter",
    "detect_orphans",
    "get_reconciler",
    "run_reconciler",
]
