"""The concrete sweeps the console runs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from adapters.db.firestore.document_store import DocumentStore
from app_platform.config.collection_names import CollectionNames

from .engine import ReconciliationEngine, RunSummary
from .membership import ArrayFieldSource, ChildCollectionSource, MembershipSource
from .predicates import ActiveDocument, DocumentExists, IdSetPredicate
from .reporting import Reporter


@dataclass(frozen=True)
class ReconcilerDefinition:
    """How to wire one sweep: parent collection, membership, validity, counter."""

    name: str
    description: str
    parent_collection: Callable[[CollectionNames], str]
    source: Callable[[], MembershipSource]
    predicate: Callable[[CollectionNames], IdSetPredicate]
    counter_field: Optional[str] = None
    label_fields: Tuple[str, ...] = ()


LIKES = ReconcilerDefinition(
    name='likes',
    description="Remove likes from hard-deleted users and fix likesCount on prompts",
    parent_collection=lambda names: names.prompts,
    source=lambda: ChildCollectionSource('likes'),
    predicate=lambda names: DocumentExists(names.users),
    counter_field='likesCount',
    label_fields=('title',),
)

SAVES = ReconcilerDefinition(
    name='saves',
    description="Remove saves from hard-deleted users and fix savesCount on prompts",
    parent_collection=lambda names: names.prompts,
    source=lambda: ChildCollectionSource('saves'),
    predicate=lambda names: DocumentExists(names.users),
    counter_field='savesCount',
    label_fields=('title',),
)

COUNTRY_CATEGORIES = ReconcilerDefinition(
    name='country-categories',
    description="Remove missing or soft-deleted category ids from countries",
    parent_collection=lambda names: names.countries,
    source=lambda: ArrayFieldSource('categories'),
    predicate=lambda names: ActiveDocument(names.categories),
    label_fields=('name', 'isoCode'),
)

RECONCILERS: Dict[str, ReconcilerDefinition] = {
    definition.name: definition for definition in (LIKES, SAVES, COUNTRY_CATEGORIES)
}


def get_reconciler(name: str) -> ReconcilerDefinition:
    try:
        return RECONCILERS[name]
    except KeyError:
        raise ValueError(f"Unknown reconciler: {name} (expected one of {', '.join(sorted(RECONCILERS))})") from None


def run_reconciler(
    definition: ReconcilerDefinition,
    store: DocumentStore,
    names: CollectionNames,
    *,
    dry_run: bool,
    reporter: Optional[Reporter] = None,
    max_workers: int = 1,
) -> RunSummary:
    """Build a fresh engine, source and predicate for one sweep and run it."""

    engine = ReconciliationEngine(
        store,
        reporter=reporter,
        max_workers=max_workers,
        name=definition.name,
        label_fields=definition.label_fields,
    )

    return engine.run_sweep(
        definition.parent_collection(names),
        definition.source(),
        definition.predicate(names),
        definition.counter_field,
        dry_run=dry_run,
    )
