"""Membership sources, validity predicates and counter checks."""

from datetime import datetime

import pytest
from google.api_core.exceptions import PermissionDenied

from adapters.db.firestore.models import StoredDocument
from application.reconcile.membership import ArrayFieldSource, ChildCollectionSource
from application.reconcile.orphans import CounterRepairer, counter_matches, detect_orphans
from application.reconcile.predicates import ActiveDocument, DocumentExists


def _parent(document_store, collection, doc_id):
    return document_store.get(collection, doc_id)


@pytest.mark.unit
class TestChildCollectionSource:
    def test_candidates_are_child_ids(self, document_store, seed_prompt):
        seed_prompt("p1", likes=["u2", "u1"])

        source = ChildCollectionSource("likes")

        assert source.candidates(document_store, "prompt", StoredDocument(id="p1")) == ["u1", "u2"]

    def test_no_children(self, document_store, seed_prompt):
        seed_prompt("p1")

        assert ChildCollectionSource("likes").candidates(document_store, "prompt", StoredDocument(id="p1")) == []

    def test_repair_continues_after_failure(self, document_store, seed_prompt, fake_client):
        seed_prompt("p1", likes=["u1", "ux", "uy"])
        fake_client.fail("delete", "prompt/p1/likes/ux", PermissionDenied("denied"))

        result = ChildCollectionSource("likes").repair(
            document_store, "prompt", StoredDocument(id="p1"), ["ux", "uy"], ["u1"]
        )

        assert result.removed == ["uy"]
        assert result.failed == ["ux"]
        assert fake_client.child_ids("prompt/p1/likes") == ["u1", "ux"]


@pytest.mark.unit
class TestArrayFieldSource:
    def test_duplicates_preserved(self, document_store):
        parent = StoredDocument(id="de", data={"categories": ["c1", "c2", "c1"]})

        assert ArrayFieldSource("categories").candidates(document_store, "countries", parent) == ["c1", "c2", "c1"]

    @pytest.mark.parametrize("raw", [None, "c1", {"c1": True}, 7])
    def test_non_list_reads_as_empty(self, document_store, raw):
        parent = StoredDocument(id="de", data={"categories": raw})

        assert ArrayFieldSource("categories").candidates(document_store, "countries", parent) == []

    def test_repair_writes_filtered_array(self, document_store, fake_client):
        fake_client.seed("countries/de", {"name": "Germany", "categories": ["c1", "cz", "c1"]})
        parent = _parent(document_store, "countries", "de")

        result = ArrayFieldSource("categories").repair(document_store, "countries", parent, ["cz"], ["c1", "c1"])

        stored = fake_client.data("countries/de")
        assert result.removed == ["cz"]
        assert stored["categories"] == ["c1", "c1"]
        assert stored["updatedBy"] == "cleanup-script"
        assert isinstance(stored["updatedAt"], datetime)
        assert stored["name"] == "Germany"

    def test_repair_refuses_stale_snapshot(self, document_store, fake_client):
        fake_client.seed("countries/de", {"categories": ["c1", "cz"]})
        parent = _parent(document_store, "countries", "de")
        fake_client.seed("countries/de", {"categories": ["c1", "cz", "c9"]})

        result = ArrayFieldSource("categories").repair(document_store, "countries", parent, ["cz"], ["c1"])

        assert result.removed == []
        assert result.failed == ["cz"]
        assert fake_client.data("countries/de")["categories"] == ["c1", "cz", "c9"]

    def test_repair_without_orphans_writes_nothing(self, document_store, fake_client):
        fake_client.seed("countries/de", {"categories": ["c1"]})
        parent = _parent(document_store, "countries", "de")

        ArrayFieldSource("categories").repair(document_store, "countries", parent, [], ["c1"])

        assert fake_client.writes == []


@pytest.mark.unit
class TestPredicates:
    def test_document_exists_counts_soft_deleted(self, document_store, seed_users):
        seed_users("u1", deleted=("u2",))
        predicate = DocumentExists("users")

        predicate.prime(document_store)

        assert predicate("u1") is True
        assert predicate("u2") is True
        assert predicate("gone") is False
        assert predicate.size == 2

    def test_active_document_excludes_soft_deleted(self, document_store, fake_client):
        fake_client.seed("categories/c1", {"isDeleted": False})
        fake_client.seed("categories/c2", {"isDeleted": True})
        fake_client.seed("categories/c3", {"name": "no flag"})
        predicate = ActiveDocument("categories")

        predicate.prime(document_store)

        assert [cid for cid in ("c1", "c2", "c3", "c4") if predicate(cid)] == ["c1", "c3"]

    def test_unprimed_predicate_raises(self):
        predicate = DocumentExists("users")

        assert predicate.primed is False
        with pytest.raises(RuntimeError):
            predicate("u1")


@pytest.mark.unit
def test_detect_orphans_partitions_candidates(document_store, seed_users, seed_prompt):
    seed_users("u1", "u2")
    seed_prompt("p1", likes=["u1", "u2", "ux"])
    predicate = DocumentExists("users")
    predicate.prime(document_store)

    report = detect_orphans(ChildCollectionSource("likes"), document_store, "prompt", StoredDocument(id="p1"), predicate)

    assert report.candidates == ["u1", "u2", "ux"]
    assert report.valid == ["u1", "u2"]
    assert report.orphans == ["ux"]


@pytest.mark.unit
class TestCounters:
    @pytest.mark.parametrize(
        "stored,actual,expected",
        [
            (3, 3, True),
            (4, 3, False),
            (None, 0, True),
            (None, 2, False),
            ("3", 3, False),
            (3.0, 3, False),
            (True, 1, False),
        ],
    )
    def test_counter_matches(self, stored, actual, expected):
        assert counter_matches(stored, actual) is expected

    def test_reconcile_corrects_mismatch(self, document_store, fake_client):
        fake_client.seed("prompt/p1", {"likesCount": 5})
        parent = _parent(document_store, "prompt", "p1")

        check = CounterRepairer(document_store).reconcile_count("prompt", parent, "likesCount", 3)

        assert (check.stored, check.actual, check.mismatched, check.corrected) == (5, 3, True, True)
        assert fake_client.data("prompt/p1")["likesCount"] == 3

    def test_reconcile_matching_counter_writes_nothing(self, document_store, fake_client):
        fake_client.seed("prompt/p1", {"likesCount": 3})
        parent = _parent(document_store, "prompt", "p1")

        check = CounterRepairer(document_store).reconcile_count("prompt", parent, "likesCount", 3)

        assert check.mismatched is False
        assert fake_client.writes == []

    def test_reconcile_dry_run_reports_only(self, document_store, fake_client):
        fake_client.seed("prompt/p1", {})
        parent = _parent(document_store, "prompt", "p1")

        check = CounterRepairer(document_store).reconcile_count("prompt", parent, "likesCount", 2, dry_run=True)

        assert check.mismatched is True
        assert check.corrected is False
        assert fake_client.writes == []

    def test_reconcile_stale_snapshot_fails(self, document_store, fake_client):
        fake_client.seed("prompt/p1", {"likesCount": 5})
        parent = _parent(document_store, "prompt", "p1")
        fake_client.seed("prompt/p1", {"likesCount": 6})

        check = CounterRepairer(document_store).reconcile_count("prompt", parent, "likesCount", 3)

        assert check.failed is True
        assert check.corrected is False
        assert "Concurrent modification" in check.error
        assert fake_client.data("prompt/p1")["likesCount"] == 6
