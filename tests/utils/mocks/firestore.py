"""Composable Firestore mocking helpers for tests.

Constraints:
- No network/emulator usage.
- Keep tests fast and isolated.

API:
- Client/Collection
  - make_firestore_client() -> Mock
  - make_collection() -> Mock
  - attach_collection(client: Mock, name: str, collection: Mock) -> None
- Documents
  - make_doc(id: str, data: dict, exists: bool = True, update_time=None) -> Mock
  - set_document_get(collection: Mock, doc_id: str, *, exists: bool, data: dict | None = None, side_effect: Exception | None = None) -> Mock
- Queries
  - make_query(stream_docs: list[Mock] | None = None, side_effect: Exception | None = None) -> Mock
- Utilities
  - set_permission_denied(target: Mock, method: str) -> None
  - set_exception(target: Mock, method: str, exc: Exception) -> None
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional
from unittest.mock import Mock

from google.api_core.exceptions import PermissionDenied


# -------------------------
# Client / Collection
# -------------------------

def make_firestore_client() -> Mock:
    """Create a Firestore client mock.

    Collections attached via `attach_collection` are returned from `collection(name)`;
    `write_option(**kwargs)` echoes its kwargs so guarded writes can be asserted.
    """
    client = Mock(spec_set=['collection', 'collections', 'write_option', '_fs_collections'])
    client._fs_collections = {}

    def _collection_side_effect(name: str) -> Mock:
        if name in client._fs_collections:
            return client._fs_collections[name]
        raise KeyError(f"No mocked collection named '{name}' attached to client")

    client.collection.side_effect = _collection_side_effect
    client.collections.side_effect = lambda: iter(list(client._fs_collections.values()))
    client.write_option.side_effect = lambda **kwargs: dict(kwargs)
    return client


def make_collection() -> Mock:
    """Create a collection/query-capable mock with restricted API."""
    return Mock(spec_set=['document', 'where', 'stream'])


def attach_collection(client: Mock, name: str, collection: Mock) -> None:
    """Attach a named collection mock to a client created by `make_firestore_client`."""
    client._fs_collections[name] = collection


# -------------------------
# Documents
# -------------------------

def make_doc(id: str, data: Dict[str, Any], exists: bool = True, update_time: Any = None) -> Mock:
    """Create a document snapshot-like mock: id, exists, to_dict(), update_time."""
    doc = Mock(spec_set=['id', 'to_dict', 'exists', 'update_time'])
    doc.id = id
    doc.exists = exists
    doc.update_time = update_time
    doc.to_dict.return_value = data if exists else None
    return doc


def set_document_get(
    collection: Mock,
    doc_id: str,
    *,
    exists: bool,
    data: Optional[Dict[str, Any]] = None,
    update_time: Any = None,
    side_effect: Optional[Exception] = None,
) -> Mock:
    """Wire collection.document(doc_id).get() to return a snapshot or raise.

    Returns the doc_ref so tests can assert on create/update/delete.
    """
    doc_ref = Mock(spec_set=['get', 'set', 'create', 'update', 'delete', 'collection'])

    if side_effect is not None:
        doc_ref.get.side_effect = side_effect
    else:
        doc_ref.get.return_value = make_doc(doc_id, data or {}, exists=exists, update_time=update_time)

    def _document_side_effect(requested_id: str) -> Mock:
        if requested_id == doc_id:
            return doc_ref
        # Fresh ref for other ids to avoid leaking mocks across tests
        return Mock(spec_set=['get', 'set', 'create', 'update', 'delete', 'collection'])

    collection.document.side_effect = _document_side_effect
    return doc_ref


# -------------------------
# Queries
# -------------------------

def make_query(
    stream_docs: Optional[List[Mock]] = None,
    side_effect: Optional[Exception] = None,
) -> Mock:
    """Create a query-like mock with chainable .where and .stream."""
    query = Mock(spec_set=['where', 'stream'])

    if side_effect is not None:
        query.stream.side_effect = side_effect
    else:
        query.stream.side_effect = lambda: iter(list(stream_docs or []))

    query.where.return_value = query
    return query


# -------------------------
# Utilities
# -------------------------

def set_permission_denied(target: Mock, method: str) -> None:
    """Set a PermissionDenied error on target.method."""
    getattr(target, method).side_effect = PermissionDenied("denied")


def set_exception(target: Mock, method: str, exc: Exception) -> None:
    """Set an exception side effect on target.method."""
    getattr(target, method).side_effect = exc
