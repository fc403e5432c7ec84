"""Fixtures for the reconciliation sweeps: a small console database in the fake client."""

import pytest

from adapters.db.firestore.document_store import DocumentStore
from app_platform.config.collection_names import CollectionNames


@pytest.fixture
def document_store(fake_client, fast_retry_policy):
    return DocumentStore(fake_client, retry_policy=fast_retry_policy)


@pytest.fixture
def names():
    return CollectionNames()


@pytest.fixture
def seed_users(fake_client):
    """seed_users('u1', 'u2', deleted=('u3',)): live users plus soft-deleted ones."""

    def _seed(*active, deleted=()):
        for user_id in active:
            fake_client.seed(f"users/{user_id}", {"email": f"{user_id}@example.com"})
        for user_id in deleted:
            fake_client.seed(f"users/{user_id}", {"email": f"{user_id}@example.com", "isDeleted": True})

    return _seed


@pytest.fixture
def seed_prompt(fake_client):
    """seed_prompt('p1', likes=[...], likesCount=5, title='Haiku')."""

    def _seed(prompt_id, *, likes=(), saves=(), **fields):
        fake_client.seed(f"prompt/{prompt_id}", dict(fields))
        for user_id in likes:
            fake_client.seed(f"prompt/{prompt_id}/likes/{user_id}", {"userId": user_id})
        for user_id in saves:
            fake_client.seed(f"prompt/{prompt_id}/saves/{user_id}", {"userId": user_id})

    return _seed


@pytest.fixture
def seed_categories(fake_client):
    def _seed(*active, deleted=()):
        for category_id in active:
            fake_client.seed(f"categories/{category_id}", {"name": category_id.upper()})
        for category_id in deleted:
            fake_client.seed(f"categories/{category_id}", {"name": category_id.upper(), "isDeleted": True})

    return _seed
