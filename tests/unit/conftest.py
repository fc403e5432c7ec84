"""Common lightweight fixtures shared across unit test suites."""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Generator

import pytest

from adapters.db.firestore.base import RetryPolicy
from tests.utils.fakes.firestore import FakeFirestoreClient


@pytest.fixture(autouse=True)
def deterministic_random_seed() -> Generator[None, None, None]:
    """Keep Python's RNG deterministic so flaky tests surface quickly."""

    state = random.getstate()
    random.seed(1337)
    yield
    random.setstate(state)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer shells from leaking config into unit tests."""

    for name in (
        "GOOGLE_CLOUD_PROJECT",
        "FIRESTORE_EMULATOR_HOST",
        "USE_EMULATORS",
        "DEVICES_CACHE_URL",
        "DEVICES_MAX_TTL_S",
        "DEVICES_TOMBSTONE_TTL_S",
        "DEVICES_LRU_TTL_S",
        "MAX_ACCOUNTS_PER_DEVICE_DEFAULT",
        "DEVICE_WRITE_RETRIES",
        "ADMISSION_STRICT_WRITES",
    ):
        monkeypatch.delenv(name, raising=False)


@dataclass
class SteppingClock:
    """Deterministic clock: every call returns a later instant."""

    now: datetime = field(default_factory=lambda: datetime(2025, 1, 1, tzinfo=timezone.utc))
    step: timedelta = timedelta(seconds=1)

    def __call__(self) -> datetime:
        self.now = self.now + self.step
        return self.now


@pytest.fixture
def clock() -> SteppingClock:
    return SteppingClock()


@pytest.fixture
def fake_client() -> FakeFirestoreClient:
    """Empty in-memory Firestore."""

    return FakeFirestoreClient()


@pytest.fixture
def fast_retry_policy() -> RetryPolicy:
    """Retry policy with no real sleeping."""

    return RetryPolicy(op_timeout_s=5.0, max_retries=2, backoff_base_s=0.0, backoff_factor=1.0, backoff_cap_s=0.0)
