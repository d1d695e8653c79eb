"""Shared fixtures: fixed clocks, in-memory storage, the bundled seed."""

import pytest

from moneys_wisdom.audit import AuditLogger
from moneys_wisdom.data import load_seed
from moneys_wisdom.services.storage import InMemoryKeyValueStorage, ReconciliationStore


# 2027-01-15 08:00:00 UTC, later than everything in the bundled seed
NOW = 1_800_000_000_000


class FixedClock:
    """Epoch-millisecond clock that only moves when told to."""

    def __init__(self, now: int = NOW):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int = 1000) -> int:
        self.now += ms
        return self.now


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def audit_logger():
    return AuditLogger(history_size=100)


@pytest.fixture
def seed():
    return load_seed()


@pytest.fixture
def storage():
    return InMemoryKeyValueStorage()


@pytest.fixture
def store(storage, seed, clock, audit_logger):
    return ReconciliationStore(
        storage=storage,
        seed=seed,
        schema_version=2,
        clock=clock,
        audit_logger=audit_logger,
    )
