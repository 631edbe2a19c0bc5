"""Shared fixtures for carelist tests."""

import random
from datetime import datetime, timezone

import pytest

from carelist.data.provision_lists import provision_all_lists
from carelist.store.memory import InMemoryListStore

FIXED_NOW = datetime(2025, 6, 2, 10, 30, tzinfo=timezone.utc)


@pytest.fixture
def rng():
    """Seeded random source."""
    return random.Random(1234)


@pytest.fixture
def now():
    """Fixed reference time."""
    return FIXED_NOW


@pytest.fixture
def store():
    """Empty in-memory list store."""
    return InMemoryListStore()


@pytest.fixture
def provisioned_store(store):
    """In-memory store with all four lists provisioned."""
    provision_all_lists(store)
    return store
