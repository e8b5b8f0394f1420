"""Shared fixtures for edflow tests."""

from datetime import datetime, timezone

import pytest

from edflow.journey import EventLog
from edflow.observations import ObservationStore
from edflow.storage import MemoryCache


T0 = datetime(2025, 3, 1, 8, 0, tzinfo=timezone.utc)

NORMAL_VITALS = {
    "respiratory_rate": 16,
    "oxygen_saturation": 98,
    "heart_rate": 80,
    "systolic_bp": 124,
    "temperature": 36.8,
}

DETERIORATING_VITALS = {
    "respiratory_rate": 28,
    "oxygen_saturation": 89,
    "heart_rate": 130,
    "systolic_bp": 85,
    "temperature": 39.2,
}


@pytest.fixture
def t0():
    return T0


@pytest.fixture
def cache():
    return MemoryCache()


@pytest.fixture
def observations(cache):
    store = ObservationStore(cache, debounce_seconds=60)
    yield store
    store.close()


@pytest.fixture
def journey():
    return EventLog()
