"""
Shared test configuration and fixtures.
"""

import pytest

from domain.currency import CurrencyConverter
from domain.models.records import RecordKind
from infrastructure.store.memory import InMemoryRecordStore
from tests.factories import NOW, RATES, booking, vehicle


@pytest.fixture
def rates():
    return RATES


@pytest.fixture
def converter(rates):
    return CurrencyConverter(rates)


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def store(rates):
    return InMemoryRecordStore(rates)


@pytest.fixture
def seeded_store(store):
    """Store preloaded before anything has subscribed to it."""
    store.replace(RecordKind.BOOKINGS, [booking(amount_paid="100"), booking(amount_paid="40")])
    store.replace(RecordKind.FLEET, [vehicle()])
    return store
