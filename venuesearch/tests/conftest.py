from __future__ import annotations

import pytest

from venuesearch.store.data_store import set_store
from venuesearch.store.memory import InMemoryBusinessStore
from venuesearch.tests.fixtures import BUSINESSES_JSON


@pytest.fixture
def store() -> InMemoryBusinessStore:
    return InMemoryBusinessStore.from_json(BUSINESSES_JSON)


@pytest.fixture
def app_store(store):
    set_store(store)
    yield store
    set_store(None)
