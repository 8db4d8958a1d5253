"""Shared fixtures for latticegw tests.

Everything runs against ``InMemoryStore`` so no test touches a real cluster.
"""

from __future__ import annotations

import pytest

from latticegw.resolve.mapper import ResourceMapper
from latticegw.runtime.queue import RequestCollector
from tests.fakes import InMemoryStore


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def mapper(store: InMemoryStore) -> ResourceMapper:
    return ResourceMapper(store)


@pytest.fixture
def collector() -> RequestCollector:
    return RequestCollector()
