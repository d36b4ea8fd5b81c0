"""
Pytest configuration and shared fixtures.

Unit tests never touch a live IRIS instance: data access is replaced by
in-memory fakes and the iris driver is patched where it is imported.
"""

import os
import sys
from typing import List, Optional

import pytest

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)


def pytest_configure(config):
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "unit: Unit tests")


def make_resources(count: int, prefix: str = "r", resource_type: str = "Condition") -> List[dict]:
    """Build ``count`` minimal FHIR resources with ids prefix0..prefixN-1."""
    return [{"resourceType": resource_type, "id": f"{prefix}{i}"} for i in range(count)]


class FakeDao:
    """In-memory data access object with call counters."""

    def __init__(self, records: List[dict], count: Optional[int] = None, page_size: int = 10):
        self.records = list(records)
        self._count = len(self.records) if count is None else count
        self.page_size = page_size
        self.count_calls = 0
        self.fetch_calls = []
        self.page_size_calls = 0

    def fetch_range(self, search_spec, first_result, max_results):
        self.fetch_calls.append((first_result, max_results))
        if max_results is None:
            return self.records[first_result:]
        return self.records[first_result:first_result + max_results]

    def count(self, search_spec):
        self.count_calls += 1
        return self._count

    def preferred_page_size(self):
        self.page_size_calls += 1
        return self.page_size


class IdentityTranslator:
    """Translator returning records unchanged."""

    def to_fhir_resource(self, record):
        return record


@pytest.fixture
def fake_dao_factory():
    return FakeDao


@pytest.fixture
def identity_translator():
    return IdentityTranslator()


@pytest.fixture
def resource_factory():
    return make_resources
