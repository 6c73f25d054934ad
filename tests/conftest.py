"""Pytest configuration and shared fixtures."""

import logging
from typing import Dict, Optional

import pytest

from avscraper.models.response import HttpResponse
from tests.fixtures.mock_data import MockDataGenerator


# Configure logging for tests
logging.getLogger().setLevel(logging.WARNING)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


PROXY_ENV_VARS = ('http_proxy', 'HTTP_PROXY', 'https_proxy', 'HTTPS_PROXY', 'all_proxy', 'ALL_PROXY')


@pytest.fixture(autouse=True)
def no_system_proxy(monkeypatch):
    """Keep proxies from the test runner's environment out of the engine."""
    for name in PROXY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fake_clock():
    """Clock injected into time-dependent components."""
    return FakeClock()


@pytest.fixture
def make_response():
    """Factory for HttpResponse objects with a realistic default body."""
    def _make(
        status: int = 200,
        body: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        url: str = "https://example.com/page",
        elapsed_ms: float = 120.0
    ) -> HttpResponse:
        if body is None:
            body = MockDataGenerator.plain_page()
        return HttpResponse(
            url=url,
            status=status,
            headers=headers or {'Content-Type': 'text/html; charset=utf-8'},
            body=body.encode('utf-8'),
            elapsed_ms=elapsed_ms,
        )

    return _make


@pytest.fixture
def sample_record():
    """A fully populated record."""
    return MockDataGenerator.generate_record()


# Pytest markers
def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests"
    )
    config.addinivalue_line(
        "markers", "slow: Slow running tests"
    )
    config.addinivalue_line(
        "markers", "network: Tests that require network access"
    )


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers based on test location."""
    for item in items:
        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "test_" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
