"""
Pytest configuration and fixtures for email MX verifier tests.
"""

import os
import sys
import time

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

# Force mock mode for all tests - must be set before importing app
os.environ["VALIDATOR_MODE"] = "mock"

# Enable testing mode to disable background threads (like CacheSweeper)
os.environ["TESTING"] = "1"

import app as app_module  # noqa: E402
from mx_cache import MXRecord  # noqa: E402


class FakeClock:
    """Manually advanced monotonic clock for TTL tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingResolver:
    """Resolver double that counts calls and can be slowed down or made to fail."""

    def __init__(self, records=None, delay: float = 0.0, error: BaseException | None = None):
        self.records = records if records is not None else [MXRecord("mail.example.com", 10)]
        self.delay = delay
        self.error = error
        self.calls: list[tuple[str, float]] = []

    def __call__(self, domain: str, timeout: float) -> list[MXRecord]:
        self.calls.append((domain, timeout))
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return list(self.records)

    @property
    def call_count(self) -> int:
        return len(self.calls)


def pytest_unconfigure(config):
    """Stop any background services."""
    app_module.cache_sweeper.stop()


@pytest.fixture(autouse=True)
def reset_app_cache():
    """Reset the service's MX cache before each test."""
    app_module.mx_cache.flush()
    app_module.mx_cache.reset_statistics()
    yield


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def recording_resolver():
    return RecordingResolver()


@pytest.fixture
def app():
    """Create application for testing."""
    app_module.app.config["TESTING"] = True
    return app_module.app


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()
