"""
Shared fixtures and test doubles for the utils tests.
"""

# Set environment to test mode FIRST, before any imports
import os

os.environ["ENVIRONMENT"] = "test"

from typing import Any

import pytest

from utils.request_client import RequestClient


def pytest_configure(config):
    """Pytest hook to configure test environment before any tests run."""
    os.environ["ENVIRONMENT"] = "test"


class FakeRedis:
    """In-memory stand-in for the synchronous Redis client used by PersistentStore."""

    def __init__(self, fail: bool = False) -> None:
        self.data: dict[str, Any] = {}
        self.expiry: dict[str, int | None] = {}
        self.fail = fail
        self.get_calls = 0
        self.set_calls = 0

    def get(self, name: str) -> Any:
        self.get_calls += 1
        if self.fail:
            raise ConnectionError("redis unavailable")
        return self.data.get(name)

    def set(self, name: str, value: Any, ex: int | None = None) -> bool:
        self.set_calls += 1
        if self.fail:
            raise ConnectionError("redis unavailable")
        self.data[name] = value
        self.expiry[name] = ex
        return True

    def delete(self, *names: str) -> int:
        if self.fail:
            raise ConnectionError("redis unavailable")
        removed = 0
        for name in names:
            if self.data.pop(name, None) is not None:
                removed += 1
        return removed


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture(autouse=True)
def clear_request_state():
    """Clear shared request caches before and after each test to prevent pollution."""
    RequestClient.reset_shared_state()
    RequestClient.configure_persistent_store(None)

    yield

    RequestClient.reset_shared_state()
    RequestClient.configure_persistent_store(None)
