"""
Shared fixtures for collaboration service tests.
"""

# Set environment to test mode FIRST, before any imports
import os

os.environ["ENVIRONMENT"] = "test"

import pytest

from utils.request_client import RequestClient


def pytest_configure(config):
    """Pytest hook to configure test environment before any tests run."""
    os.environ["ENVIRONMENT"] = "test"


@pytest.fixture(autouse=True)
def clear_request_state():
    """Clear shared request caches before each test to prevent cache pollution between tests."""
    RequestClient.reset_shared_state()
    RequestClient.configure_persistent_store(None)

    yield

    RequestClient.reset_shared_state()
    RequestClient.configure_persistent_store(None)
