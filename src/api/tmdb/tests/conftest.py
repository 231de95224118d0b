"""
Shared fixtures and utilities for TMDB service tests.
"""

# Set environment to test mode FIRST, before any imports
import os

os.environ["ENVIRONMENT"] = "test"

import json
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock

import pytest

from utils.errors import NetworkError
from utils.request_client import RequestClient


def pytest_configure(config):
    """Pytest hook to configure test environment before any tests run."""
    os.environ["ENVIRONMENT"] = "test"


# Load fixtures from JSON files
FIXTURES_DIR = Path(__file__).parent / "fixtures"


def load_fixture(filename: str) -> Any:
    """Load a fixture from JSON file.

    Args:
        filename: Name of the fixture file

    Returns:
        Parsed JSON data

    Raises:
        FileNotFoundError: If fixture file doesn't exist
    """
    fixture_path = FIXTURES_DIR / filename
    if not fixture_path.exists():
        raise FileNotFoundError(
            f"Fixture file not found: {fixture_path}\n"
            f"Create fixtures from real API responses for testing."
        )

    with open(fixture_path) as f:
        return json.load(f)


def endpoint_router(responses: dict[str, Any]) -> AsyncMock:
    """Build a _make_request double that answers by endpoint.

    Values are payloads, exceptions (raised when the endpoint is requested) or
    zero-argument coroutine functions. Unknown endpoints raise NetworkError(404).
    """

    async def _make_request(endpoint: str, params: dict | None = None, token=None) -> Any:
        if endpoint not in responses:
            raise NetworkError(404, endpoint)
        response = responses[endpoint]
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return await response()
        return response

    return AsyncMock(side_effect=_make_request)


def requested_endpoints(mock: AsyncMock) -> list[str]:
    return [call.args[0] for call in mock.await_args_list]


@pytest.fixture(autouse=True)
def clear_request_state():
    """Clear shared request caches before each test to prevent cache pollution between tests."""
    RequestClient.reset_shared_state()
    RequestClient.configure_persistent_store(None)

    yield

    RequestClient.reset_shared_state()
    RequestClient.configure_persistent_store(None)
