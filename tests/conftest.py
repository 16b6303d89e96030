"""Shared test fixtures and configuration for all tests.

This conftest.py provides common fixtures used across unit and integration tests.
"""

import pytest

from selfretry.config import Settings
from selfretry.retry.store import RetryContextStore, default_store


@pytest.fixture
def test_settings() -> Settings:
    """Test settings with safe defaults.

    Override specific settings in individual tests as needed:
        def test_something(test_settings):
            test_settings.DEFAULT_RETRY_LIMIT = 1
    """
    return Settings(
        DEFAULT_RETRY_LIMIT=3,
        LOG_ENABLED=True,
        LOG_LEVEL="DEBUG",
        ENVIRONMENT="development",
    )


@pytest.fixture
def store(test_settings: Settings) -> RetryContextStore:
    """Fresh store, isolated from the process default store."""
    return RetryContextStore(test_settings)


@pytest.fixture(autouse=True)
def clean_default_store():
    """Drop contexts a test left in the default store of this thread."""
    yield
    default_store().clear()
