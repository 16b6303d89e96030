"""Integration test fixtures.

Integration tests drive self-retrying functions end to end through the
process default store, so every test also checks that no context leaks.
"""

import pytest

from selfretry.retry.store import default_store


@pytest.fixture(autouse=True)
def assert_no_leaked_contexts():
    """Fail the test if a finished call left a context in the default store."""
    yield
    leaked = default_store().keys()
    assert leaked == [], f"contexts left in store: {leaked}"
