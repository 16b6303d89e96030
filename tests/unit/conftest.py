"""Unit test fixtures (mocks and stubs)."""

from unittest.mock import patch

import pytest


@pytest.fixture
def mock_failure_logger():
    """Replace the diagnostics logger so emitted failure events can be asserted."""
    with patch("selfretry.retry.diagnostics.logger") as mock_logger:
        yield mock_logger
