"""CLI test fixtures."""

from unittest.mock import patch

import pytest


@pytest.fixture(autouse=True)
def no_logging_setup():
    """Keep CLI invocations from reconfiguring global logging."""
    with patch("retryspine.core.logging.configure_logging") as mock:
        yield mock
