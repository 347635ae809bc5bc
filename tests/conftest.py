"""Shared test fixtures for welcomer."""

from __future__ import annotations

import pytest
from structlog.testing import capture_logs


@pytest.fixture(autouse=True)
def log_events():
    """Collect structlog events instead of printing them.

    Keeps stdout limited to workflow commands, which several tests compare
    line by line.
    """
    with capture_logs() as events:
        yield events
