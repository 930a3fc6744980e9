"""
Shared test fixtures for the konverge test suite.
"""

from datetime import datetime, timezone

import pytest

from konverge.core.app import App
from konverge.core.dependency_tracker import DependencyTracker
from konverge.core.stack import Stack
from konverge.core.synthesizer import Synthesizer

FIXED_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)
FIXED_TIMESTAMP = "2024-01-01T00:00:00.000Z"


@pytest.fixture
def app():
    """A fresh application root."""
    return App()


@pytest.fixture
def stack(app):
    """A stack named ``test-stack`` deploying into ``test-ns``."""
    return Stack(app, "test-stack", namespace="test-ns")


@pytest.fixture
def fixed_clock():
    """Clock that always reports 2024-01-01T00:00:00Z."""
    return lambda: FIXED_TIME


@pytest.fixture
def synthesizer(fixed_clock):
    """Synthesizer with a fixed clock so stamped annotations are predictable."""
    return Synthesizer(clock=fixed_clock)


@pytest.fixture
def tracker():
    return DependencyTracker()


@pytest.fixture
def fixed_timestamp():
    """The synthesis timestamp produced by ``fixed_clock``."""
    return FIXED_TIMESTAMP
