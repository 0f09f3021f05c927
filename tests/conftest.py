# tests/conftest.py
"""Shared test fixtures and helpers.

Fixtures:
- fake_clock: FakeClock starting at a fixed epoch
- scheduler: ManualScheduler advancing fake_clock with virtual time
- connector: RecordingConnector (memory:// collector)
- make_transport: Transport factory bound to scheduler and connector
- make_settings: FaultlineSettings factory with test-friendly defaults

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

from __future__ import annotations

import os
from collections.abc import Callable
from typing import Any

import pytest
from hypothesis import Phase, Verbosity, settings

from faultline.core.config import FaultlineSettings
from faultline.testing import FakeClock, ManualScheduler, RecordingConnector
from faultline.transport import Transport

# =============================================================================
# Hypothesis Configuration
# =============================================================================

# CI profile: Fast tests for continuous integration
settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,  # Disable deadline for CI (timing varies)
)

# Nightly profile: Thorough testing for scheduled runs
settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Debug profile: Minimal examples with verbose output for debugging
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Load profile from environment, default to "ci"
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))


# =============================================================================
# Shared Fixtures
# =============================================================================


@pytest.fixture
def fake_clock() -> FakeClock:
    """Clock frozen at 2023-11-14T22:13:20Z until advanced."""
    return FakeClock()


@pytest.fixture
def scheduler(fake_clock: FakeClock) -> ManualScheduler:
    """Virtual-time scheduler that moves fake_clock along with it."""
    return ManualScheduler(clock=fake_clock)


@pytest.fixture
def connector() -> RecordingConnector:
    return RecordingConnector()


@pytest.fixture
def make_transport(scheduler: ManualScheduler, connector: RecordingConnector) -> Callable[..., Transport]:
    """Build a Transport on the shared scheduler and connector."""

    def _make(**kwargs: Any) -> Transport:
        kwargs.setdefault("reconnection_attempts", 5)
        kwargs.setdefault("reconnection_timeout_ms", 10_000.0)
        return Transport(connector, scheduler=scheduler, **kwargs)

    return _make


@pytest.fixture
def make_settings() -> Callable[..., FaultlineSettings]:
    """FaultlineSettings with a memory:// collector and no automatic hooks."""

    def _make(**overrides: Any) -> FaultlineSettings:
        values: dict[str, Any] = {
            "token": "test-token",
            "collector_endpoint": "memory://collector",
            "track_fetch": False,
            "track_navigation": False,
            "track_clicks": False,
        }
        values.update(overrides)
        return FaultlineSettings(**values)

    return _make
