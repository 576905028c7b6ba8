"""
Root pytest configuration.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from typing import Any

import pytest


def get_test_timeout(base: float, max_multiplier: float = 5.0) -> float:
    """Apply CI timeout multiplier to a base timeout value.

    Args:
        base: Base timeout in seconds
        max_multiplier: Maximum allowed multiplier (default 5x)

    Returns:
        Scaled timeout value

    Environment:
        CI_TIMEOUT_MULTIPLIER: Multiplier for CI environments (default: 1.0)
    """
    raw = os.getenv("CI_TIMEOUT_MULTIPLIER", "1.0")
    try:
        multiplier = float(raw) if raw else 1.0
        multiplier = min(multiplier, max_multiplier)
    except ValueError:
        multiplier = 1.0
    return base * multiplier


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line(
        "markers",
        "critical: Tests that must never fail - core functionality",
    )
    config.addinivalue_line(
        "markers",
        "integration: Tests wiring several components together",
    )
    config.addinivalue_line(
        "markers",
        "slow: Tests that take >1 second",
    )
    config.addinivalue_line(
        "markers",
        "property: Property-based tests (may be slow)",
    )


@pytest.fixture(autouse=True)
def reset_diagnostics_writer() -> Generator[None, None, None]:
    """Restore the default diagnostics writer around each test."""
    import slackbatch.core.diagnostics as diag

    diag._reset_for_tests()
    yield
    diag._reset_for_tests()


@pytest.fixture
def diagnostics_capture() -> Generator[list[dict[str, Any]], None, None]:
    """Capture diagnostics payloads emitted during the test."""
    import slackbatch.core.diagnostics as diag

    captured: list[dict[str, Any]] = []
    diag.set_writer_for_tests(captured.append)
    yield captured
    diag._reset_for_tests()


@pytest.fixture
def timeout_scale() -> float:
    """CI multiplier for wall-clock waits in timing-sensitive tests."""
    return get_test_timeout(1.0)
