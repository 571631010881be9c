"""Global pytest configuration and shared fixtures for als_linalg."""

from __future__ import annotations

import importlib.util
from typing import Final

import pytest

# -----------------------------------------------------------------------------
# Optional dependency detection
# -----------------------------------------------------------------------------

HAS_SCIPY: Final[bool] = importlib.util.find_spec("scipy") is not None


# -----------------------------------------------------------------------------
# Global markers registration safety (for local pytest runs)
# -----------------------------------------------------------------------------


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers used by the test suite."""
    config.addinivalue_line(
        "markers",
        "native: mark test as requiring the scipy optional dependency",
    )


# -----------------------------------------------------------------------------
# Conditional skipping fixture
# -----------------------------------------------------------------------------


@pytest.fixture(scope="session")
def require_scipy() -> None:
    """
    Skip tests if the native (scipy) extra is not installed.

    Usage:
        def test_x(require_scipy):
            ...
    """
    if not HAS_SCIPY:
        pytest.skip("native extra (scipy) not installed")
