"""Shared pytest fixtures and configuration."""

from collections.abc import Iterator

import pytest

from geocore.config import Settings
from geocore.geometry import Geometry
from geocore.utils.logging import clear_correlation_context


@pytest.fixture(autouse=True)
def reset_logging_context() -> Iterator[None]:
    """Reset correlation context between tests."""
    clear_correlation_context()
    yield
    clear_correlation_context()


@pytest.fixture
def test_settings() -> Settings:
    """Create a Settings instance with test-safe defaults."""
    return Settings(
        LOG_LEVEL="DEBUG",
        LOG_FORMAT="console",
        INDEX_MAX_ENTRIES=4,
        INDEX_MIN_FILL=0.5,
        _env_file=None,  # type: ignore[call-arg]
    )


@pytest.fixture
def unit_square() -> Geometry:
    """Counter-clockwise square covering [0, 1] x [0, 1]."""
    return Geometry.polygon([(0, 0), (1, 0), (1, 1), (0, 1), (0, 0)])


@pytest.fixture
def square_with_hole() -> Geometry:
    """Square [0, 4]^2 with a hole covering [1, 2]^2."""
    return Geometry.polygon(
        [(0, 0), (4, 0), (4, 4), (0, 4), (0, 0)],
        [[(1, 1), (1, 2), (2, 2), (2, 1), (1, 1)]],
    )
