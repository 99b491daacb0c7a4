"""Pytest configuration and shared fixtures for imgseek tests."""

import numpy as np
import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--run-slow", action="store_true", default=False,
        help="Run slow tests on large synthetic images",
    )


def pytest_configure(config):
    config.addinivalue_line("markers", "slow: large-image tests, opt-in with --run-slow")


def pytest_collection_modifyitems(config, items):
    if not config.getoption("--run-slow"):
        skip_slow = pytest.mark.skip(reason="needs --run-slow option to run")
        for item in items:
            if "slow" in item.keywords:
                item.add_marker(skip_slow)


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def random_haystack(rng):
    """40x30 random BGR image (height 30, width 40)."""
    return rng.integers(0, 256, size=(30, 40, 3), dtype=np.uint8)


@pytest.fixture
def solid():
    """Factory for solid-color (height, width, 3) uint8 images."""
    def _solid(width, height, color):
        img = np.empty((height, width, 3), dtype=np.uint8)
        img[:, :] = color
        return img
    return _solid
