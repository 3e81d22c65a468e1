"""Shared fixtures for bucketgate tests."""

import pytest

from bucketgate.app.limiter import create_limiter, reset_enforcement_store, reset_limiter_store


@pytest.fixture(autouse=True)
def reset_globals():
    """Reset the global limiter stores before and after each test."""
    reset_limiter_store()
    reset_enforcement_store()
    yield
    reset_limiter_store()
    reset_enforcement_store()


@pytest.fixture
def limiter():
    """Default limiter: capacity=5, leak_rate=1.0 (1 unit per second)."""
    return create_limiter(5.0, 1.0)


class FakeClock:
    """Manually advanced clock for LimiterStore tests."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()
