"""Shared pytest fixtures for ratebucket tests."""

import pytest

from ratebucket.storage import InMemoryStorage


class FakeClock:
    """Manually advanced clock for deterministic limiter tests."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage():
    return InMemoryStorage()
