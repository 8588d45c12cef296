"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It pins the environment so no developer .env file leaks into the tests.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["THROTTLER_ENV"] = "testing"
os.environ.pop("THROTTLER_SNAPSHOT_PATH", None)
os.environ.pop("THROTTLER_CLOCK", None)

import pytest  # noqa: E402

from ratethrottler.domain.policy import NANOS_PER_SECOND  # noqa: E402


class FakeClock:
    """Deterministic nanosecond clock used to test window logic."""

    def __init__(self, start: int = 1_000 * NANOS_PER_SECOND) -> None:
        self.current = start

    def __call__(self) -> int:
        self.current += 1
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += int(seconds * NANOS_PER_SECOND)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
