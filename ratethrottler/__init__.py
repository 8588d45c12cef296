"""Per-key sliding-window invocation throttling."""

from ratethrottler.core.errors import (
    AppError,
    MalformedSnapshotError,
    NotConfiguredError,
    UnknownKeyError,
    ValidationAppError,
)
from ratethrottler.domain.policy import WindowPolicy, WindowUnit
from ratethrottler.limiter import ThrottleDecision
from ratethrottler.service import ServiceRateThrottler, build_throttler

__all__ = [
    "AppError",
    "MalformedSnapshotError",
    "NotConfiguredError",
    "ServiceRateThrottler",
    "ThrottleDecision",
    "UnknownKeyError",
    "ValidationAppError",
    "WindowPolicy",
    "WindowUnit",
    "build_throttler",
]
