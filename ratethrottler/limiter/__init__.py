"""Limiter engine: per-key state, registry, admission algorithm and snapshots."""

from ratethrottler.limiter.base import AbstractThrottler
from ratethrottler.limiter.engine import ThrottleDecision, ThrottleEngine
from ratethrottler.limiter.registry import LimiterRegistry
from ratethrottler.limiter.snapshot import SnapshotCodec
from ratethrottler.limiter.state import LimiterState

__all__ = [
    "AbstractThrottler",
    "LimiterRegistry",
    "LimiterState",
    "SnapshotCodec",
    "ThrottleDecision",
    "ThrottleEngine",
]
