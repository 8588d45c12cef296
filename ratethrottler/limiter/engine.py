"""Sliding-window admission engine.

Each key keeps at most ``bound`` admission timestamps. A call is admitted
while the history has room; once it is full, the call is admitted only if the
eldest timestamp has left the window, in which case it replaces the eldest.
Denied calls leave the history untouched.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable

from ratethrottler.core.errors import NotConfiguredError
from ratethrottler.domain.policy import NANOS_PER_SECOND
from ratethrottler.limiter.registry import LimiterRegistry

logger = logging.getLogger(__name__)

Clock = Callable[[], int]


@dataclass(frozen=True)
class ThrottleDecision:
    """Outcome of one admission check.

    Attributes:
        denied: Whether the call must be rejected.
        bound: Max admissions per window for the key.
        remaining: Admissions left before the history is full.
        retry_after_seconds: Seconds until the eldest admission leaves the
            window (only set when denied).
    """

    denied: bool
    bound: int
    remaining: int
    retry_after_seconds: float | None = None


class ThrottleEngine:
    """Admission algorithm over a ``LimiterRegistry``."""

    def __init__(self, registry: LimiterRegistry, *, clock: Clock = time.monotonic_ns) -> None:
        """Initialize the engine.

        Args:
            registry: Registry holding per-key policies and histories.
            clock: Time source returning integer nanoseconds.
        """
        self._registry = registry
        self._clock = clock

    def throttle(self, key: str) -> bool:
        """Return True when a call on ``key`` must be DENIED, False when admitted."""
        return self.decide(key).denied

    def decide(self, key: str) -> ThrottleDecision:
        """Run the admission check for ``key`` and record the call if admitted.

        Raises:
            NotConfiguredError: If ``key`` is unknown, or was restored from a
                snapshot and has no policy bound yet.
        """
        with self._registry.checkout(key) as entry:
            if entry is None or entry.policy is None:
                raise NotConfiguredError(
                    code="limiter_not_configured",
                    message=f"Configure the invocation '{key}' before throttling it",
                    details={
                        "key": key,
                        "hint": (
                            "restored from a snapshot; bind a policy first"
                            if entry is not None
                            else "call configure first"
                        ),
                    },
                )

            bound = entry.policy.bound
            history = entry.state.history
            now = self._clock()

            if len(history) < bound:
                history.append(now)
                return ThrottleDecision(denied=False, bound=bound, remaining=bound - len(history))

            if not history:
                # Only reachable with a non-positive bound.
                return ThrottleDecision(denied=True, bound=bound, remaining=0)

            window = entry.policy.window_nanos
            elapsed = now - history[0]
            if elapsed < window:
                retry_after = (window - elapsed) / NANOS_PER_SECOND
                logger.info(
                    "limiter.denied",
                    extra={"key": key, "bound": bound, "retry_after_s": retry_after},
                )
                return ThrottleDecision(
                    denied=True,
                    bound=bound,
                    remaining=0,
                    retry_after_seconds=retry_after,
                )

            history.popleft()
            history.append(now)
            return ThrottleDecision(denied=False, bound=bound, remaining=0)
