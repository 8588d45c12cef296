"""Throttler service wiring.

``ServiceRateThrottler`` owns one registry together with the engine and the
snapshot codec that operate on it. Build one at service start, pass it to the
callers that need it, and shut it down on exit:

    throttler = build_throttler()
    throttler.start(policies)          # restore persisted histories
    if throttler.throttle("orders-api"):
        ...                            # reject the call
    throttler.shutdown()               # persist histories
"""

from __future__ import annotations

import logging
import time
from typing import Mapping

from ratethrottler.core.config import Settings, ThrottlerSettings, settings as default_settings
from ratethrottler.domain.policy import NANOS_PER_SECOND, WindowPolicy
from ratethrottler.limiter.base import AbstractThrottler
from ratethrottler.limiter.engine import Clock, ThrottleDecision, ThrottleEngine
from ratethrottler.limiter.registry import LimiterRegistry
from ratethrottler.limiter.snapshot import SnapshotCodec
from ratethrottler.stores.base import AbstractSnapshotStore
from ratethrottler.stores.file import FileSnapshotStore

logger = logging.getLogger(__name__)

CLOCKS: dict[str, Clock] = {
    "monotonic": time.monotonic_ns,
    "wall": time.time_ns,
}


class ServiceRateThrottler(AbstractThrottler):
    """In-process, thread-safe invocation throttler.

    Notes:
        State is per process; running several workers gives each its own
        independent limits.
    """

    def __init__(
        self,
        *,
        clock: Clock = time.monotonic_ns,
        store: AbstractSnapshotStore | None = None,
        snapshot_on_shutdown: bool = True,
    ) -> None:
        """Initialize the throttler.

        Args:
            clock: Time source returning integer nanoseconds.
            store: Optional store used by ``start`` and ``shutdown``.
            snapshot_on_shutdown: Whether ``shutdown`` persists to ``store``.
        """
        self._clock = clock
        self._registry = LimiterRegistry()
        self._engine = ThrottleEngine(self._registry, clock=clock)
        self._codec = SnapshotCodec(self._registry)
        self._store = store
        self._snapshot_on_shutdown = snapshot_on_shutdown

    @property
    def registry(self) -> LimiterRegistry:
        return self._registry

    def configure(self, key: str, policy: WindowPolicy) -> None:
        self._registry.configure(key, policy)

    def exists(self, key: str) -> bool:
        return self._registry.exists(key)

    def purge(self, key: str) -> None:
        self._registry.purge(key)

    def drop(self, key: str) -> None:
        self._registry.drop(key)

    def count(self) -> int:
        return self._registry.count()

    def purge_all(self) -> None:
        self._registry.purge_all()

    def throttle(self, key: str) -> bool:
        return self._engine.throttle(key)

    def decide(self, key: str) -> ThrottleDecision:
        return self._engine.decide(key)

    def history(self, key: str) -> tuple[int, ...]:
        return self._registry.history(key)

    def take_snapshot(self) -> str:
        return self._codec.take_snapshot()

    def reconstruct(
        self,
        snapshot: str | None,
        policies: Mapping[str, WindowPolicy] | None = None,
    ) -> None:
        self._codec.reconstruct(snapshot, policies)

    def start(self, policies: Mapping[str, WindowPolicy] | None = None) -> None:
        """Restore persisted histories from the store, then configure new keys.

        Keys in ``policies`` that the snapshot restores keep their history;
        keys the snapshot does not mention are configured fresh.

        Restored timestamps are only comparable with this process's clock
        when both come from the wall clock. Monotonic timestamps written by a
        previous process can lie ahead of the new clock, in which case the
        affected keys stay denied until the clock catches up; a
        ``throttler.restored_ahead_of_clock`` warning is logged when that
        happens.

        Raises:
            MalformedSnapshotError: If the stored snapshot cannot be decoded.
        """
        policies = dict(policies or {})
        if self._store is not None:
            self.reconstruct(self._store.load(), policies)
            self._warn_if_restored_ahead()

        for key, policy in policies.items():
            if self._registry.policy(key) is None:
                self.configure(key, policy)

        logger.info(
            "throttler.started",
            extra={"keys": self.count(), "has_store": self._store is not None},
        )

    def _warn_if_restored_ahead(self) -> None:
        histories = self._registry.export_histories().values()
        latest = max((max(stamps) for stamps in histories if stamps), default=None)
        if latest is None:
            return
        now = self._clock()
        if latest > now:
            logger.warning(
                "throttler.restored_ahead_of_clock",
                extra={"ahead_s": (latest - now) / NANOS_PER_SECOND},
            )

    def shutdown(self) -> None:
        """Persist a snapshot to the store when one is configured."""
        if self._store is None or not self._snapshot_on_shutdown:
            logger.info("throttler.stopped", extra={"persisted": False})
            return

        self._store.save(self.take_snapshot())
        logger.info("throttler.stopped", extra={"persisted": True, "keys": self.count()})


def build_throttler(
    config: Settings | ThrottlerSettings | None = None,
    *,
    store: AbstractSnapshotStore | None = None,
) -> ServiceRateThrottler:
    """Build a throttler from settings.

    Args:
        config: Settings to use; defaults to the global settings.
        store: Explicit store; when omitted, a ``FileSnapshotStore`` is used if
            ``snapshot_path`` is set.

    Returns:
        ServiceRateThrottler: Configured, not yet started, throttler.
    """

    if config is None:
        config = default_settings
    throttler_settings = config.throttler if isinstance(config, Settings) else config

    if store is None and throttler_settings.snapshot_path:
        store = FileSnapshotStore(throttler_settings.snapshot_path)

    return ServiceRateThrottler(
        clock=CLOCKS[throttler_settings.clock],
        store=store,
        snapshot_on_shutdown=throttler_settings.snapshot_on_shutdown,
    )
