"""Key -> limiter state registry.

Locking:
- One registry ``RLock`` guards the key set.
- Each ``LimiterState`` carries its own lock guarding its history.
- Structural changes hold the registry lock and then take the state locks of
  the entries they replace or remove, retiring them. They wait for in-flight
  decisions on those keys.
- ``checkout`` only holds the registry lock for the lookup and waits for the
  state lock without it, so a contended key never stalls other keys. A state
  found retired once its lock is held is looked up again.
"""

from __future__ import annotations

import logging
import threading
from contextlib import ExitStack, contextmanager
from typing import Iterator, Mapping

from ratethrottler.core.errors import UnknownKeyError
from ratethrottler.domain.policy import WindowPolicy
from ratethrottler.limiter.state import LimiterEntry, LimiterState

logger = logging.getLogger(__name__)


class LimiterRegistry:
    """Owns the mapping from invocation key to its policy and state."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._entries: dict[str, LimiterEntry] = {}

    def configure(self, key: str, policy: WindowPolicy) -> None:
        """Bind ``policy`` to ``key`` with a fresh, empty history.

        Re-configuring an existing key discards its history.
        """
        with self._lock:
            previous = self._entries.get(key)
            if previous is None:
                self._entries[key] = LimiterEntry(policy=policy)
            else:
                with previous.state.lock:
                    previous.state.retired = True
                    self._entries[key] = LimiterEntry(policy=policy)

        logger.debug(
            "limiter.configure",
            extra={
                "key": key,
                "bound": policy.bound,
                "window_length": policy.window_length,
                "window_unit": policy.window_unit.value,
                "replaced": previous is not None,
            },
        )

    def exists(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

    def purge(self, key: str) -> None:
        """Empty the history of ``key`` in place, keeping the key registered.

        Raises:
            UnknownKeyError: If ``key`` has no entry.
        """
        with self.checkout(key) as entry:
            if entry is None:
                raise UnknownKeyError(
                    code="limiter_unknown_key",
                    message=f"No limiter registered for key '{key}'",
                    details={"key": key},
                )
            entry.state.clear()

        logger.debug("limiter.purge", extra={"key": key})

    def drop(self, key: str) -> None:
        """Remove ``key`` entirely. Dropping an unknown key is a no-op."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return
            with entry.state.lock:
                entry.state.retired = True
                del self._entries[key]

        logger.debug("limiter.drop", extra={"key": key})

    def count(self) -> int:
        with self._lock:
            return len(self._entries)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    def history(self, key: str) -> tuple[int, ...]:
        """Return a copy of ``key``'s admission timestamps, oldest first.

        Raises:
            UnknownKeyError: If ``key`` has no entry.
        """
        with self.checkout(key) as entry:
            if entry is None:
                raise UnknownKeyError(
                    code="limiter_unknown_key",
                    message=f"No limiter registered for key '{key}'",
                    details={"key": key},
                )
            return tuple(entry.state.history)

    def policy(self, key: str) -> WindowPolicy | None:
        """Return the policy bound to ``key``, or None when absent or unbound."""
        with self._lock:
            entry = self._entries.get(key)
            return entry.policy if entry is not None else None

    def purge_all(self) -> None:
        """Remove every entry.

        This discards all rate-limit history process-wide; every key must be
        configured again before it can be throttled.
        """
        with self._lock, self._quiesce(retire=True):
            dropped = len(self._entries)
            self._entries = {}

        logger.warning("limiter.purge_all", extra={"dropped": dropped})

    @contextmanager
    def checkout(self, key: str) -> Iterator[LimiterEntry | None]:
        """Yield the entry for ``key`` with its state lock held.

        Yields None (with no lock held) when ``key`` is not registered.
        """
        while True:
            with self._lock:
                entry = self._entries.get(key)

            if entry is None:
                yield None
                return

            entry.state.lock.acquire()
            if not entry.state.retired:
                break
            entry.state.lock.release()

        try:
            yield entry
        finally:
            entry.state.lock.release()

    def export_histories(self) -> dict[str, list[int]]:
        """Copy every key's history at a single point in time."""
        with self._lock, self._quiesce():
            return {key: entry.state.copy() for key, entry in self._entries.items()}

    def replace_histories(
        self,
        histories: Mapping[str, list[int]],
        policies: Mapping[str, WindowPolicy] | None = None,
    ) -> None:
        """Replace the whole key set with restored histories.

        Keys found in ``policies`` are bound to that policy and their history
        is trimmed to its bound; the others are registered without a policy.
        """
        policies = policies or {}
        restored: dict[str, LimiterEntry] = {}
        for key, timestamps in histories.items():
            policy = policies.get(key)
            state = LimiterState(timestamps)
            if policy is not None:
                state.trim(policy.bound)
            restored[key] = LimiterEntry(policy=policy, state=state)

        with self._lock, self._quiesce(retire=True):
            self._entries = restored

    @contextmanager
    def _quiesce(self, *, retire: bool = False) -> Iterator[None]:
        # Caller holds self._lock. A checkout that already looked up an entry
        # either finishes before this acquires its lock, or retries after.
        with ExitStack() as stack:
            for entry in self._entries.values():
                stack.enter_context(entry.state.lock)
                if retire:
                    entry.state.retired = True
            yield
