"""Throttler interface.

Callers should depend on this abstraction rather than the concrete service,
so the in-process engine can be swapped without touching call sites.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Mapping

from ratethrottler.domain.policy import WindowPolicy


class AbstractThrottler(ABC):
    """Interface for per-key invocation throttlers."""

    @abstractmethod
    def configure(self, key: str, policy: WindowPolicy) -> None:
        """Register ``key`` with ``policy`` and an empty history."""
        raise NotImplementedError

    @abstractmethod
    def exists(self, key: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def purge(self, key: str) -> None:
        """Empty the history of ``key``.

        Raises:
            UnknownKeyError: If ``key`` is not registered.
        """
        raise NotImplementedError

    @abstractmethod
    def drop(self, key: str) -> None:
        """Forget ``key``; never raises."""
        raise NotImplementedError

    @abstractmethod
    def count(self) -> int:
        raise NotImplementedError

    @abstractmethod
    def purge_all(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def throttle(self, key: str) -> bool:
        """Check and record a call on ``key``.

        Returns:
            True when the call must be denied, False when it is admitted.

        Raises:
            NotConfiguredError: If ``key`` has no policy.
        """
        raise NotImplementedError

    @abstractmethod
    def take_snapshot(self) -> str:
        raise NotImplementedError

    @abstractmethod
    def reconstruct(
        self,
        snapshot: str | None,
        policies: Mapping[str, WindowPolicy] | None = None,
    ) -> None:
        """Restore histories from ``snapshot``; a no-op on empty input.

        Raises:
            MalformedSnapshotError: If the snapshot cannot be decoded.
        """
        raise NotImplementedError
