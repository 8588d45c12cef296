"""Snapshot store interface.

The throttler treats persisted snapshots as opaque strings; a store only has
to hand back what it was given.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class AbstractSnapshotStore(ABC):
    """Interface for snapshot persistence backends."""

    @abstractmethod
    def save(self, snapshot: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def load(self) -> str | None:
        """Return the last saved snapshot, or None when nothing was saved."""
        raise NotImplementedError
