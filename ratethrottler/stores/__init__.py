"""Snapshot stores.

The throttler hands snapshots to a store as opaque strings. The stores here
cover local use; a shared database or cache backend only needs to implement
``AbstractSnapshotStore``.
"""

from ratethrottler.stores.base import AbstractSnapshotStore
from ratethrottler.stores.file import FileSnapshotStore
from ratethrottler.stores.in_memory import InMemorySnapshotStore

__all__ = ["AbstractSnapshotStore", "FileSnapshotStore", "InMemorySnapshotStore"]
