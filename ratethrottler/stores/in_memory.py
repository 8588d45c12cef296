"""In-memory snapshot store, mostly useful in tests and single-process demos."""

from __future__ import annotations

import threading

from ratethrottler.stores.base import AbstractSnapshotStore


class InMemorySnapshotStore(AbstractSnapshotStore):
    def __init__(self, snapshot: str | None = None) -> None:
        self._snapshot = snapshot
        self._lock = threading.Lock()

    def save(self, snapshot: str) -> None:
        with self._lock:
            self._snapshot = snapshot

    def load(self) -> str | None:
        with self._lock:
            return self._snapshot
