"""Filesystem-backed snapshot store."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from ratethrottler.stores.base import AbstractSnapshotStore

logger = logging.getLogger(__name__)


class FileSnapshotStore(AbstractSnapshotStore):
    """Keeps the latest snapshot in a single UTF-8 text file.

    Writes go through a sibling temp file and ``os.replace`` so a crash
    mid-write never leaves a truncated snapshot behind.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def save(self, snapshot: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        temp_path.write_text(snapshot, encoding="utf-8")
        os.replace(temp_path, self._path)
        logger.debug(
            "snapshot_store.saved",
            extra={"path": str(self._path), "snapshot_chars": len(snapshot)},
        )

    def load(self) -> str | None:
        if not self._path.is_file():
            logger.debug("snapshot_store.missing", extra={"path": str(self._path)})
            return None
        return self._path.read_text(encoding="utf-8")
