"""Snapshot encoding of limiter histories.

Wire format (version 1): a JSON object mapping each invocation key to its
oldest-first array of integer nanosecond timestamps::

    {"orders-api": [1012345678901, 1012345680001], "search-api": []}

Policies are configuration and are not part of the snapshot.
"""

from __future__ import annotations

import json
import logging
from typing import Annotated, Mapping

from pydantic import Field, StrictInt, TypeAdapter, ValidationError

from ratethrottler.core.errors import MalformedSnapshotError
from ratethrottler.domain.policy import WindowPolicy
from ratethrottler.limiter.registry import LimiterRegistry

logger = logging.getLogger(__name__)

SNAPSHOT_FORMAT_VERSION = 1

Timestamp = Annotated[StrictInt, Field(ge=-(2**63), le=2**63 - 1)]

_HISTORIES = TypeAdapter(dict[str, list[Timestamp]])


def encode(histories: Mapping[str, list[int]]) -> str:
    """Serialize key -> timestamps to snapshot text."""
    return json.dumps({key: list(stamps) for key, stamps in histories.items()})


def decode(text: str) -> dict[str, list[int]] | None:
    """Parse and validate snapshot text.

    Returns:
        The decoded histories, or None when the document is JSON ``null``.

    Raises:
        MalformedSnapshotError: If ``text`` is not JSON, or not an object of
            string keys to arrays of 64-bit integers. The error details carry
            the expected ``format_version``.
    """
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise MalformedSnapshotError(
            code="snapshot_malformed",
            message=f"Snapshot is not valid JSON: {exc.msg}",
            details={"position": exc.pos, "context": {"format_version": SNAPSHOT_FORMAT_VERSION}},
        ) from exc

    if document is None:
        return None

    try:
        return _HISTORIES.validate_python(document)
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first["loc"]) or "<root>"
        raise MalformedSnapshotError(
            code="snapshot_malformed",
            message=f"Snapshot has an unexpected shape at {location}: {first['msg']}",
            details={
                "context": {
                    "format_version": SNAPSHOT_FORMAT_VERSION,
                    "error_count": exc.error_count(),
                },
            },
        ) from exc


class SnapshotCodec:
    """Takes and restores point-in-time snapshots of a ``LimiterRegistry``."""

    def __init__(self, registry: LimiterRegistry) -> None:
        self._registry = registry

    def take_snapshot(self) -> str:
        histories = self._registry.export_histories()
        snapshot = encode(histories)
        logger.debug(
            "snapshot.taken",
            extra={
                "keys": len(histories),
                "snapshot_chars": len(snapshot),
                "format_version": SNAPSHOT_FORMAT_VERSION,
            },
        )
        return snapshot

    def reconstruct(
        self,
        snapshot: str | None,
        policies: Mapping[str, WindowPolicy] | None = None,
    ) -> None:
        """Replace the registry contents with the histories in ``snapshot``.

        Empty or missing input leaves the registry untouched. The snapshot is
        fully decoded before anything is replaced, so a malformed snapshot
        never applies partially.

        Args:
            snapshot: Text produced by ``take_snapshot``.
            policies: Optional policies to bind to restored keys. Restored
                keys without one exist but cannot be throttled until bound.

        Raises:
            MalformedSnapshotError: If the snapshot cannot be decoded.
        """
        if snapshot is None or not snapshot.strip():
            logger.debug("snapshot.reconstruct_skipped", extra={"reason": "empty"})
            return

        histories = decode(snapshot)
        if histories is None:
            logger.debug("snapshot.reconstruct_skipped", extra={"reason": "null"})
            return

        self._registry.replace_histories(histories, policies)

        bound_keys = sum(1 for key in histories if policies and key in policies)
        logger.info(
            "snapshot.reconstructed",
            extra={
                "keys": len(histories),
                "bound_keys": bound_keys,
                "snapshot_chars": len(snapshot),
                "format_version": SNAPSHOT_FORMAT_VERSION,
            },
        )
