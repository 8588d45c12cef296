"""Throttler exception types.

This module defines the errors raised by the registry, the admission engine
and the snapshot codec, so callers can handle every failure through a single
base class while still branching on the specific kind.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and callers.

    Fields are optional; each error fills in the ones that apply.
    """

    key: str
    hint: str
    bound: int
    window_length: int
    window_unit: str
    position: int
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for throttler failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when a policy or setting is invalid."""


class NotConfiguredError(AppError):
    """Raised when throttling a key that has no policy bound to it."""


class UnknownKeyError(AppError):
    """Raised when purging or inspecting a key with no registry entry."""


class MalformedSnapshotError(AppError):
    """Raised when snapshot text does not decode to key -> timestamp list."""
