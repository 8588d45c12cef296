"""Window policy value types."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ratethrottler.core.errors import ValidationAppError

NANOS_PER_SECOND = 1_000_000_000


class WindowUnit(str, Enum):
    """Unit of a policy's window length."""

    SECONDS = "SECONDS"
    MINUTES = "MINUTES"
    HOURS = "HOURS"

    @classmethod
    def parse(cls, value: "WindowUnit | str") -> "WindowUnit":
        """Resolve a unit from its name, case-insensitively.

        Raises:
            ValidationAppError: If the name is not a known unit.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValidationAppError(
                code="window_unit_unknown",
                message=f"Unknown window unit: '{value}'. Supported units: SECONDS, MINUTES, HOURS",
                details={"window_unit": str(value)},
            ) from None


_UNIT_NANOS: dict[WindowUnit, int] = {
    WindowUnit.SECONDS: NANOS_PER_SECOND,
    WindowUnit.MINUTES: 60 * NANOS_PER_SECOND,
    WindowUnit.HOURS: 60 * 60 * NANOS_PER_SECOND,
}


def unit_to_nanos(unit: WindowUnit) -> int:
    """Return nanoseconds per unit, or 0 for an unrecognized unit."""
    return _UNIT_NANOS.get(unit, 0)


@dataclass(frozen=True)
class WindowPolicy:
    """Rate rule for one invocation key.

    Attributes:
        bound: Max admissions allowed within one window.
        window_length: Window length, in ``window_unit``.
        window_unit: Unit of ``window_length``.
        name: Optional display name of the guarded invocation.
    """

    bound: int
    window_length: int
    window_unit: WindowUnit = WindowUnit.SECONDS
    name: str | None = None

    def __post_init__(self) -> None:
        if isinstance(self.bound, bool) or not isinstance(self.bound, int) or self.bound < 1:
            raise ValidationAppError(
                code="policy_invalid_bound",
                message="bound must be an integer >= 1",
                details={"bound": self.bound},
            )
        if (
            isinstance(self.window_length, bool)
            or not isinstance(self.window_length, int)
            or self.window_length < 0
        ):
            raise ValidationAppError(
                code="policy_invalid_window",
                message="window_length must be an integer >= 0",
                details={"window_length": self.window_length},
            )
        object.__setattr__(self, "window_unit", WindowUnit.parse(self.window_unit))

    @property
    def window_nanos(self) -> int:
        """Window duration in nanoseconds."""
        return self.window_length * unit_to_nanos(self.window_unit)

    def describe(self) -> str:
        label = self.name or "policy"
        return f"{label}: {self.bound} per {self.window_length} {self.window_unit.value.lower()}"
