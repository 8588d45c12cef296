"""Per-key limiter state."""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Iterable

from ratethrottler.domain.policy import WindowPolicy


class LimiterState:
    """Oldest-first history of admission timestamps for one key.

    Every read or write of ``history`` must happen while ``lock`` is held;
    the registry and the engine take it for you. ``retired`` is set, under
    ``lock``, once the registry has replaced or removed this state.
    """

    __slots__ = ("history", "lock", "retired")

    def __init__(self, timestamps: Iterable[int] = ()) -> None:
        self.history: deque[int] = deque(timestamps)
        self.lock = threading.Lock()
        self.retired = False

    def __len__(self) -> int:
        return len(self.history)

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"LimiterState(size={len(self.history)})"

    def clear(self) -> None:
        self.history.clear()

    def trim(self, bound: int) -> None:
        """Drop the oldest timestamps until at most ``bound`` remain."""
        while len(self.history) > bound:
            self.history.popleft()

    def copy(self) -> list[int]:
        return list(self.history)


@dataclass
class LimiterEntry:
    """Registry entry binding a key's policy to its state.

    ``policy`` is ``None`` for entries restored from a snapshot that have not
    been bound to a policy yet.
    """

    policy: WindowPolicy | None
    state: LimiterState = field(default_factory=LimiterState)
