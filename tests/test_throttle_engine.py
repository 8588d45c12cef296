"""Unit tests for the sliding-window admission engine."""

import pytest

from ratethrottler.core.errors import NotConfiguredError
from ratethrottler.domain.policy import WindowPolicy, WindowUnit
from ratethrottler.limiter.engine import ThrottleEngine
from ratethrottler.limiter.registry import LimiterRegistry


def _engine(clock, **policies: WindowPolicy) -> tuple[ThrottleEngine, LimiterRegistry]:
    registry = LimiterRegistry()
    for key, policy in policies.items():
        registry.configure(key, policy)
    return ThrottleEngine(registry, clock=clock), registry


def test_admits_up_to_bound_then_denies(clock) -> None:
    engine, registry = _engine(clock, k=WindowPolicy(bound=3, window_length=60))

    assert [engine.throttle("k") for _ in range(3)] == [False, False, False]
    assert engine.throttle("k") is True
    assert len(registry.history("k")) == 3


def test_denial_leaves_history_unchanged(clock) -> None:
    engine, registry = _engine(clock, k=WindowPolicy(bound=2, window_length=1))
    engine.throttle("k")
    engine.throttle("k")
    before = registry.history("k")

    assert engine.throttle("k") is True
    assert engine.throttle("k") is True
    assert registry.history("k") == before


def test_bound_two_one_second_scenario(clock) -> None:
    engine, registry = _engine(clock, k=WindowPolicy(bound=2, window_length=1, window_unit=WindowUnit.SECONDS))

    assert engine.throttle("k") is False
    t1, = registry.history("k")
    assert engine.throttle("k") is False
    _, t2 = registry.history("k")
    assert engine.throttle("k") is True
    assert registry.history("k") == (t1, t2)

    clock.advance(1.1)

    assert engine.throttle("k") is False
    history = registry.history("k")
    assert history[0] == t2
    assert len(history) == 2
    assert t1 not in history


def test_rollover_evicts_exactly_one(clock) -> None:
    engine, registry = _engine(clock, k=WindowPolicy(bound=3, window_length=10))
    engine.throttle("k")
    clock.advance(5)
    engine.throttle("k")
    engine.throttle("k")
    first, second, third = registry.history("k")

    clock.advance(5)

    assert engine.throttle("k") is False
    history = registry.history("k")
    assert len(history) == 3
    assert history[:2] == (second, third)
    assert first not in history
    # second and third are only five seconds old
    assert engine.throttle("k") is True


def test_admits_once_elapsed_reaches_window(clock) -> None:
    engine, registry = _engine(clock, k=WindowPolicy(bound=1, window_length=1))
    engine.throttle("k")
    eldest, = registry.history("k")

    clock.current = eldest + 1_000_000_000 - 2
    assert engine.throttle("k") is True

    clock.current = eldest + 1_000_000_000 - 1
    assert engine.throttle("k") is False


def test_zero_length_window_never_denies(clock) -> None:
    engine, registry = _engine(clock, k=WindowPolicy(bound=1, window_length=0))

    assert [engine.throttle("k") for _ in range(5)] == [False] * 5
    assert len(registry.history("k")) == 1


def test_keys_are_isolated(clock) -> None:
    policy = WindowPolicy(bound=1, window_length=60)
    engine, _ = _engine(clock, a=policy, b=policy)

    assert engine.throttle("a") is False
    assert engine.throttle("a") is True
    assert engine.throttle("b") is False


def test_unconfigured_key_raises(clock) -> None:
    engine, _ = _engine(clock)

    with pytest.raises(NotConfiguredError) as exc_info:
        engine.throttle("unconfigured-key")

    assert exc_info.value.code == "limiter_not_configured"
    assert exc_info.value.details["key"] == "unconfigured-key"


def test_dropped_key_raises(clock) -> None:
    engine, registry = _engine(clock, k=WindowPolicy(bound=1, window_length=1))
    registry.drop("k")

    with pytest.raises(NotConfiguredError):
        engine.throttle("k")


def test_restored_key_without_policy_raises(clock) -> None:
    engine, registry = _engine(clock)
    registry.replace_histories({"k": [1, 2]})

    with pytest.raises(NotConfiguredError) as exc_info:
        engine.throttle("k")

    assert "restored" in exc_info.value.details["hint"]


def test_purge_behaves_like_fresh_configure(clock) -> None:
    engine, registry = _engine(clock, k=WindowPolicy(bound=2, window_length=60))
    engine.throttle("k")
    engine.throttle("k")
    assert engine.throttle("k") is True

    registry.purge("k")

    assert engine.throttle("k") is False
    assert engine.throttle("k") is False
    assert engine.throttle("k") is True


def test_decide_reports_remaining_and_retry_after(clock) -> None:
    engine, _ = _engine(clock, k=WindowPolicy(bound=2, window_length=10))

    first = engine.decide("k")
    assert first.denied is False
    assert first.bound == 2
    assert first.remaining == 1
    assert first.retry_after_seconds is None

    assert engine.decide("k").remaining == 0

    clock.advance(4)
    blocked = engine.decide("k")
    assert blocked.denied is True
    assert blocked.remaining == 0
    assert blocked.retry_after_seconds == pytest.approx(6, abs=1e-6)


def test_default_clock_is_monotonic_nanoseconds() -> None:
    registry = LimiterRegistry()
    registry.configure("k", WindowPolicy(bound=2, window_length=1))
    engine = ThrottleEngine(registry)

    engine.throttle("k")
    engine.throttle("k")

    first, second = registry.history("k")
    assert isinstance(first, int)
    assert second >= first
