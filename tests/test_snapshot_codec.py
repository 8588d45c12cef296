"""Unit tests for snapshot encoding and reconstruction."""

import json

import pytest

from ratethrottler.core.errors import MalformedSnapshotError, NotConfiguredError
from ratethrottler.domain.policy import WindowPolicy
from ratethrottler.limiter.engine import ThrottleEngine
from ratethrottler.limiter.registry import LimiterRegistry
from ratethrottler.limiter.snapshot import SNAPSHOT_FORMAT_VERSION, SnapshotCodec, decode, encode

POLICY = WindowPolicy(bound=3, window_length=60)


@pytest.fixture
def registry() -> LimiterRegistry:
    registry = LimiterRegistry()
    registry.replace_histories(
        {
            "orders-api": [1012345678901, 1012345680001],
            "search-api": [],
        },
        {"orders-api": POLICY, "search-api": POLICY},
    )
    return registry


def test_encode_matches_wire_format() -> None:
    text = encode({"orders-api": [1012345678901, 1012345680001], "search-api": []})

    assert json.loads(text) == {"orders-api": [1012345678901, 1012345680001], "search-api": []}


def test_encode_empty_registry() -> None:
    assert encode({}) == "{}"
    assert decode("{}") == {}


def test_decode_accepts_64_bit_extremes() -> None:
    text = json.dumps({"k": [-(2**63), 2**63 - 1]})

    assert decode(text) == {"k": [-(2**63), 2**63 - 1]}


def test_snapshot_round_trip_preserves_order(registry: LimiterRegistry) -> None:
    codec = SnapshotCodec(registry)
    before = registry.export_histories()

    codec.reconstruct(codec.take_snapshot())

    assert registry.export_histories() == before
    assert registry.history("orders-api") == (1012345678901, 1012345680001)


def test_take_snapshot_does_not_mutate(registry: LimiterRegistry) -> None:
    codec = SnapshotCodec(registry)
    before = registry.export_histories()

    codec.take_snapshot()
    codec.take_snapshot()

    assert registry.export_histories() == before
    assert registry.policy("orders-api") == POLICY


@pytest.mark.parametrize("snapshot", [None, "", "   ", "null"])
def test_empty_snapshot_is_noop(registry: LimiterRegistry, snapshot) -> None:
    codec = SnapshotCodec(registry)
    before = registry.export_histories()

    codec.reconstruct(snapshot)

    assert registry.export_histories() == before
    assert registry.policy("orders-api") == POLICY


def test_reconstruct_replaces_whole_registry(registry: LimiterRegistry) -> None:
    codec = SnapshotCodec(registry)

    codec.reconstruct('{"billing-api": [5, 6, 7]}')

    assert registry.keys() == ["billing-api"]
    assert registry.history("billing-api") == (5, 6, 7)
    assert registry.exists("orders-api") is False


@pytest.mark.parametrize(
    "snapshot",
    [
        "not json",
        "{",
        "[]",
        "42",
        '"text"',
        '{"k": 5}',
        '{"k": [1, "2"]}',
        '{"k": [1, 2.5]}',
        '{"k": [true]}',
        '{"k": [null]}',
        '{"k": {"0": 1}}',
        json.dumps({"k": [2**63]}),
        '{"ok": [1, 2], "bad": [1, "x"]}',
    ],
)
def test_malformed_snapshot_rejected_atomically(registry: LimiterRegistry, snapshot: str) -> None:
    codec = SnapshotCodec(registry)
    before = registry.export_histories()

    with pytest.raises(MalformedSnapshotError) as exc_info:
        codec.reconstruct(snapshot)

    assert exc_info.value.code == "snapshot_malformed"
    assert registry.export_histories() == before
    assert registry.policy("orders-api") == POLICY


def test_restored_keys_need_policy_before_throttle(registry: LimiterRegistry, clock) -> None:
    codec = SnapshotCodec(registry)
    engine = ThrottleEngine(registry, clock=clock)
    snapshot = codec.take_snapshot()

    codec.reconstruct(snapshot)

    assert registry.exists("orders-api") is True
    assert registry.count() == 2
    assert registry.policy("orders-api") is None
    with pytest.raises(NotConfiguredError):
        engine.throttle("orders-api")


def test_reconstruct_with_policies_keeps_history(clock) -> None:
    registry = LimiterRegistry()
    codec = SnapshotCodec(registry)
    engine = ThrottleEngine(registry, clock=clock)
    now = clock.current
    snapshot = encode({"k": [now - 3, now - 2]})

    codec.reconstruct(snapshot, {"k": WindowPolicy(bound=3, window_length=60)})

    assert engine.throttle("k") is False
    assert engine.throttle("k") is True
    assert registry.history("k")[:2] == (now - 3, now - 2)


@pytest.mark.parametrize("snapshot", ["{", '{"k": ["x"]}'])
def test_malformed_snapshot_reports_format_version(snapshot: str) -> None:
    with pytest.raises(MalformedSnapshotError) as exc_info:
        decode(snapshot)

    assert exc_info.value.details["context"]["format_version"] == SNAPSHOT_FORMAT_VERSION
