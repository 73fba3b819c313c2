"""Tests for the keyed TTL stores behind OTP rate limits and lockouts."""

from __future__ import annotations

import pytest
import redis

from campus_vote.core.errors import ServiceUnavailableError
from campus_vote.services.throttle import (
    MemoryThrottleStore,
    RedisThrottleStore,
    build_throttle_store,
)


class TickingClock:
    def __init__(self) -> None:
        self.now = 1_000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def ticking() -> TickingClock:
    return TickingClock()


@pytest.fixture
def store(ticking: TickingClock) -> MemoryThrottleStore:
    return MemoryThrottleStore(clock=ticking)


def test_record_hit_counts_inside_rolling_window(store, ticking) -> None:
    assert store.record_hit("k", 300) == 1
    ticking.now += 100
    assert store.record_hit("k", 300) == 2
    ticking.now += 250
    # The first hit is now older than the window.
    assert store.record_hit("k", 300) == 2


def test_record_hit_keys_are_independent(store) -> None:
    store.record_hit("a", 60)
    store.record_hit("a", 60)
    assert store.record_hit("b", 60) == 1


def test_increment_restarts_after_ttl(store, ticking) -> None:
    assert store.increment("fail", 30) == 1
    assert store.increment("fail", 30) == 2
    ticking.now += 31
    assert store.increment("fail", 30) == 1


def test_lock_expires(store, ticking) -> None:
    store.lock("lock", 1800)
    assert store.is_locked("lock")
    ticking.now += 1799
    assert store.is_locked("lock")
    ticking.now += 2
    assert not store.is_locked("lock")


def test_reset_forgets_everything(store) -> None:
    store.record_hit("k", 60)
    store.increment("k", 60)
    store.lock("k", 60)

    store.reset("k")

    assert not store.is_locked("k")
    assert store.increment("k", 60) == 1
    assert store.record_hit("k", 60) == 1


def test_lapsed_keys_are_swept(ticking) -> None:
    store = MemoryThrottleStore(clock=ticking, sweep_interval_seconds=60)
    for n in range(50):
        store.record_hit(f"otp:send:+91987654{n:04d}", 300)
    store.increment("otp:fail:x", 30)
    store.lock("otp:lock:x", 30)
    assert len(store) == 52

    ticking.now += 301
    store.record_hit("otp:send:+919876543210", 300)

    assert len(store) == 1


def test_keys_inside_their_window_survive_a_sweep(ticking) -> None:
    store = MemoryThrottleStore(clock=ticking, sweep_interval_seconds=0)
    store.record_hit("a", 600)
    ticking.now += 301
    store.record_hit("b", 300)

    assert len(store) == 2
    assert store.record_hit("a", 600) == 2


def test_redis_record_hit_returns_window_size(mocker) -> None:
    client = mocker.MagicMock(spec=redis.Redis)
    pipe = client.pipeline.return_value
    pipe.execute.return_value = [0, 1, 3, True]
    store = RedisThrottleStore(client, clock=lambda: 500.0)

    assert store.record_hit("otp:send:+919876543210", 300) == 3
    pipe.zremrangebyscore.assert_called_once_with("otp:send:+919876543210", 0, 200.0)
    pipe.expire.assert_called_once_with("otp:send:+919876543210", 300)


def test_redis_increment_and_lock(mocker) -> None:
    client = mocker.MagicMock(spec=redis.Redis)
    client.pipeline.return_value.execute.return_value = [2, True]
    client.exists.return_value = 1
    store = RedisThrottleStore(client)

    assert store.increment("otp:fail:x", 1800) == 2
    store.lock("otp:lock:x", 1800)
    client.set.assert_called_once_with("otp:lock:x", "1", ex=1800)
    assert store.is_locked("otp:lock:x") is True


def test_redis_outage_is_service_unavailable(mocker) -> None:
    client = mocker.MagicMock(spec=redis.Redis)
    client.exists.side_effect = redis.ConnectionError("down")
    store = RedisThrottleStore(client)

    with pytest.raises(ServiceUnavailableError):
        store.is_locked("otp:lock:x")


def test_build_throttle_store(test_settings) -> None:
    assert isinstance(build_throttle_store(test_settings), MemoryThrottleStore)

    bogus = test_settings.model_copy(update={"throttle_backend": "carrier-pigeon"})
    with pytest.raises(ValueError):
        build_throttle_store(bogus)
