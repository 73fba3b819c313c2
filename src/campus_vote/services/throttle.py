"""Keyed TTL stores backing OTP rate limits and lockouts."""

from __future__ import annotations

import logging
import secrets
import time
from collections import deque
from collections.abc import Callable
from threading import Lock

import redis

from campus_vote.core.errors import ServiceUnavailableError
from campus_vote.core.settings import Settings

logger = logging.getLogger(__name__)


class ThrottleStore:
    """Interface for rolling-window counters, failure counters and lock flags.

    Every key carries its own expiry so no caller needs to schedule a sweep.
    """

    def record_hit(self, key: str, window_seconds: int) -> int:
        """Record an event and return how many fall inside the rolling window."""
        raise NotImplementedError

    def increment(self, key: str, ttl_seconds: int) -> int:
        """Increment a counter that expires ``ttl_seconds`` after its last bump."""
        raise NotImplementedError

    def lock(self, key: str, ttl_seconds: int) -> None:
        """Set a flag that stays active for ``ttl_seconds``."""
        raise NotImplementedError

    def is_locked(self, key: str) -> bool:
        raise NotImplementedError

    def reset(self, key: str) -> None:
        """Forget any counter, window or flag stored under ``key``."""
        raise NotImplementedError


class MemoryThrottleStore(ThrottleStore):
    """In-process store for single-worker deployments and tests."""

    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        sweep_interval_seconds: float = 60.0,
    ) -> None:
        self._clock = clock
        self._lock = Lock()
        self._hits: dict[str, deque[float]] = {}
        self._windows: dict[str, float] = {}
        self._counters: dict[str, tuple[int, float]] = {}
        self._flags: dict[str, float] = {}
        self._sweep_interval = sweep_interval_seconds
        self._next_sweep = 0.0

    def __len__(self) -> int:
        with self._lock:
            return len(self._hits) + len(self._counters) + len(self._flags)

    def record_hit(self, key: str, window_seconds: int) -> int:
        now = self._clock()
        with self._lock:
            self._sweep(now)
            hits = self._hits.setdefault(key, deque())
            self._windows[key] = window_seconds
            _prune(hits, now - window_seconds)
            hits.append(now)
            return len(hits)

    def increment(self, key: str, ttl_seconds: int) -> int:
        now = self._clock()
        with self._lock:
            self._sweep(now)
            count, expiry = self._counters.get(key, (0, 0.0))
            if expiry <= now:
                count = 0
            count += 1
            self._counters[key] = (count, now + ttl_seconds)
            return count

    def lock(self, key: str, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            return
        now = self._clock()
        with self._lock:
            self._sweep(now)
            self._flags[key] = now + ttl_seconds

    def is_locked(self, key: str) -> bool:
        now = self._clock()
        with self._lock:
            expiry = self._flags.get(key)
            if expiry is None:
                return False
            if expiry <= now:
                self._flags.pop(key, None)
                return False
            return True

    def reset(self, key: str) -> None:
        with self._lock:
            self._hits.pop(key, None)
            self._windows.pop(key, None)
            self._counters.pop(key, None)
            self._flags.pop(key, None)

    def _sweep(self, now: float) -> None:
        """Drop keys whose windows, counters or flags have all lapsed.

        Caller holds ``self._lock``.
        """
        if now < self._next_sweep:
            return
        self._next_sweep = now + self._sweep_interval
        for key in list(self._hits):
            hits = self._hits[key]
            _prune(hits, now - self._windows.get(key, 0.0))
            if not hits:
                del self._hits[key]
                self._windows.pop(key, None)
        for key in [k for k, (_, expiry) in self._counters.items() if expiry <= now]:
            del self._counters[key]
        for key in [k for k, expiry in self._flags.items() if expiry <= now]:
            del self._flags[key]


def _prune(hits: deque[float], cutoff: float) -> None:
    while hits and hits[0] <= cutoff:
        hits.popleft()


class RedisThrottleStore(ThrottleStore):
    """Redis-backed store shared by every worker process."""

    def __init__(self, client: redis.Redis, clock: Callable[[], float] = time.time) -> None:
        self._redis = client
        self._clock = clock

    def record_hit(self, key: str, window_seconds: int) -> int:
        now = self._clock()
        member = f"{now:.6f}:{secrets.token_hex(4)}"
        try:
            pipe = self._redis.pipeline()
            pipe.zremrangebyscore(key, 0, now - window_seconds)
            pipe.zadd(key, {member: now})
            pipe.zcard(key)
            pipe.expire(key, int(window_seconds))
            results = pipe.execute()
        except redis.RedisError as err:
            logger.exception("Throttle store unavailable while recording %s", key)
            raise ServiceUnavailableError() from err
        return int(results[2])

    def increment(self, key: str, ttl_seconds: int) -> int:
        try:
            pipe = self._redis.pipeline()
            pipe.incr(key)
            pipe.expire(key, int(ttl_seconds))
            count, _ = pipe.execute()
        except redis.RedisError as err:
            logger.exception("Throttle store unavailable while incrementing %s", key)
            raise ServiceUnavailableError() from err
        return int(count)

    def lock(self, key: str, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            return
        try:
            self._redis.set(key, "1", ex=int(ttl_seconds))
        except redis.RedisError as err:
            logger.exception("Throttle store unavailable while locking %s", key)
            raise ServiceUnavailableError() from err

    def is_locked(self, key: str) -> bool:
        try:
            return bool(self._redis.exists(key))
        except redis.RedisError as err:
            logger.exception("Throttle store unavailable while reading %s", key)
            raise ServiceUnavailableError() from err

    def reset(self, key: str) -> None:
        try:
            self._redis.delete(key)
        except redis.RedisError as err:
            logger.exception("Throttle store unavailable while resetting %s", key)
            raise ServiceUnavailableError() from err


def build_throttle_store(config: Settings) -> ThrottleStore:
    """Return the store selected by ``THROTTLE_BACKEND``."""
    backend = config.throttle_backend.lower()
    if backend == "redis":
        return RedisThrottleStore(redis.from_url(config.redis_url))
    if backend == "memory":
        return MemoryThrottleStore()
    raise ValueError(f"Unknown throttle backend: {config.throttle_backend!r}")
