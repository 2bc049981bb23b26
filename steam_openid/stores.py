"""State and nonce store backends.

MemoryStateStore / MemoryNonceStore serialize every operation under one lock
and are meant for single-process deployments and tests. The Redis stores are
safe across processes: state is consumed with a MULTI get+delete and nonces
are recorded with ``SET NX EX``.
"""
from __future__ import annotations

import logging
import math
import threading
import time
from typing import Callable, Dict, Optional, Tuple

import redis

from steam_openid.errors import ConfigurationError


logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class _ExpiringMap:
    # expired entries are swept from write paths at most once per interval
    sweep_interval = 60.0

    def __init__(self, clock: Clock = time.monotonic) -> None:
        self._clock = clock
        self._items: Dict[str, Tuple[str, float]] = {}
        self._lock = threading.Lock()
        self._next_sweep = clock() + self.sweep_interval

    def _live(self, key: str, now: float) -> Optional[str]:
        item = self._items.get(key)
        if item is None:
            return None
        value, expires_at = item
        if expires_at <= now:
            del self._items[key]
            return None
        return value

    def _purge_locked(self, now: float) -> int:
        expired = [k for k, (_, exp) in self._items.items() if exp <= now]
        for k in expired:
            del self._items[k]
        self._next_sweep = now + self.sweep_interval
        return len(expired)

    def _put_locked(self, key: str, value: str, ttl: float, now: float) -> None:
        if now >= self._next_sweep:
            self._purge_locked(now)
        self._items[key] = (value, now + ttl)

    def purge(self) -> int:
        with self._lock:
            return self._purge_locked(self._clock())

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class MemoryStateStore(_ExpiringMap):
    def set(self, key: str, value: str, ttl: float) -> None:
        with self._lock:
            self._put_locked(key, value, ttl, self._clock())

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._live(key, self._clock())

    def delete(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def pop(self, key: str) -> Optional[str]:
        with self._lock:
            value = self._live(key, self._clock())
            self._items.pop(key, None)
            return value


class MemoryNonceStore(_ExpiringMap):
    def insert_if_absent(self, nonce: str, ttl: float) -> bool:
        with self._lock:
            now = self._clock()
            if self._live(nonce, now) is not None:
                return False
            self._put_locked(nonce, nonce, ttl, now)
            return True


def _decode(value) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


def _ttl_seconds(ttl: float) -> int:
    # Redis EX needs a positive integer
    return max(1, int(math.ceil(ttl)))


class RedisStateStore:
    def __init__(self, client: "redis.Redis") -> None:
        self.redis = client

    def set(self, key: str, value: str, ttl: float) -> None:
        self.redis.setex(key, _ttl_seconds(ttl), value)

    def get(self, key: str) -> Optional[str]:
        return _decode(self.redis.get(key))

    def delete(self, key: str) -> None:
        self.redis.delete(key)

    def pop(self, key: str) -> Optional[str]:
        # MULTI/EXEC makes the read and the delete one atomic step
        with self.redis.pipeline(transaction=True) as pipe:
            pipe.get(key)
            pipe.delete(key)
            value, _ = pipe.execute()
        return _decode(value)


class RedisNonceStore:
    def __init__(self, client: "redis.Redis", prefix: str = "steam:nonce:") -> None:
        self.redis = client
        self.prefix = prefix

    def insert_if_absent(self, nonce: str, ttl: float) -> bool:
        return bool(self.redis.set(self.prefix + nonce, "1", nx=True, ex=_ttl_seconds(ttl)))


def build_stores(settings) -> Tuple[object, object]:
    """Return (state_store, nonce_store) for settings.store_backend."""
    backend = settings.store_backend
    if backend == "memory":
        return MemoryStateStore(), MemoryNonceStore()
    if backend == "redis":
        if not settings.redis_url:
            raise ConfigurationError("STORE_BACKEND=redis requires REDIS_URL")
        client = redis.Redis.from_url(settings.redis_url)
        return RedisStateStore(client), RedisNonceStore(client)
    if backend == "sql":
        from steam_openid.db import make_engine, make_session_factory
        from steam_openid.migrate import create_all
        from steam_openid.sql_store import SqlNonceStore, SqlStateStore

        engine = make_engine(settings.database_url)
        create_all(engine)
        factory = make_session_factory(engine)
        return SqlStateStore(factory), SqlNonceStore(factory)
    raise ConfigurationError(f"unknown STORE_BACKEND {backend!r}")
