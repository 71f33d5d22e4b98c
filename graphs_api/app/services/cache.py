"""Graph result cache with optional Redis backend."""

from __future__ import annotations

import heapq
import logging
import os
import threading
import time
import weakref
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Protocol, Tuple

from ..constants import REQUEST_HASH_LENGTH, REQUEST_HASH_SEPARATOR, DeltaMode
from ..schemas import GraphRequest

logger = logging.getLogger(__name__)


class CacheBackend(Protocol):
    def get(self, key: str) -> Optional[bytes]:
        ...

    def set(self, key: str, value: bytes, ttl_seconds: Optional[int] = None) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


@dataclass
class InMemoryCache(CacheBackend):
    """In-process cache; entries expire ``ttl_seconds`` after they were written.

    Expired entries are dropped when read, and every write sweeps the entries
    whose expiry has passed so keys that are never read again do not pile up.
    """

    store: Dict[str, Tuple[Optional[float], bytes]] = field(default_factory=dict)
    clock: Callable[[], float] = time.monotonic
    _expiries: List[Tuple[float, str]] = field(default_factory=list, init=False, repr=False, compare=False)
    _guard: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)

    def get(self, key: str) -> Optional[bytes]:
        entry = self.store.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if expires_at is not None and self.clock() >= expires_at:
            self.store.pop(key, None)
            return None
        return value

    def set(self, key: str, value: bytes, ttl_seconds: Optional[int] = None) -> None:
        with self._guard:
            now = self.clock()
            self._evict_expired(now)
            expires_at = now + ttl_seconds if ttl_seconds else None
            self.store[key] = (expires_at, value)
            if expires_at is not None:
                heapq.heappush(self._expiries, (expires_at, key))

    def delete(self, key: str) -> None:
        self.store.pop(key, None)

    def _evict_expired(self, now: float) -> None:
        while self._expiries and self._expiries[0][0] <= now:
            expires_at, key = heapq.heappop(self._expiries)
            entry = self.store.get(key)
            # The key may have been rewritten since this expiry was queued.
            if entry is not None and entry[0] == expires_at:
                self.store.pop(key, None)


class RedisCache(CacheBackend):
    """Redis-backed cache; gracefully degrades to misses if Redis is unavailable."""

    def __init__(self, url: str):
        try:
            import redis  # type: ignore
        except ImportError:  # pragma: no cover - optional dependency
            raise RuntimeError("redis package not installed")

        self.client = redis.Redis.from_url(url, decode_responses=False)

    def get(self, key: str) -> Optional[bytes]:
        try:
            return self.client.get(key)
        except Exception:  # pragma: no cover
            logger.warning("Redis get failed for key %s", key, exc_info=True)
            return None

    def set(self, key: str, value: bytes, ttl_seconds: Optional[int] = None) -> None:
        try:
            if ttl_seconds:
                self.client.setex(key, ttl_seconds, value)
            else:
                self.client.set(key, value)
        except Exception:  # pragma: no cover
            logger.warning("Redis set failed for key %s", key, exc_info=True)

    def delete(self, key: str) -> None:
        try:
            self.client.delete(key)
        except Exception:  # pragma: no cover
            logger.warning("Redis delete failed for key %s", key, exc_info=True)


def build_graph_key(namespace: str, request_hash: str) -> str:
    """Construct the backend key for a graph result."""

    return f"api:v1:graphs:{namespace}:{request_hash}"


def graph_namespace(graph_type: str) -> str:
    return f"graphs/{graph_type}"


def _hash_field(value: object) -> str:
    if value is None:
        return ""
    return str(value)


def request_hash(request: GraphRequest) -> str:
    """Derive the cache hash for a request.

    Field order, separator and truncation are fixed so keys stay stable across
    deployments.
    """

    technical = request.technical
    fields = [
        request.days,
        "" if request.delta == DeltaMode.NONE else request.delta.value,
        request.arg0,
        request.arg0_resolved,
        request.user_id,
        request.user_hash,
        technical.type.value if technical else None,
        technical.period if technical else None,
    ]
    return REQUEST_HASH_SEPARATOR.join(_hash_field(value) for value in fields)[:REQUEST_HASH_LENGTH]


class _KeyLock:
    __slots__ = ("lock", "__weakref__")

    def __init__(self) -> None:
        self.lock = threading.Lock()


class CacheStore:
    """Single-flight wrapper around a :class:`CacheBackend`.

    A miss computes the value under a per-key lock, so concurrent callers for
    the same key wait and then read the stored result. Exceptions raised by the
    computation propagate and nothing is stored.
    """

    def __init__(self, backend: CacheBackend) -> None:
        self.backend = backend
        self._locks: "weakref.WeakValueDictionary[str, _KeyLock]" = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    def _lock_for(self, key: str) -> _KeyLock:
        with self._locks_guard:
            key_lock = self._locks.get(key)
            if key_lock is None:
                key_lock = _KeyLock()
                self._locks[key] = key_lock
            return key_lock

    def get_or_compute(
        self,
        namespace: str,
        hash_: str,
        ttl_seconds: int,
        compute: Callable[[], str],
    ) -> str:
        if ttl_seconds <= 0:
            return compute()

        key = build_graph_key(namespace, hash_)
        cached = self.backend.get(key)
        if cached is not None:
            logger.debug("Graph cache hit for %s", key)
            return cached.decode()

        key_lock = self._lock_for(key)
        with key_lock.lock:
            cached = self.backend.get(key)
            if cached is not None:
                logger.debug("Graph cache filled while waiting for %s", key)
                return cached.decode()
            logger.debug("Graph cache miss for %s", key)
            value = compute()
            self.backend.set(key, value.encode(), ttl_seconds=ttl_seconds)
            return value


def get_cache_backend() -> CacheBackend:
    """Return the configured cache backend (Redis when REDIS_URL set, else in-memory)."""

    redis_url = os.getenv("REDIS_URL")
    if redis_url:
        try:
            return RedisCache(redis_url)
        except Exception:
            logger.warning("Falling back to in-memory cache; Redis initialization failed", exc_info=True)
    return InMemoryCache()


__all__ = [
    "CacheBackend",
    "CacheStore",
    "InMemoryCache",
    "RedisCache",
    "build_graph_key",
    "get_cache_backend",
    "graph_namespace",
    "request_hash",
]
