"""
Role cache: get(key) -> (role | None, is_fresh), set(key, role), invalidate(key).
TTL задаётся при создании; жизненным циклом владеет тот, кто создал кеш.
Кеш может отставать от БД не дольше TTL; понижение роли через админку инвалидирует запись сразу.
"""
from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod
from typing import Callable

import redis

from app.access.models import Role


class RoleCache(ABC):
    def __init__(self, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds

    @abstractmethod
    def get(self, user_id: str) -> tuple[Role | None, bool]:
        raise NotImplementedError

    @abstractmethod
    def set(self, user_id: str, role: Role) -> None:
        raise NotImplementedError

    @abstractmethod
    def invalidate(self, user_id: str) -> None:
        raise NotImplementedError


class InMemoryRoleCache(RoleCache):
    """Per-process cache, last write wins. Stale entries are reported, then dropped."""

    def __init__(self, ttl_seconds: int, clock: Callable[[], float] = time.monotonic) -> None:
        super().__init__(ttl_seconds)
        self._clock = clock
        self._entries: dict[str, tuple[Role, float]] = {}
        self._lock = threading.Lock()

    def get(self, user_id: str) -> tuple[Role | None, bool]:
        with self._lock:
            entry = self._entries.get(user_id)
            if entry is None:
                return None, False
            role, stored_at = entry
            if self._clock() - stored_at < self.ttl_seconds:
                return role, True
            del self._entries[user_id]
            return role, False

    def set(self, user_id: str, role: Role) -> None:
        with self._lock:
            self._entries[user_id] = (role, self._clock())

    def invalidate(self, user_id: str) -> None:
        with self._lock:
            self._entries.pop(user_id, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


class RedisRoleCache(RoleCache):
    """Shared across workers; Redis expiry enforces the TTL, so any hit is fresh."""

    def __init__(self, client: redis.Redis, ttl_seconds: int) -> None:
        super().__init__(ttl_seconds)
        self.client = client

    def _key(self, user_id: str) -> str:
        return f"role:{user_id}"

    def get(self, user_id: str) -> tuple[Role | None, bool]:
        raw = self.client.get(self._key(user_id))
        if raw is None:
            return None, False
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        try:
            return Role(raw), True
        except ValueError:
            self.invalidate(user_id)
            return None, False

    def set(self, user_id: str, role: Role) -> None:
        self.client.setex(self._key(user_id), self.ttl_seconds, role.value)

    def invalidate(self, user_id: str) -> None:
        self.client.delete(self._key(user_id))


def build_role_cache(backend: str, ttl_seconds: int, redis_url: str | None = None) -> RoleCache:
    if backend == "redis":
        if not redis_url:
            raise ValueError("redis_url is required for the redis role cache")
        client = redis.Redis.from_url(redis_url, decode_responses=True)
        return RedisRoleCache(client, ttl_seconds)
    if backend == "memory":
        return InMemoryRoleCache(ttl_seconds)
    raise ValueError(f"Unknown role cache backend: {backend!r}")
