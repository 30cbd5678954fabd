"""Device-local key-value storage: Redis-backed with in-memory fallback."""
from __future__ import annotations

import logging
from typing import Any, Protocol

import redis

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """String key/value storage used by the stores for persistence."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...

    def remove_many(self, keys: list[str]) -> None: ...


class MemoryKeyValueStore:
    """Process-local storage. Survives store re-creation, not restarts."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = str(value)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def remove_many(self, keys: list[str]) -> None:
        for key in keys:
            self._data.pop(key, None)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)


class RedisKeyValueStore:
    """Key-value storage persisted in Redis.

    When Redis is not configured or stops answering, the store switches to an
    in-memory dict for the rest of the process lifetime and keeps working as a
    memory-only cache.
    """

    def __init__(self, redis_url: str | None = None, namespace: str = ""):
        self._redis_url = redis_url
        self._namespace = namespace
        self._memory = MemoryKeyValueStore()
        self._client: Any = self._init_client()

    @property
    def is_persistent(self) -> bool:
        return self._client is not None

    def _init_client(self):
        if not self._redis_url:
            logger.warning("REDIS_URL is not set; key-value store uses in-memory fallback")
            return None

        try:
            client = redis.from_url(
                self._redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
            client.ping()
            logger.info("Redis key-value store enabled")
            return client
        except Exception as exc:
            logger.warning("Redis init failed, fallback to in-memory: %s", exc)
            return None

    def _switch_to_memory_fallback(self, reason: Exception | str) -> None:
        logger.warning("Redis key-value store fallback to memory mode: %s", reason)
        self._client = None

    def _key(self, key: str) -> str:
        return f"{self._namespace}{key}" if self._namespace else key

    def get(self, key: str) -> str | None:
        if not self._client:
            return self._memory.get(key)
        try:
            value = self._client.get(self._key(key))
        except Exception as exc:
            self._switch_to_memory_fallback(exc)
            return self._memory.get(key)
        return None if value is None else str(value)

    def set(self, key: str, value: str) -> None:
        if self._client:
            try:
                self._client.set(self._key(key), value)
                return
            except Exception as exc:
                self._switch_to_memory_fallback(exc)
        self._memory.set(key, value)

    def remove(self, key: str) -> None:
        if self._client:
            try:
                self._client.delete(self._key(key))
                return
            except Exception as exc:
                self._switch_to_memory_fallback(exc)
        self._memory.remove(key)

    def remove_many(self, keys: list[str]) -> None:
        if not keys:
            return
        if self._client:
            try:
                self._client.delete(*[self._key(key) for key in keys])
                return
            except Exception as exc:
                self._switch_to_memory_fallback(exc)
        self._memory.remove_many(keys)


def create_kv_store(redis_url: str | None) -> KeyValueStore:
    """Redis when a URL is configured, plain memory otherwise."""
    if redis_url:
        return RedisKeyValueStore(redis_url)
    return MemoryKeyValueStore()
