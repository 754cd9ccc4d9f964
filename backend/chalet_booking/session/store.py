from __future__ import annotations

import json
import logging
from functools import lru_cache
from typing import Any

import redis.asyncio as redis

from chalet_booking.core.config import get_settings
from chalet_booking.session.redis_client import get_redis_client

logger = logging.getLogger(__name__)


class KeyValueStore:
    """Строковое key-value хранилище с областью видимости (префиксом).

    Компоненты получают хранилище через конструктор и не обращаются к
    глобальному состоянию: в тестах подставляется in-memory реализация.
    """

    def scoped(self, namespace: str) -> KeyValueStore:
        raise NotImplementedError

    async def get(self, key: str) -> str | None:
        raise NotImplementedError

    async def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    async def delete(self, key: str) -> None:
        raise NotImplementedError

    async def clear(self) -> None:
        raise NotImplementedError

    async def ping(self) -> bool:
        raise NotImplementedError

    async def get_json(self, key: str) -> dict[str, Any] | None:
        raw = await self.get(key)
        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Dropping non-JSON value stored under %s", key)
            return None
        return data if isinstance(data, dict) else None

    async def set_json(self, key: str, data: dict[str, Any]) -> None:
        await self.set(key, json.dumps(data, ensure_ascii=False))


class InMemoryKeyValueStore(KeyValueStore):
    def __init__(self, prefix: str = "", storage: dict[str, str] | None = None) -> None:
        self._prefix = prefix
        self._storage: dict[str, str] = storage if storage is not None else {}

    def scoped(self, namespace: str) -> InMemoryKeyValueStore:
        return InMemoryKeyValueStore(f"{self._prefix}{namespace}:", self._storage)

    async def get(self, key: str) -> str | None:
        return self._storage.get(self._prefix + key)

    async def set(self, key: str, value: str) -> None:
        self._storage[self._prefix + key] = value

    async def delete(self, key: str) -> None:
        self._storage.pop(self._prefix + key, None)

    async def clear(self) -> None:
        for key in [key for key in self._storage if key.startswith(self._prefix)]:
            del self._storage[key]

    async def ping(self) -> bool:
        return True


class RedisKeyValueStore(KeyValueStore):
    """Хранилище в Redis; каждое значение живёт ``ttl_seconds``."""

    key_prefix = "rsr:sess:"

    def __init__(
        self,
        redis_client: redis.Redis,
        ttl_seconds: int,
        prefix: str | None = None,
    ) -> None:
        self._redis = redis_client
        self._ttl_seconds = ttl_seconds
        self._prefix = self.key_prefix if prefix is None else prefix

    def scoped(self, namespace: str) -> RedisKeyValueStore:
        return RedisKeyValueStore(
            self._redis, self._ttl_seconds, prefix=f"{self._prefix}{namespace}:"
        )

    async def get(self, key: str) -> str | None:
        data = await self._redis.get(self._build_key(key))
        if data is None:
            return None
        return data.decode("utf-8") if isinstance(data, (bytes, bytearray)) else str(data)

    async def set(self, key: str, value: str) -> None:
        await self._redis.setex(self._build_key(key), self._ttl_seconds, value.encode("utf-8"))

    async def delete(self, key: str) -> None:
        await self._redis.delete(self._build_key(key))

    async def clear(self) -> None:
        keys = [key async for key in self._redis.scan_iter(match=f"{self._prefix}*")]
        if keys:
            await self._redis.delete(*keys)

    async def ping(self) -> bool:
        try:
            return bool(await self._redis.ping())
        except redis.RedisError:
            return False

    def _build_key(self, key: str) -> str:
        return f"{self._prefix}{key}"


@lru_cache(maxsize=1)
def get_session_store() -> KeyValueStore:
    settings = get_settings()
    if settings.use_redis_state_store:
        logger.info("Using Redis session store")
        return RedisKeyValueStore(get_redis_client(), ttl_seconds=settings.session_ttl_seconds)
    logger.info("Using in-memory session store")
    return InMemoryKeyValueStore()


__all__ = ["KeyValueStore", "InMemoryKeyValueStore", "RedisKeyValueStore", "get_session_store"]
