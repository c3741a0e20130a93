"""Generic string key/value stores.

Used to persist decryption signatures under composite string keys.

Usage:
    from fhevm_kit.core.storage import InMemoryStringStorage, RedisStringStorage

    storage = InMemoryStringStorage()
    await storage.set_item("k", "v")
    await storage.get_item("k")

    storage = RedisStringStorage("redis://localhost:6379/0")
"""

from __future__ import annotations

import logging
from typing import Any

import redis.asyncio as aioredis

from fhevm_kit.core.config import get_settings

logger = logging.getLogger(__name__)


class InMemoryStringStorage:
    """Process-local string store backed by a dict."""

    def __init__(self) -> None:
        self._store: dict[str, str] = {}

    async def get_item(self, key: str) -> str | None:
        return self._store.get(key) or None

    async def set_item(self, key: str, value: str) -> None:
        self._store[key] = value

    async def remove_item(self, key: str) -> None:
        self._store.pop(key, None)

    def __len__(self) -> int:
        return len(self._store)


class RedisStringStorage:
    """Async Redis string store with a key prefix.

    Unlike a cache, entries carry no TTL: expiry of the stored values is
    decided by the caller.
    """

    def __init__(self, url: str | None = None, prefix: str = "fhevm") -> None:
        self._url = url or get_settings().redis_url
        self._prefix = prefix
        self._client: Any | None = None

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = aioredis.from_url(
                self._url,
                decode_responses=True,
                socket_connect_timeout=2,
            )
        return self._client

    def _key(self, key: str) -> str:
        return f"{self._prefix}:{key}"

    async def get_item(self, key: str) -> str | None:
        """Retrieve a stored value, returning None on miss."""
        return await self._get_client().get(self._key(key))

    async def set_item(self, key: str, value: str) -> None:
        await self._get_client().set(self._key(key), value)

    async def remove_item(self, key: str) -> None:
        await self._get_client().delete(self._key(key))

    async def close(self) -> None:
        """Close the Redis connection."""
        if self._client is not None:
            await self._client.close()
            self._client = None
