"""Redis client for questy_coach.

Redis is optional. It holds per-student engine state and cached
embeddings as JSON documents; without it the engine keeps state
in-process.
"""

import json
from typing import Any

from questy_coach.config import RedisSettings
from questy_coach.logging import get_logger
from questy_coach.utils.lazy_import import lazy_import

__all__ = [
    "RedisClient",
]

logger = get_logger(__name__)

get_async_redis = lazy_import("redis.asyncio", "Redis")


class RedisClient:
    """Async Redis wrapper storing JSON documents under prefixed keys.

    Keys are built from parts joined with ':' after the configured
    prefix, e.g. ``questy:state:quests:student-1``. Every operation
    degrades to a miss (None/False) while disconnected or on a Redis
    error, so callers never have to handle connection failures.

    Example:
        client = RedisClient(settings)
        if await client.connect():
            await client.set_json({"xp": 10}, "state", "quests", "student-1")
        await client.disconnect()
    """

    def __init__(self, settings: RedisSettings) -> None:
        self._settings = settings
        self._redis: Any = None
        self._connected = False

    @property
    def is_enabled(self) -> bool:
        return self._settings.enabled and self._settings.url is not None

    @property
    def is_connected(self) -> bool:
        return self._connected

    def key(self, *parts: str) -> str:
        return self._settings.key_prefix + ":".join(parts)

    async def connect(self) -> bool:
        """Connect and ping Redis.

        Returns:
            True if connected, False if disabled or unreachable
        """
        if self._redis is not None:
            return self._connected

        if not self.is_enabled:
            logger.info("redis_disabled", reason="not configured")
            return False

        try:
            Redis = get_async_redis()  # noqa: N806
            self._redis = Redis.from_url(self._settings.url, decode_responses=True)
            await self._redis.ping()
            self._connected = True
            logger.info("connected_to_redis", url=self._settings.url)
            return True
        except Exception as e:
            logger.warning(
                "redis_connection_failed",
                error=str(e),
                reason="Redis unavailable, using in-process state",
            )
            self._redis = None
            self._connected = False
            return False

    async def disconnect(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
            self._connected = False
            logger.info("disconnected_from_redis")

    async def get_json(self, *parts: str) -> Any | None:
        """Read and decode a JSON document; unreadable values count as missing."""
        if not self._connected:
            return None
        key = self.key(*parts)
        try:
            raw = await self._redis.get(key)
        except Exception as e:
            logger.debug("redis_get_error", key=key, error=str(e))
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("redis_value_corrupt", key=key, error=str(e))
            return None

    async def set_json(self, value: Any, *parts: str, ttl: int | None = None) -> bool:
        """Encode and write a JSON document.

        Args:
            value: JSON-able value
            parts: Key parts
            ttl: Expiry in seconds (None keeps the key forever)

        Returns:
            True if written
        """
        if not self._connected:
            return False
        key = self.key(*parts)
        try:
            await self._redis.set(key, json.dumps(value, ensure_ascii=False), ex=ttl)
            return True
        except Exception as e:
            logger.debug("redis_set_error", key=key, error=str(e))
            return False

    async def delete(self, *parts: str) -> bool:
        if not self._connected:
            return False
        key = self.key(*parts)
        try:
            return bool(await self._redis.delete(key))
        except Exception as e:
            logger.debug("redis_delete_error", key=key, error=str(e))
            return False
