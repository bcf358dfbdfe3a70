"""Redis state store for questy_coach."""

from typing import Any, Self

from questy_coach.config import RedisSettings
from questy_coach.infra.redis.client import RedisClient
from questy_coach.interfaces.state_store import StateStoreInterface
from questy_coach.logging import get_logger

__all__ = [
    "RedisStateStore",
]

logger = get_logger(__name__)

STATE_KEY = "state"


class RedisStateStore(StateStoreInterface):
    """Redis implementation of StateStoreInterface.

    Documents live under ``{prefix}state:{namespace}:{student_id}``.
    A stored value that is not a JSON object is treated as missing.
    """

    config_class = RedisSettings

    def __init__(self, client: RedisClient, ttl_seconds: int | None = None) -> None:
        self._client = client
        self._ttl = ttl_seconds
        self._owns_client = False

    @classmethod
    async def from_config(cls, config: RedisSettings) -> Self:
        """Factory method for QuestyCoach instantiation.

        Connects a new RedisClient; the store owns and closes it.
        """
        client = RedisClient(config)
        await client.connect()
        store = cls(client, ttl_seconds=config.state_ttl_seconds)
        store._owns_client = True
        return store

    @classmethod
    async def from_dict(cls, config: dict[str, Any]) -> Self:
        return await cls.from_config(RedisSettings(**config))

    @property
    def is_connected(self) -> bool:
        return self._client.is_connected

    async def close(self) -> None:
        if self._owns_client:
            await self._client.disconnect()

    async def get(self, namespace: str, student_id: str) -> dict[str, Any] | None:
        value = await self._client.get_json(STATE_KEY, namespace, student_id)
        return value if isinstance(value, dict) else None

    async def set(self, namespace: str, student_id: str, value: dict[str, Any]) -> bool:
        stored = await self._client.set_json(
            value, STATE_KEY, namespace, student_id, ttl=self._ttl
        )
        if not stored:
            logger.warning("state_store_failed", namespace=namespace, student_id=student_id)
        return stored

    async def delete(self, namespace: str, student_id: str) -> bool:
        return await self._client.delete(STATE_KEY, namespace, student_id)
