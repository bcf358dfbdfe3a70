"""Redis infrastructure for questy_coach (optional)."""

from questy_coach.infra.redis.cache import EmbeddingCache
from questy_coach.infra.redis.client import RedisClient
from questy_coach.infra.redis.state_store import RedisStateStore

__all__ = ["EmbeddingCache", "RedisClient", "RedisStateStore"]
