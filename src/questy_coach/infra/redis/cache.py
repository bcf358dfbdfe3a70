"""Redis embedding cache for questy_coach."""

from collections.abc import Awaitable, Callable

from questy_coach.infra.redis.client import RedisClient
from questy_coach.utils.hashing import hash_text

__all__ = [
    "EmbeddingCache",
]

EMBEDDING_KEY = "emb"


class EmbeddingCache:
    """Caches embeddings of memory texts per embedding model.

    Keys include the model name and dimensions, so switching models
    never serves vectors of the wrong shape.
    """

    def __init__(
        self,
        redis_client: RedisClient,
        model: str,
        dimensions: int,
        ttl: int = 86400,
    ) -> None:
        self._redis = redis_client
        self._model_key = f"{model}-{dimensions}"
        self._dimensions = dimensions
        self._ttl = ttl

    async def get(self, text: str) -> list[float] | None:
        cached = await self._redis.get_json(EMBEDDING_KEY, self._model_key, hash_text(text))
        if not isinstance(cached, list) or len(cached) != self._dimensions:
            return None
        return cached

    async def set(self, text: str, embedding: list[float]) -> bool:
        return await self._redis.set_json(
            embedding, EMBEDDING_KEY, self._model_key, hash_text(text), ttl=self._ttl
        )

    async def get_or_compute(
        self,
        text: str,
        compute_fn: Callable[[str], Awaitable[list[float]]],
    ) -> list[float]:
        """Return the cached embedding, or compute and cache it."""
        cached = await self.get(text)
        if cached is not None:
            return cached
        embedding = await compute_fn(text)
        await self.set(text, embedding)
        return embedding
