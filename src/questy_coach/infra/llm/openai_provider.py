"""OpenAI LLM provider for questy_coach.

This module provides the OpenAI implementation of LLM and embedding interfaces.
"""

from typing import Any, Self

import numpy as np
from openai import AsyncOpenAI

from questy_coach.config import LLMSettings, RedisSettings
from questy_coach.infra.redis.cache import EmbeddingCache
from questy_coach.infra.redis.client import RedisClient
from questy_coach.interfaces.embedding import EmbeddingServiceInterface
from questy_coach.interfaces.llm import LLMInterface
from questy_coach.logging import get_logger

__all__ = [
    "OpenAIProvider",
]

logger = get_logger(__name__)


class OpenAIProvider(LLMInterface, EmbeddingServiceInterface):
    """OpenAI implementation of LLM and embedding interfaces.

    Provides message completion and embedding generation using
    OpenAI's API. Embeddings are optionally cached in Redis.
    """

    config_class = LLMSettings

    def __init__(
        self,
        settings: LLMSettings,
        embedding_cache: EmbeddingCache | None = None,
    ) -> None:
        """Initialize OpenAI provider.

        Args:
            settings: LLM configuration settings
            embedding_cache: Optional Redis cache for embeddings
        """
        self._settings = settings
        api_key = settings.api_key.get_secret_value() if settings.api_key else None
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=settings.base_url,
            timeout=settings.timeout_seconds,
            max_retries=settings.max_retries,
        )
        self._model = settings.model
        self._embedding_model = settings.embedding_model
        self._embedding_dimensions = settings.embedding_dimensions
        self._batch_size = settings.embedding_batch_size
        self._cache = embedding_cache
        self._cache_client: RedisClient | None = None

    @classmethod
    async def from_config(cls, config: LLMSettings) -> Self:
        """Factory method for QuestyCoach instantiation.

        Embeddings are cached in Redis when Redis is configured and
        reachable; the provider owns that connection.
        """
        redis_settings = RedisSettings()
        client = RedisClient(redis_settings)
        if not await client.connect():
            return cls(config)
        cache = EmbeddingCache(
            client,
            config.embedding_model,
            config.embedding_dimensions,
            ttl=redis_settings.embedding_ttl_seconds,
        )
        provider = cls(config, embedding_cache=cache)
        provider._cache_client = client
        return provider

    @classmethod
    async def from_dict(cls, config: dict[str, Any]) -> Self:
        """Factory method for custom config dict.

        Args:
            config: Dictionary with LLM settings

        Returns:
            OpenAIProvider instance
        """
        settings = LLMSettings(**config)
        return cls(settings)

    async def close(self) -> None:
        """Close the HTTP client and the owned Redis connection."""
        await self._client.close()
        if self._cache_client is not None:
            await self._cache_client.disconnect()

    # Embedding interface
    async def embed(self, text: str) -> list[float]:
        """Generate embedding for text."""
        if self._cache is not None:
            return await self._cache.get_or_compute(text, self._embed_uncached)
        return await self._embed_uncached(text)

    async def _embed_uncached(self, text: str) -> list[float]:
        response = await self._client.embeddings.create(
            model=self._embedding_model,
            input=text,
            dimensions=self._embedding_dimensions,
        )
        return response.data[0].embedding

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for multiple texts, chunked by batch size."""
        if not texts:
            return []

        results: list[list[float] | None] = [None] * len(texts)
        missing: list[int] = []
        if self._cache is not None:
            for i, text in enumerate(texts):
                results[i] = await self._cache.get(text)
                if results[i] is None:
                    missing.append(i)
        else:
            missing = list(range(len(texts)))

        for start in range(0, len(missing), self._batch_size):
            chunk = missing[start : start + self._batch_size]
            response = await self._client.embeddings.create(
                model=self._embedding_model,
                input=[texts[i] for i in chunk],
                dimensions=self._embedding_dimensions,
            )
            sorted_data = sorted(response.data, key=lambda x: x.index)
            for i, item in zip(chunk, sorted_data, strict=True):
                results[i] = item.embedding
                if self._cache is not None:
                    await self._cache.set(texts[i], item.embedding)

        logger.debug("embedded_batch", total=len(texts), requested=len(missing))
        return [r if r is not None else [] for r in results]

    async def similarity(self, embedding1: list[float], embedding2: list[float]) -> float:
        """Compute cosine similarity between embeddings, clipped to [0, 1]."""
        vec1 = np.array(embedding1)
        vec2 = np.array(embedding2)
        norm1 = np.linalg.norm(vec1)
        norm2 = np.linalg.norm(vec2)
        if norm1 == 0 or norm2 == 0:
            return 0.0
        return float(np.clip(np.dot(vec1, vec2) / (norm1 * norm2), 0.0, 1.0))

    # LLM interface
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Generate a chat completion."""
        response = await self._client.chat.completions.create(
            model=model or self._model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=self._settings.temperature if temperature is None else temperature,
            max_tokens=max_tokens or self._settings.max_tokens,
        )
        content = response.choices[0].message.content or ""
        logger.debug("completion_generated", model=model or self._model, length=len(content))
        return content
