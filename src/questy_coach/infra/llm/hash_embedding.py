"""Offline hash embedding strategy for questy_coach.

Deterministic bag-of-tokens embeddings that need no API key. Used when
no embedding provider is configured and by the in-process fallback
vector backend.
"""

import re
from typing import Any, Self

import numpy as np

from questy_coach.config import LLMSettings
from questy_coach.interfaces.embedding import EmbeddingServiceInterface
from questy_coach.utils.hashing import djb2_hash

__all__ = [
    "HashEmbeddingStrategy",
    "cosine_similarity",
]

_NON_WORD = re.compile(r"[^\w\s]")
_SPREAD = 5
_STRIDE = 31


class HashEmbeddingStrategy(EmbeddingServiceInterface):
    """Token-hash embeddings.

    Each token contributes +-1/n to five positions derived from its
    djb2 hash; the vector is then L2-normalized. Texts sharing tokens
    get a positive cosine similarity.
    """

    config_class = LLMSettings

    def __init__(self, dimensions: int = 768) -> None:
        self._dimensions = dimensions

    @classmethod
    async def from_config(cls, config: LLMSettings) -> Self:
        return cls(dimensions=config.embedding_dimensions)

    @classmethod
    async def from_dict(cls, config: dict[str, Any]) -> Self:
        return cls(dimensions=int(config.get("embedding_dimensions", 768)))

    @property
    def dimensions(self) -> int:
        return self._dimensions

    async def close(self) -> None:
        """Close resources (no-op for hash embeddings)."""
        pass

    def embed_sync(self, text: str) -> list[float]:
        """Embed text without awaiting (pure computation)."""
        vector = np.zeros(self._dimensions, dtype=np.float64)
        tokens = _NON_WORD.sub("", text.lower()).split()
        if not tokens:
            return vector.tolist()

        weight = 1.0 / len(tokens)
        for token in tokens:
            h = djb2_hash(token)
            for i in range(_SPREAD):
                idx = (h + i * _STRIDE) % self._dimensions
                sign = 1.0 if (h >> i) & 1 else -1.0
                vector[idx] += sign * weight

        norm = np.linalg.norm(vector)
        if norm > 0:
            vector /= norm
        return vector.tolist()

    async def embed(self, text: str) -> list[float]:
        return self.embed_sync(text)

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        return [self.embed_sync(text) for text in texts]

    async def similarity(self, embedding1: list[float], embedding2: list[float]) -> float:
        return cosine_similarity(embedding1, embedding2)


def cosine_similarity(embedding1: list[float], embedding2: list[float]) -> float:
    """Cosine similarity clipped to [0, 1]; 0.0 for zero or mismatched vectors."""
    vec1 = np.asarray(embedding1, dtype=np.float64)
    vec2 = np.asarray(embedding2, dtype=np.float64)
    if vec1.shape != vec2.shape:
        return 0.0
    norm1 = np.linalg.norm(vec1)
    norm2 = np.linalg.norm(vec2)
    if norm1 == 0 or norm2 == 0:
        return 0.0
    return float(np.clip(np.dot(vec1, vec2) / (norm1 * norm2), 0.0, 1.0))
