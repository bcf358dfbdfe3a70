"""Embedding service interface for questy_coach."""

from typing import ClassVar, Protocol, runtime_checkable

__all__ = [
    "EmbeddingServiceInterface",
]


@runtime_checkable
class EmbeddingServiceInterface(Protocol):
    """Contract for turning memory texts and queries into vectors.

    Vectors of one service must share a dimension; the in-process
    backends compare them with cosine similarity.
    """

    config_class: ClassVar[type | None] = None

    async def embed(self, text: str) -> list[float]:
        """Embed one text (a memory's embedding text or a search query)."""
        ...

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed several texts; the result keeps the input order."""
        ...

    async def similarity(self, embedding1: list[float], embedding2: list[float]) -> float:
        """Cosine similarity of two vectors, clipped to [0, 1]."""
        ...
