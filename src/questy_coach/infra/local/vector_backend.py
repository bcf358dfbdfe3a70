"""In-memory vector backend for questy_coach.

Keeps each student's memories with their embeddings in a dict and
answers similarity queries with a numpy cosine scan.
"""

from typing import Any, Self

import numpy as np

from questy_coach.infra.llm.hash_embedding import HashEmbeddingStrategy
from questy_coach.interfaces.embedding import EmbeddingServiceInterface
from questy_coach.interfaces.vector_store import VectorBackendInterface
from questy_coach.logging import get_logger
from questy_coach.models.memory import LearningMemory, MemorySearchFilters

__all__ = [
    "InMemoryVectorBackend",
]

logger = get_logger(__name__)


class InMemoryVectorBackend(VectorBackendInterface):
    """Process-local VectorBackendInterface.

    Defaults to HashEmbeddingStrategy, so it works without any API key.
    Insertion order is preserved per student; storing an existing ID
    replaces the entry in place.
    """

    config_class = None

    def __init__(self, embedding_service: EmbeddingServiceInterface | None = None) -> None:
        self._embedding = embedding_service or HashEmbeddingStrategy()
        self._entries: dict[str, dict[str, tuple[LearningMemory, np.ndarray]]] = {}

    @classmethod
    async def from_dict(cls, config: dict[str, Any]) -> Self:
        dimensions = int(config.get("embedding_dimensions", 768))
        return cls(HashEmbeddingStrategy(dimensions))

    async def close(self) -> None:
        """Close resources (no-op for in-memory storage)."""
        pass

    async def store(self, student_id: str, memory: LearningMemory) -> None:
        await self.store_batch(student_id, [memory])

    async def store_batch(self, student_id: str, memories: list[LearningMemory]) -> None:
        if not memories:
            return
        embeddings = await self._embedding.embed_batch([m.embedding_text() for m in memories])
        bucket = self._entries.setdefault(student_id, {})
        for memory, embedding in zip(memories, embeddings, strict=True):
            bucket[memory.id] = (memory, np.asarray(embedding, dtype=np.float64))

    async def update(self, student_id: str, memory: LearningMemory) -> None:
        await self.store(student_id, memory)

    async def get_all(self, student_id: str) -> list[LearningMemory]:
        return [memory for memory, _ in self._entries.get(student_id, {}).values()]

    async def delete(self, student_id: str, memory_id: str) -> bool:
        return self._entries.get(student_id, {}).pop(memory_id, None) is not None

    async def delete_all(self, student_id: str) -> int:
        return len(self._entries.pop(student_id, {}))

    async def search_similar(
        self,
        student_id: str,
        query: str,
        top_k: int = 20,
        filters: MemorySearchFilters | None = None,
    ) -> list[tuple[LearningMemory, float]]:
        bucket = self._entries.get(student_id)
        if not bucket:
            return []

        query_vec = np.asarray(await self._embedding.embed(query), dtype=np.float64)
        query_norm = np.linalg.norm(query_vec)
        if query_norm == 0:
            return []

        results: list[tuple[LearningMemory, float]] = []
        for memory, vector in bucket.values():
            if filters is not None and not filters.matches(memory):
                continue
            norm = np.linalg.norm(vector)
            if norm == 0 or vector.shape != query_vec.shape:
                continue
            similarity = float(np.dot(query_vec, vector) / (query_norm * norm))
            results.append((memory, float(np.clip(similarity, 0.0, 1.0))))

        results.sort(key=lambda x: x[1], reverse=True)
        logger.debug("local_vector_search", student_id=student_id, num_results=len(results))
        return results[:top_k]
