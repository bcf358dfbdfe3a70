"""MongoDB vector backend for questy_coach.

This module stores learning memories with their embeddings in MongoDB
and searches them with Atlas Vector Search, or with an in-process
cosine scan on deployments without Atlas.
"""

from typing import Any, Self

import numpy as np

from questy_coach.config import LLMSettings, MongoSettings
from questy_coach.infra.mongo.client import MongoClient
from questy_coach.interfaces.embedding import EmbeddingServiceInterface
from questy_coach.interfaces.vector_store import VectorBackendInterface
from questy_coach.logging import get_logger
from questy_coach.models.memory import LearningMemory, MemorySearchFilters

__all__ = [
    "MongoVectorBackend",
]

logger = get_logger(__name__)

_DOC_ONLY_FIELDS = ("_id", "student_id", "embedding", "embedding_text")


class MongoVectorBackend(VectorBackendInterface):
    """MongoDB implementation of VectorBackendInterface.

    One document per (student_id, memory id). The embedding is
    computed from LearningMemory.embedding_text() on every write.
    """

    config_class = MongoSettings

    def __init__(
        self,
        client: MongoClient,
        embedding_service: EmbeddingServiceInterface,
        vector_search_enabled: bool = False,
        vector_search_index_name: str = "memory_embedding_index",
        vector_search_num_candidates: int = 200,
    ) -> None:
        """Initialize backend with MongoDB client and embedding service.

        Args:
            client: Connected MongoClient instance
            embedding_service: Embedding service for memories and queries
            vector_search_enabled: Whether Atlas Vector Search is available
            vector_search_index_name: Name of the vector search index
            vector_search_num_candidates: Number of candidates for ANN search
        """
        self._client = client
        self._embedding = embedding_service
        self._owns_client = False
        self._owned_embedding: EmbeddingServiceInterface | None = None
        self._vector_search_enabled = vector_search_enabled
        self._vector_search_index_name = vector_search_index_name
        self._vector_search_num_candidates = vector_search_num_candidates

    @classmethod
    async def from_config(cls, config: MongoSettings) -> Self:
        """Factory method for QuestyCoach instantiation.

        Creates a MongoClient, connects, creates indexes, picks the
        embedding service from LLM settings and returns the backend.

        Args:
            config: MongoDB settings

        Returns:
            Connected MongoVectorBackend instance
        """
        from questy_coach.infra.llm.hash_embedding import HashEmbeddingStrategy
        from questy_coach.infra.llm.openai_provider import OpenAIProvider

        llm_settings = LLMSettings()
        embedding: EmbeddingServiceInterface
        if llm_settings.embedding_strategy == "hash" or llm_settings.api_key is None:
            embedding = HashEmbeddingStrategy(llm_settings.embedding_dimensions)
        else:
            embedding = await OpenAIProvider.from_config(llm_settings)
        instance = await cls.connect_with(config, embedding, llm_settings.embedding_dimensions)
        instance._owned_embedding = embedding
        return instance

    @classmethod
    async def from_dict(cls, config: dict[str, Any]) -> Self:
        """Factory method for custom config dict.

        Args:
            config: Dictionary with MongoDB settings

        Returns:
            Connected MongoVectorBackend instance
        """
        settings = MongoSettings(**config)
        return await cls.from_config(settings)

    @classmethod
    async def connect_with(
        cls,
        config: MongoSettings,
        embedding_service: EmbeddingServiceInterface,
        dimensions: int,
    ) -> Self:
        """Connect a new client and build a backend that owns it."""
        client = MongoClient(config)
        await client.connect()
        vector_search_enabled = await client.prepare(dimensions)

        instance = cls(
            client,
            embedding_service,
            vector_search_enabled=vector_search_enabled,
            vector_search_index_name=config.vector_search_index_name,
            vector_search_num_candidates=config.vector_search_num_candidates,
        )
        instance._owns_client = True
        return instance

    async def close(self) -> None:
        """Close owned resources."""
        if self._owns_client and self._client:
            await self._client.disconnect()
        close = getattr(self._owned_embedding, "close", None)
        if close is not None:
            await close()

    async def store(self, student_id: str, memory: LearningMemory) -> None:
        await self.store_batch(student_id, [memory])

    async def store_batch(self, student_id: str, memories: list[LearningMemory]) -> None:
        if not memories:
            return
        texts = [m.embedding_text() for m in memories]
        embeddings = await self._embedding.embed_batch(texts)
        for memory, text, embedding in zip(memories, texts, embeddings, strict=True):
            doc = self._memory_to_doc(student_id, memory, text, embedding)
            await self._client.memories.replace_one(
                {"student_id": student_id, "id": memory.id},
                doc,
                upsert=True,
            )
        logger.debug("stored_memories", student_id=student_id, count=len(memories))

    async def update(self, student_id: str, memory: LearningMemory) -> None:
        await self.store(student_id, memory)

    async def get_all(self, student_id: str) -> list[LearningMemory]:
        cursor = self._client.memories.find({"student_id": student_id}).sort("created_at", 1)
        return [self._doc_to_memory(doc) async for doc in cursor]

    async def delete(self, student_id: str, memory_id: str) -> bool:
        result = await self._client.memories.delete_one(
            {"student_id": student_id, "id": memory_id}
        )
        return result.deleted_count > 0

    async def delete_all(self, student_id: str) -> int:
        result = await self._client.memories.delete_many({"student_id": student_id})
        logger.info("deleted_student_memories", student_id=student_id, count=result.deleted_count)
        return result.deleted_count

    async def search_similar(
        self,
        student_id: str,
        query: str,
        top_k: int = 20,
        filters: MemorySearchFilters | None = None,
    ) -> list[tuple[LearningMemory, float]]:
        """Find a student's memories similar to a query.

        Uses MongoDB Atlas Vector Search when available. Falls back to
        in-memory cosine similarity for non-Atlas deployments.
        """
        embedding = await self._embedding.embed(query)
        if not embedding:
            return []

        if self._vector_search_enabled:
            return await self._search_vector_index(student_id, embedding, top_k, filters)
        return await self._search_fallback(student_id, embedding, top_k, filters)

    async def _search_vector_index(
        self,
        student_id: str,
        embedding: list[float],
        top_k: int,
        filters: MemorySearchFilters | None,
    ) -> list[tuple[LearningMemory, float]]:
        """Find similar memories using $vectorSearch with metadata pre-filters."""
        pipeline = [
            {
                "$vectorSearch": {
                    "index": self._vector_search_index_name,
                    "path": "embedding",
                    "queryVector": embedding,
                    "numCandidates": max(self._vector_search_num_candidates, top_k),
                    "limit": top_k,
                    "filter": self._build_filter(student_id, filters),
                }
            },
            {"$addFields": {"similarity_score": {"$meta": "vectorSearchScore"}}},
        ]

        try:
            results: list[tuple[LearningMemory, float]] = []
            async for doc in self._client.memories.aggregate(pipeline):
                # Atlas reports cosine as (1 + cos) / 2
                score = 2.0 * float(doc.get("similarity_score", 0.5)) - 1.0
                results.append((self._doc_to_memory(doc), float(np.clip(score, 0.0, 1.0))))
            logger.debug("vector_search_completed", student_id=student_id, num_results=len(results))
            return results
        except Exception as e:
            logger.warning("vector_search_failed_falling_back", student_id=student_id, error=str(e))
            return await self._search_fallback(student_id, embedding, top_k, filters)

    async def _search_fallback(
        self,
        student_id: str,
        embedding: list[float],
        top_k: int,
        filters: MemorySearchFilters | None,
    ) -> list[tuple[LearningMemory, float]]:
        """Find similar memories using in-memory cosine similarity."""
        query_vec = np.array(embedding)
        query_norm = np.linalg.norm(query_vec)
        if query_norm == 0:
            return []

        results: list[tuple[LearningMemory, float]] = []
        cursor = self._client.memories.find(self._build_filter(student_id, filters))
        async for doc in cursor:
            doc_vec = np.array(doc.get("embedding") or [])
            if doc_vec.shape != query_vec.shape:
                continue
            doc_norm = np.linalg.norm(doc_vec)
            if doc_norm == 0:
                continue
            similarity = float(np.dot(query_vec, doc_vec) / (query_norm * doc_norm))
            results.append((self._doc_to_memory(doc), float(np.clip(similarity, 0.0, 1.0))))

        results.sort(key=lambda x: x[1], reverse=True)
        return results[:top_k]

    @staticmethod
    def _build_filter(
        student_id: str,
        filters: MemorySearchFilters | None,
    ) -> dict[str, Any]:
        query: dict[str, Any] = {"student_id": student_id}
        if filters is None:
            return query
        if filters.subject is not None:
            query["subject"] = str(filters.subject)
        if filters.types:
            query["type"] = {"$in": [str(t) for t in filters.types]}
        if filters.min_confidence is not None:
            query["confidence"] = {"$gte": filters.min_confidence}
        return query

    @staticmethod
    def _memory_to_doc(
        student_id: str,
        memory: LearningMemory,
        text: str,
        embedding: list[float],
    ) -> dict[str, Any]:
        doc = memory.model_dump(mode="json")
        doc["student_id"] = student_id
        doc["embedding_text"] = text
        doc["embedding"] = embedding
        return doc

    @staticmethod
    def _doc_to_memory(doc: dict[str, Any]) -> LearningMemory:
        data = {k: v for k, v in doc.items() if k not in _DOC_ONLY_FIELDS}
        data.pop("similarity_score", None)
        return LearningMemory.model_validate(data)
