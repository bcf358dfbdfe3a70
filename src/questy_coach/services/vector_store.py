"""Vector memory store service for questy_coach.

This module provides the degrading facade over a primary vector
backend (MongoDB, or any VectorBackendInterface) and an in-process
fallback backend.
"""

from questy_coach.infra.llm.hash_embedding import HashEmbeddingStrategy
from questy_coach.infra.local.vector_backend import InMemoryVectorBackend
from questy_coach.interfaces.vector_store import VectorBackendInterface
from questy_coach.logging import get_logger
from questy_coach.models.memory import LearningMemory, MemorySearchFilters

__all__ = [
    "VectorMemoryStore",
]

logger = get_logger(__name__)


class VectorMemoryStore:
    """Per-student memory store with similarity search.

    Writes and reads go to the primary backend. When it is absent or a
    call raises, the store logs a warning and uses the fallback
    backend instead. The fallback always embeds with
    HashEmbeddingStrategy, so it never compares its vectors with the
    primary's. Failures never propagate to callers.

    Memories written to the fallback during an outage stay searchable:
    search results of both backends are merged by memory ID, and the
    next successful primary write moves them into the primary.

    Example:
        store = VectorMemoryStore(primary=mongo_backend)
        await store.store("student-1", memory)
        hits = await store.search_similar("student-1", "quadratic mistakes")
    """

    def __init__(
        self,
        primary: VectorBackendInterface | None = None,
        fallback: VectorBackendInterface | None = None,
        embedding_dimensions: int = 768,
    ) -> None:
        """Initialize store.

        Args:
            primary: Primary backend, or None to run fully in-process
            fallback: Fallback backend (default: in-memory with hash embeddings)
            embedding_dimensions: Dimensions of the fallback hash embeddings
        """
        self._primary = primary
        self._fallback = fallback or InMemoryVectorBackend(
            HashEmbeddingStrategy(embedding_dimensions)
        )

    @property
    def has_primary(self) -> bool:
        return self._primary is not None

    async def store(self, student_id: str, memory: LearningMemory) -> None:
        await self.store_batch(student_id, [memory])

    async def store_batch(self, student_id: str, memories: list[LearningMemory]) -> None:
        if not memories:
            return
        if self._primary is not None:
            try:
                await self._primary.store_batch(student_id, memories)
                await self._flush_fallback(student_id, {m.id for m in memories})
                return
            except Exception as e:
                logger.warning(
                    "vector_store_failed",
                    student_id=student_id,
                    count=len(memories),
                    error=str(e),
                )
        await self._fallback.store_batch(student_id, memories)

    async def update(self, student_id: str, memory: LearningMemory) -> None:
        if self._primary is not None:
            try:
                await self._primary.update(student_id, memory)
                await self._flush_fallback(student_id, {memory.id})
                return
            except Exception as e:
                logger.warning(
                    "vector_update_failed",
                    student_id=student_id,
                    memory_id=memory.id,
                    error=str(e),
                )
        await self._fallback.update(student_id, memory)

    async def search_similar(
        self,
        student_id: str,
        query: str,
        top_k: int = 20,
        filters: MemorySearchFilters | None = None,
    ) -> list[tuple[LearningMemory, float]]:
        """Find memories similar to a query.

        Args:
            student_id: Student whose memories are searched
            query: Free-text query
            top_k: Maximum number of results
            filters: Optional metadata filters

        Returns:
            List of (memory, similarity) tuples, best first; [] on total failure
        """
        hits: list[tuple[LearningMemory, float]] | None = None
        if self._primary is not None:
            try:
                hits = await self._primary.search_similar(student_id, query, top_k, filters)
            except Exception as e:
                logger.warning("vector_search_failed", student_id=student_id, error=str(e))
        try:
            pending = await self._fallback.search_similar(student_id, query, top_k, filters)
        except Exception as e:
            logger.warning("fallback_search_failed", student_id=student_id, error=str(e))
            pending = []

        if hits is None:
            return pending
        if not pending:
            return hits
        merged = {memory.id: (memory, score) for memory, score in hits}
        for memory, score in pending:
            merged.setdefault(memory.id, (memory, score))
        return sorted(merged.values(), key=lambda hit: hit[1], reverse=True)[:top_k]

    async def get_all(self, student_id: str) -> list[LearningMemory]:
        """All memories of a student from both backends, deduplicated by ID."""
        memories: dict[str, LearningMemory] = {}
        if self._primary is not None:
            try:
                memories.update((m.id, m) for m in await self._primary.get_all(student_id))
            except Exception as e:
                logger.warning("vector_get_all_failed", student_id=student_id, error=str(e))
        for memory in await self._fallback.get_all(student_id):
            memories.setdefault(memory.id, memory)
        return list(memories.values())

    async def _flush_fallback(self, student_id: str, written: set[str]) -> None:
        """Move a student's fallback memories into the primary after it recovers.

        Memories whose IDs were just written to the primary are dropped
        from the fallback without being copied, since the primary already
        holds the newer version.
        """
        assert self._primary is not None
        pending = await self._fallback.get_all(student_id)
        if not pending:
            return
        stale = [m for m in pending if m.id not in written]
        try:
            if stale:
                await self._primary.store_batch(student_id, stale)
        except Exception as e:
            logger.warning(
                "fallback_flush_failed", student_id=student_id, count=len(stale), error=str(e)
            )
            return
        for memory in pending:
            await self._fallback.delete(student_id, memory.id)
        logger.info("fallback_flushed", student_id=student_id, count=len(stale))

    async def delete(self, student_id: str, memory_id: str) -> bool:
        deleted = False
        if self._primary is not None:
            try:
                deleted = await self._primary.delete(student_id, memory_id)
            except Exception as e:
                logger.warning(
                    "vector_delete_failed",
                    student_id=student_id,
                    memory_id=memory_id,
                    error=str(e),
                )
        return await self._fallback.delete(student_id, memory_id) or deleted

    async def delete_all(self, student_id: str) -> int:
        deleted = 0
        if self._primary is not None:
            try:
                deleted = await self._primary.delete_all(student_id)
            except Exception as e:
                logger.warning("vector_delete_all_failed", student_id=student_id, error=str(e))
        return deleted + await self._fallback.delete_all(student_id)
