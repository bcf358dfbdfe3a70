"""Vector backend interface for questy_coach.

This module defines the Protocol for per-student storage of learning
memories with similarity search.
"""

from typing import ClassVar, Protocol, runtime_checkable

from questy_coach.models.memory import LearningMemory, MemorySearchFilters

__all__ = [
    "VectorBackendInterface",
]


@runtime_checkable
class VectorBackendInterface(Protocol):
    """Contract for vector memory backends.

    Every operation is scoped to one student. Backends own their
    embedding service so stored and query vectors share one space.
    """

    config_class: ClassVar[type | None] = None

    async def store(self, student_id: str, memory: LearningMemory) -> None:
        """Insert or replace a memory (upsert by memory ID)."""
        ...

    async def store_batch(self, student_id: str, memories: list[LearningMemory]) -> None:
        """Insert or replace several memories."""
        ...

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
            List of (memory, similarity) tuples, similarity in [0, 1], best first
        """
        ...

    async def get_all(self, student_id: str) -> list[LearningMemory]:
        """Get every memory of a student."""
        ...

    async def update(self, student_id: str, memory: LearningMemory) -> None:
        """Replace a stored memory (re-embedding it)."""
        ...

    async def delete(self, student_id: str, memory_id: str) -> bool:
        """Delete one memory.

        Returns:
            True if a memory was deleted
        """
        ...

    async def delete_all(self, student_id: str) -> int:
        """Delete every memory of a student.

        Returns:
            Number of deleted memories
        """
        ...
