"""MemoryLane facade for questy_coach.

This module orchestrates extraction, vector storage, query-aware
retrieval, mastery updates and burnout checks for every student, and
persists each student's lane to the state store.
"""

import asyncio
import re
from datetime import datetime

from pydantic import ValidationError

from questy_coach.config import (
    BurnoutSettings,
    MemorySettings,
    RetrievalSettings,
    SpacedRepetitionSettings,
)
from questy_coach.interfaces.state_store import StateStoreInterface
from questy_coach.logging import get_logger
from questy_coach.models.burnout import BurnoutIndicator, StudyAdvice
from questy_coach.models.context import MemoryContext, StudentMemoryExport
from questy_coach.models.mastery import SubjectStats, TopicMastery
from questy_coach.models.memory import (
    Emotion,
    LearningMemory,
    MemoryExtractionRequest,
    MemorySearchFilters,
    Subject,
)
from questy_coach.services.burnout_monitor import BurnoutMonitor
from questy_coach.services.context_injector import MemoryContextInjector
from questy_coach.services.memory_catcher import LearningMemoryCatcher
from questy_coach.services.memory_retriever import MemoryRetriever
from questy_coach.services.spaced_repetition import SpacedRepetitionManager
from questy_coach.services.vector_store import VectorMemoryStore
from questy_coach.utils import dates

__all__ = [
    "STATE_NAMESPACE",
    "MemoryLane",
]

logger = get_logger(__name__)

STATE_NAMESPACE = "memory_lane"

_TOKEN_SPLIT = re.compile(r"\s+")


class MemoryLane:
    """Per-student learning memory facade.

    Owns the memory cache, one SpacedRepetitionManager per student and
    the shared BurnoutMonitor. A student's state is loaded from the
    state store on first use and written back after every change.

    Example:
        lane = MemoryLane(VectorMemoryStore(), InMemoryStateStore())
        await lane.extract_and_store("student-1", request)
        context = await lane.retrieve_context("student-1", "my mistakes", Subject.MATH)
    """

    def __init__(
        self,
        vector_store: VectorMemoryStore,
        state_store: StateStoreInterface | None = None,
        settings: MemorySettings | None = None,
        retrieval_settings: RetrievalSettings | None = None,
        repetition_settings: SpacedRepetitionSettings | None = None,
        burnout_settings: BurnoutSettings | None = None,
    ) -> None:
        """Initialize lane.

        Args:
            vector_store: Vector memory store (primary + fallback)
            state_store: Where per-student state is persisted (None: memory only)
            settings: Feature flags and limits
            retrieval_settings: Re-ranking weights and candidate limits
            repetition_settings: SM-2 parameters for new students
            burnout_settings: Burnout window and thresholds
        """
        self._vector_store = vector_store
        self._state_store = state_store
        self._settings = settings or MemorySettings()
        self._retrieval_settings = retrieval_settings or RetrievalSettings()
        self._repetition_settings = repetition_settings or SpacedRepetitionSettings()

        self._catcher = LearningMemoryCatcher(self._settings.min_confidence)
        self._retriever = MemoryRetriever(self._retrieval_settings)
        self._burnout = BurnoutMonitor(burnout_settings)
        self._injector = MemoryContextInjector()

        self._cache: dict[str, list[LearningMemory]] = {}
        self._repetition: dict[str, SpacedRepetitionManager] = {}
        self._loaded: set[str] = set()

    @property
    def retriever(self) -> MemoryRetriever:
        return self._retriever

    # === EXTRACTION AND STORAGE ===

    async def extract_and_store(
        self,
        student_id: str,
        request: MemoryExtractionRequest,
        now: datetime | None = None,
    ) -> list[LearningMemory]:
        """Extract memories from a conversation and store them.

        Args:
            student_id: Owning student
            request: Conversation slice to extract from
            now: Extraction time (default: now)

        Returns:
            The extracted memories ([] when auto extraction is disabled)
        """
        if not self._settings.enable_auto_extraction:
            return []

        await self._ensure_loaded(student_id)
        now = now or dates.now()
        memories = self._catcher.extract(student_id, request, now)
        if not memories:
            return []

        if self._settings.enable_vector_store:
            await self._vector_store.store_batch(student_id, memories)
        self._add_to_cache(student_id, memories)

        if self._settings.enable_burnout_monitoring:
            for memory in memories:
                self._burnout.record_emotion(student_id, memory.emotion_at_creation, now)

        if self._settings.enable_spaced_repetition:
            manager = self._manager(student_id)
            for memory in memories:
                if manager.get_mastery(memory.topic) is None:
                    manager.initialize(memory.topic, memory.subject, now=now)

        await self._persist(student_id)
        logger.info("memories_stored", student_id=student_id, count=len(memories))
        return memories

    async def add_memory(self, student_id: str, memory: LearningMemory) -> None:
        await self._ensure_loaded(student_id)
        if self._settings.enable_vector_store:
            await self._vector_store.store(student_id, memory)
        self._add_to_cache(student_id, [memory])
        await self._persist(student_id)

    async def get_all_memories(self, student_id: str) -> list[LearningMemory]:
        """All memories of a student (vector store when enabled, else cache)."""
        await self._ensure_loaded(student_id)
        if not self._settings.enable_vector_store:
            return list(self._cache.get(student_id, []))

        memories = await self._vector_store.get_all(student_id)
        if memories:
            self._cache[student_id] = self._trim(memories)
            return memories
        return list(self._cache.get(student_id, []))

    # === RETRIEVAL ===

    async def retrieve_context(
        self,
        student_id: str,
        query: str,
        current_subject: Subject | None = None,
        now: datetime | None = None,
    ) -> MemoryContext:
        """Build the memory context for a query.

        Vector search is bounded by the retrieval timeout. With no hits,
        or on a timeout, candidates come from the cache with a keyword
        overlap score.

        Args:
            student_id: Student to retrieve for
            query: Free-text query
            current_subject: Subject filter and subject-match boost
            now: Reference time (default: now)

        Returns:
            MemoryContext with re-ranked memories, mastery, due reviews and burnout
        """
        await self._ensure_loaded(student_id)
        now = now or dates.now()

        hits: list[tuple[LearningMemory, float]] = []
        if self._settings.enable_vector_store:
            filters = MemorySearchFilters(
                subject=current_subject,
                min_confidence=self._retrieval_settings.candidate_min_confidence,
            )
            try:
                hits = await asyncio.wait_for(
                    self._vector_store.search_similar(
                        student_id,
                        query,
                        self._retrieval_settings.candidate_top_k,
                        filters,
                    ),
                    timeout=self._retrieval_settings.timeout_seconds,
                )
            except TimeoutError:
                logger.warning("retrieval_timeout", student_id=student_id)

        candidates = [memory for memory, _ in hits]
        semantic_scores = {memory.id: score for memory, score in hits}
        if not candidates:
            cached = self._cache.get(student_id, [])
            semantic_scores = self.keyword_scores(query, cached)
            candidates = list(cached)

        review_due: list[TopicMastery] = []
        if self._settings.enable_spaced_repetition:
            review_due = self._manager(student_id).get_topics_due_for_review(current_subject, now)

        relevant = self._retriever.retrieve(
            query,
            candidates,
            semantic_scores,
            current_subject=current_subject,
            urgent_topics={t.topic_id for t in review_due},
            now=now,
        )

        burnout = None
        if self._settings.enable_burnout_monitoring:
            burnout = self._burnout.assess_burnout(student_id, now)

        return MemoryContext(
            relevant_memories=relevant,
            mastery_info=self._mastery_info(student_id, current_subject),
            burnout_status=burnout,
            review_due=review_due,
        )

    async def get_context_for_prompt(
        self,
        student_id: str,
        query: str,
        current_subject: Subject | None = None,
        compact: bool = False,
    ) -> str:
        context = await self.retrieve_context(student_id, query, current_subject)
        if compact:
            return self._injector.create_compact_context(context)
        return self._injector.inject_context(context, current_subject)

    @staticmethod
    def keyword_scores(query: str, memories: list[LearningMemory]) -> dict[str, float]:
        """Jaccard overlap between query tokens and each memory's title and content."""
        query_tokens = [t for t in _TOKEN_SPLIT.split(query.lower()) if t]
        scores: dict[str, float] = {}
        for memory in memories:
            memory_tokens = [
                t
                for t in _TOKEN_SPLIT.split(f"{memory.content} {memory.title}".lower())
                if t
            ]
            union = set(query_tokens) | set(memory_tokens)
            if not union:
                scores[memory.id] = 0.0
                continue
            present = set(memory_tokens)
            overlap = sum(1 for t in query_tokens if t in present)
            scores[memory.id] = overlap / len(union)
        return scores

    # === MASTERY, FEEDBACK AND BURNOUT ===

    async def record_learning_result(
        self,
        student_id: str,
        topic_id: str,
        quality: float,
        subject: Subject | None = None,
        emotion: Emotion | None = None,
        now: datetime | None = None,
    ) -> TopicMastery:
        """Record a review result for a topic and optionally the emotion felt."""
        await self._ensure_loaded(student_id)
        now = now or dates.now()
        manager = self._manager(student_id)
        if subject is not None and manager.get_mastery(topic_id) is None:
            manager.initialize(topic_id, subject, now=now)
        mastery = manager.update_mastery(topic_id, quality, now)

        if emotion is not None and self._settings.enable_burnout_monitoring:
            self._burnout.record_emotion(student_id, emotion, now)

        await self._persist(student_id)
        return mastery

    async def record_feedback(
        self,
        student_id: str,
        memory_id: str,
        positive: bool,
        now: datetime | None = None,
    ) -> LearningMemory | None:
        """Count helpful/unhelpful feedback on a memory; also counts as a recall.

        Returns:
            The updated memory, or None if it is not cached for the student
        """
        await self._ensure_loaded(student_id)
        memories = self._cache.get(student_id, [])
        for index, memory in enumerate(memories):
            if memory.id != memory_id:
                continue
            feedback_field = "positive_feedback" if positive else "negative_feedback"
            updated = memory.model_copy(
                update={
                    feedback_field: getattr(memory, feedback_field) + 1,
                    "recall_count": memory.recall_count + 1,
                    "last_recalled": now or dates.now(),
                }
            )
            memories[index] = updated
            if self._settings.enable_vector_store:
                await self._vector_store.update(student_id, updated)
            await self._persist(student_id)
            return updated
        return None

    async def check_burnout_status(self, student_id: str) -> BurnoutIndicator:
        await self._ensure_loaded(student_id)
        return self._burnout.assess_burnout(student_id)

    async def should_continue_studying(self, student_id: str) -> StudyAdvice:
        await self._ensure_loaded(student_id)
        return self._burnout.should_continue_studying(student_id)

    async def record_emotion(
        self,
        student_id: str,
        emotion: Emotion,
        at: datetime | None = None,
    ) -> None:
        await self._ensure_loaded(student_id)
        self._burnout.record_emotion(student_id, emotion, at)
        await self._persist(student_id)

    async def get_topics_due_for_review(
        self,
        student_id: str,
        subject: Subject | None = None,
        now: datetime | None = None,
    ) -> list[TopicMastery]:
        await self._ensure_loaded(student_id)
        return self._manager(student_id).get_topics_due_for_review(subject, now)

    async def get_review_recommendations(
        self,
        student_id: str,
        subject: Subject | None = None,
    ) -> list[str]:
        await self._ensure_loaded(student_id)
        return self._manager(student_id).generate_recommendations(subject)

    async def get_subject_stats(self, student_id: str, subject: Subject) -> SubjectStats:
        await self._ensure_loaded(student_id)
        return self._manager(student_id).get_subject_stats(subject)

    # === EXPORT, IMPORT AND ERASURE ===

    async def export_data(self, student_id: str) -> StudentMemoryExport:
        memories = await self.get_all_memories(student_id)
        return StudentMemoryExport(
            student_id=student_id,
            memories=memories,
            mastery=self._manager(student_id).export_all(),
            emotion_history=self._burnout.export_history(student_id),
            exported_at=dates.now(),
        )

    async def import_data(self, data: StudentMemoryExport) -> None:
        """Replace a student's lane with an export (memories are re-stored)."""
        student_id = data.student_id
        if self._settings.enable_vector_store and data.memories:
            await self._vector_store.store_batch(student_id, data.memories)
        self._apply_export(data)
        self._loaded.add(student_id)
        await self._persist(student_id)

    async def delete_student_data(self, student_id: str) -> None:
        if self._settings.enable_vector_store:
            await self._vector_store.delete_all(student_id)
        self._cache.pop(student_id, None)
        self._repetition.pop(student_id, None)
        self._burnout.clear(student_id)
        self._loaded.discard(student_id)
        if self._state_store is not None:
            try:
                await self._state_store.delete(STATE_NAMESPACE, student_id)
            except Exception as e:
                logger.warning("memory_lane_delete_failed", student_id=student_id, error=str(e))
        logger.info("student_memory_deleted", student_id=student_id)

    # === INTERNALS ===

    def _manager(self, student_id: str) -> SpacedRepetitionManager:
        manager = self._repetition.get(student_id)
        if manager is None:
            manager = SpacedRepetitionManager(self._repetition_settings)
            self._repetition[student_id] = manager
        return manager

    def _mastery_info(self, student_id: str, subject: Subject | None) -> list[TopicMastery]:
        topics = self._manager(student_id).get_all()
        if subject is None:
            return topics
        return [m for m in topics if m.subject == subject]

    def _add_to_cache(self, student_id: str, memories: list[LearningMemory]) -> None:
        by_id = {m.id: m for m in self._cache.get(student_id, [])}
        by_id.update((m.id, m) for m in memories)
        self._cache[student_id] = self._trim(list(by_id.values()))

    def _trim(self, memories: list[LearningMemory]) -> list[LearningMemory]:
        limit = self._settings.max_memories_per_student
        if len(memories) <= limit:
            return memories
        # Keep the most confident, newest first among equals
        ranked = sorted(memories, key=lambda m: (m.confidence, m.created_at), reverse=True)
        return ranked[:limit]

    def _apply_export(self, data: StudentMemoryExport) -> None:
        self._cache[data.student_id] = self._trim(list(data.memories))
        self._manager(data.student_id).import_all(data.mastery)
        self._burnout.import_history(data.student_id, data.emotion_history)

    async def _ensure_loaded(self, student_id: str) -> None:
        if student_id in self._loaded:
            return
        self._loaded.add(student_id)
        if self._state_store is None:
            return
        try:
            raw = await self._state_store.get(STATE_NAMESPACE, student_id)
        except Exception as e:
            logger.warning("memory_lane_load_failed", student_id=student_id, error=str(e))
            return
        if raw is None:
            return
        try:
            self._apply_export(StudentMemoryExport.model_validate(raw))
        except ValidationError as e:
            logger.warning("memory_lane_state_invalid", student_id=student_id, error=str(e))

    async def _persist(self, student_id: str) -> None:
        if self._state_store is None:
            return
        snapshot = StudentMemoryExport(
            student_id=student_id,
            memories=self._cache.get(student_id, []),
            mastery=self._manager(student_id).export_all(),
            emotion_history=self._burnout.export_history(student_id),
            exported_at=dates.now(),
        )
        try:
            await self._state_store.set(
                STATE_NAMESPACE, student_id, snapshot.model_dump(mode="json")
            )
        except Exception as e:
            logger.warning("memory_lane_persist_failed", student_id=student_id, error=str(e))
