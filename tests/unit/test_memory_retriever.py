"""Unit tests for memory re-ranking."""

from datetime import datetime, timedelta

import pytest

from questy_coach.config import RetrievalSettings
from questy_coach.models.memory import LearningMemory, MemoryType, QueryIntent, Subject
from questy_coach.services.memory_retriever import MemoryRetriever, ReRankingWeights


def _memory(memory_id: str, now: datetime, **overrides: object) -> LearningMemory:
    fields = {
        "id": memory_id,
        "type": MemoryType.LEARNING,
        "subject": Subject.GENERAL,
        "topic": "general",
        "title": f"memory {memory_id}",
        "content": "some learning note",
        "confidence": 0.6,
        "created_at": now,
        "last_recalled": now,
    }
    fields.update(overrides)
    return LearningMemory(**fields)


class TestScoring:
    """Tests for the six-factor score."""

    def test_full_breakdown(self, sample_memory: LearningMemory, now: datetime) -> None:
        retriever = MemoryRetriever()

        results = retriever.retrieve(
            "show my mistakes",
            [sample_memory],
            {sample_memory.id: 0.8},
            current_subject=Subject.MATH,
            urgent_topics={"quadratic"},
            now=now,
        )

        assert len(results) == 1
        breakdown = results[0].score_breakdown
        assert results[0].query_intent == QueryIntent.RECALL_MISTAKES
        assert breakdown.semantic == pytest.approx(0.36)
        assert breakdown.recency == pytest.approx((1 - 2 / 30) * 0.10)
        assert breakdown.confidence == pytest.approx(0.08)
        assert breakdown.type_boost == pytest.approx(0.15)
        assert breakdown.subject_match == pytest.approx(0.10)
        assert breakdown.urgency == pytest.approx(0.10)
        assert results[0].retrieval_score == pytest.approx(breakdown.total)

    def test_subject_match_contributes(self, sample_memory: LearningMemory, now: datetime) -> None:
        retriever = MemoryRetriever()
        scores = {sample_memory.id: 0.8}

        math = retriever.retrieve("quadratic", [sample_memory], scores, Subject.MATH, now=now)
        english = retriever.retrieve("quadratic", [sample_memory], scores, Subject.ENGLISH, now=now)

        assert math[0].score_breakdown.subject_match == pytest.approx(0.10)
        assert english[0].score_breakdown.subject_match == 0.0
        assert math[0].retrieval_score > english[0].retrieval_score

    def test_score_is_monotonic_in_semantic_similarity(self, now: datetime) -> None:
        retriever = MemoryRetriever()
        memory = _memory("m1", now)

        previous = -1.0
        for semantic in (0.0, 0.2, 0.4, 0.6, 0.8, 1.0):
            breakdown = retriever.score(memory, semantic, frozenset(), None, set(), now)
            assert breakdown.total >= previous
            previous = breakdown.total

    def test_recency_decays_to_zero(self, now: datetime) -> None:
        retriever = MemoryRetriever()
        fresh = _memory("fresh", now)
        stale = _memory("stale", now, last_recalled=now - timedelta(days=45))

        assert retriever.score(fresh, 0.5, frozenset(), None, set(), now).recency == 0.10
        assert retriever.score(stale, 0.5, frozenset(), None, set(), now).recency == 0.0

    def test_score_is_capped_at_one(self, sample_memory: LearningMemory, now: datetime) -> None:
        retriever = MemoryRetriever()
        retriever.update_weights(semantic=2.0)

        results = retriever.retrieve("mistakes", [sample_memory], {sample_memory.id: 1.0}, now=now)

        assert results[0].retrieval_score == 1.0


class TestRetrieve:
    """Tests for filtering, ordering and limits."""

    def test_low_scores_are_dropped(self, now: datetime) -> None:
        stale = _memory("stale", now, last_recalled=now - timedelta(days=60))

        assert MemoryRetriever().retrieve("anything", [stale], {}, now=now) == []

    def test_sorted_best_first_and_limited(self, now: datetime) -> None:
        retriever = MemoryRetriever(RetrievalSettings(max_results=2))
        candidates = [_memory(f"m{i}", now) for i in range(5)]
        scores = {f"m{i}": i / 5 for i in range(5)}

        results = retriever.retrieve("anything", candidates, scores, now=now)

        assert [r.memory.id for r in results] == ["m4", "m3"]

    def test_missing_semantic_score_counts_as_zero(self, now: datetime) -> None:
        memory = _memory("m1", now, type=MemoryType.WRONG_ANSWER, confidence=1.0)

        results = MemoryRetriever().retrieve("my mistakes", [memory], {}, now=now)

        assert results[0].score_breakdown.semantic == 0.0


class TestQueryIntent:
    """Tests for query intent detection."""

    @pytest.mark.parametrize(
        ("query", "intent"),
        [
            ("어디서 틀렸지?", QueryIntent.RECALL_MISTAKES),
            ("where did I go wrong", QueryIntent.RECALL_MISTAKES),
            ("which strategy works for me", QueryIntent.FIND_PATTERNS),
            ("show my progress", QueryIntent.CHECK_PROGRESS),
            ("what did I decide last week", QueryIntent.REVIEW_DECISIONS),
            ("hello", QueryIntent.GENERAL_SEARCH),
        ],
    )
    def test_detect_query_intent(self, query: str, intent: QueryIntent) -> None:
        assert MemoryRetriever().detect_query_intent(query) == intent

    def test_type_boost_follows_intent(self, now: datetime) -> None:
        retriever = MemoryRetriever()
        strategy = _memory("s", now, type=MemoryType.STRATEGY)

        boosted = retriever.retrieve("which strategy works", [strategy], {"s": 0.5}, now=now)
        plain = retriever.retrieve("hello", [strategy], {"s": 0.5}, now=now)

        assert boosted[0].score_breakdown.type_boost == pytest.approx(0.15)
        assert plain[0].score_breakdown.type_boost == 0.0


class TestWeights:
    """Tests for runtime weight updates."""

    def test_defaults(self) -> None:
        assert MemoryRetriever().get_weights() == ReRankingWeights()

    def test_update_weights(self) -> None:
        retriever = MemoryRetriever()
        retriever.update_weights(semantic=0.5, urgency=0.05)

        weights = retriever.get_weights()
        assert weights.semantic == 0.5
        assert weights.urgency == 0.05
        assert weights.recency == 0.10

    def test_unknown_weight_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            MemoryRetriever().update_weights(popularity=0.3)

    def test_negative_weight_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            MemoryRetriever().update_weights(semantic=-0.1)
