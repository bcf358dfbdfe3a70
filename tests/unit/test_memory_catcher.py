"""Unit tests for learning memory extraction."""

from datetime import datetime

import pytest

from questy_coach.models.memory import (
    ConversationMessage,
    Emotion,
    MemoryExtractionRequest,
    MemoryType,
    Subject,
)
from questy_coach.services.memory_catcher import LearningMemoryCatcher


def _request(*contents: str, subject: Subject | None = None) -> MemoryExtractionRequest:
    return MemoryExtractionRequest(
        conversation_id="conv-1",
        messages=[
            ConversationMessage(role="user", content=c, timestamp=datetime(2025, 3, 12, 10, 0))
            for c in contents
        ],
        current_subject=subject,
    )


class TestLearningMemoryCatcher:
    """Tests for LearningMemoryCatcher."""

    def test_extract_from_user_messages_only(
        self,
        sample_extraction_request: MemoryExtractionRequest,
        now: datetime,
    ) -> None:
        memories = LearningMemoryCatcher().extract("student-1", sample_extraction_request, now)

        assert len(memories) == 1
        memory = memories[0]
        assert memory.type == MemoryType.GAP
        assert memory.subject == Subject.MATH  # from the request hint
        assert memory.emotion_at_creation == Emotion.CONFUSED
        assert memory.topic == "quadratic"
        assert abs(memory.confidence - 0.75) < 1e-9
        assert memory.title.startswith("⚠️ Gap: I got the quadratic formula")
        assert memory.title.endswith("...")
        assert memory.created_at == now
        assert memory.source_conversation_id == "conv-1"

    def test_ids_are_deterministic(
        self,
        sample_extraction_request: MemoryExtractionRequest,
        now: datetime,
    ) -> None:
        catcher = LearningMemoryCatcher()

        first = catcher.extract("student-1", sample_extraction_request, now)
        second = catcher.extract("student-1", sample_extraction_request, now)
        other = catcher.extract("student-2", sample_extraction_request, now)

        assert first[0].id == second[0].id
        assert first[0].id != other[0].id

    def test_korean_struggle(self, now: datetime) -> None:
        memories = LearningMemoryCatcher().extract(
            "student-1", _request("수학 방정식 문제 너무 어려워"), now
        )

        assert len(memories) == 1
        memory = memories[0]
        assert memory.type == MemoryType.STRUGGLE
        assert memory.subject == Subject.MATH
        assert memory.topic == "방정식"
        assert memory.difficulty == 4
        assert memory.tags == ["math"]
        assert memory.emotion_at_creation == Emotion.NEUTRAL

    def test_no_signal_yields_nothing(self, now: datetime) -> None:
        assert LearningMemoryCatcher().extract("student-1", _request("hello there"), now) == []

    def test_min_confidence_filters(
        self,
        sample_extraction_request: MemoryExtractionRequest,
        now: datetime,
    ) -> None:
        strict = LearningMemoryCatcher(min_confidence=0.95)
        assert strict.extract("student-1", sample_extraction_request, now) == []

    def test_first_matching_type_wins(self) -> None:
        catcher = LearningMemoryCatcher()

        # Matches both CORRECTION and WRONG_ANSWER
        assert catcher.detect_memory_type("I corrected my wrong answer") == MemoryType.CORRECTION
        assert catcher.detect_memory_type("I made a mistake") == MemoryType.WRONG_ANSWER


class TestScoringHelpers:
    """Tests for confidence, difficulty and title helpers."""

    def test_confidence_formula(self) -> None:
        catcher = LearningMemoryCatcher()

        assert catcher.calculate_confidence("confusing", MemoryType.GAP) == pytest.approx(0.7)
        long_text = "I don't get it and I'm confused, I'm weak at this " * 3
        # 3 matches capped at +0.2, plus both length bonuses, capped at 0.9
        assert catcher.calculate_confidence(long_text, MemoryType.GAP) == 0.9

    def test_difficulty_is_clamped(self) -> None:
        catcher = LearningMemoryCatcher()

        assert catcher.estimate_difficulty("this is very hard") == 5
        assert catcher.estimate_difficulty("very easy and basic") == 1
        assert catcher.estimate_difficulty("a normal problem") == 3

    def test_title_truncation(self) -> None:
        catcher = LearningMemoryCatcher()

        assert catcher.generate_title("short", MemoryType.INSIGHT) == "💡 Insight: short"
        title = catcher.generate_title("x" * 40, MemoryType.INSIGHT)
        assert title == "💡 Insight: " + "x" * 30 + "..."

    def test_topic_defaults_to_general(self) -> None:
        assert LearningMemoryCatcher().extract_topic("nothing here") == "general"

    def test_tags_are_lowercase_subjects(self) -> None:
        tags = LearningMemoryCatcher().extract_tags("physics and algebra homework")
        assert tags == ["math", "science"]
