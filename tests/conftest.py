"""Shared test fixtures for questy_coach.

This module provides pytest fixtures used across all tests.
"""

from datetime import datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from questy_coach.models.memory import (
    ConversationMessage,
    Emotion,
    LearningMemory,
    MemoryExtractionRequest,
    MemoryType,
    Subject,
)
from questy_coach.models.plan import StudyPlan, StudySession

# Wednesday
NOW = datetime(2025, 3, 12, 10, 0)


# Mock fixtures
@pytest.fixture
def mock_llm() -> AsyncMock:
    """Create mock LLM interface."""
    llm = AsyncMock()
    llm.complete.return_value = "Great start today! Keep the streak going 💪"
    return llm


@pytest.fixture
def mock_embedding() -> AsyncMock:
    """Create mock embedding interface."""
    embedding = AsyncMock()
    embedding.embed.return_value = [0.1] * 768
    embedding.embed_batch.return_value = [[0.1] * 768, [0.2] * 768]
    embedding.similarity.return_value = 0.95
    return embedding


@pytest.fixture
def mock_state_store() -> AsyncMock:
    """Create mock state store interface."""
    store = AsyncMock()
    store.get.return_value = None
    store.set.return_value = True
    store.delete.return_value = True
    return store


@pytest.fixture
def mock_backend() -> AsyncMock:
    """Create mock vector backend interface."""
    backend = AsyncMock()
    backend.search_similar.return_value = []
    backend.get_all.return_value = []
    backend.delete.return_value = False
    backend.delete_all.return_value = 0
    return backend


# Sample data fixtures
@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def sample_memory() -> LearningMemory:
    """Create sample LearningMemory."""
    return LearningMemory(
        id="mem-quadratic-1",
        type=MemoryType.WRONG_ANSWER,
        subject=Subject.MATH,
        topic="quadratic",
        title="❌ Wrong: sign error in quadratic formula",
        content="I got the quadratic formula problem wrong because of a sign error",
        confidence=0.8,
        difficulty=4,
        created_at=NOW - timedelta(days=2),
        last_recalled=NOW - timedelta(days=2),
        emotion_at_creation=Emotion.FRUSTRATED,
        tags=["math"],
    )


@pytest.fixture
def sample_extraction_request() -> MemoryExtractionRequest:
    """Create sample MemoryExtractionRequest."""
    return MemoryExtractionRequest(
        conversation_id="conv-1",
        messages=[
            ConversationMessage(
                role="user",
                content="I got the quadratic formula problem wrong again, the sign is so confusing",
                timestamp=NOW,
            ),
            ConversationMessage(
                role="assistant",
                content="Let's check the discriminant step together.",
                timestamp=NOW,
            ),
        ],
        current_subject=Subject.MATH,
    )


@pytest.fixture
def sample_plan() -> StudyPlan:
    """Create sample StudyPlan with pending sessions."""
    return StudyPlan(
        id="plan-math",
        student_id="student-1",
        subject=Subject.MATH,
        title="Algebra Basics",
        start_date=NOW - timedelta(days=10),
        target_end_date=NOW + timedelta(days=20),
        completed_sessions=3,
        total_sessions=10,
        sessions=[
            StudySession(id="s-4", plan_id="plan-math", order=4, topic="Quadratic equations"),
            StudySession(
                id="s-5", plan_id="plan-math", order=5, topic="Inequalities", estimated_minutes=40
            ),
        ],
    )
