"""Learning memory models for questy_coach.

These models represent observed facts about a student's learning,
the inputs to memory extraction and retrieval scoring.
"""

from datetime import datetime
from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, Field

__all__ = [
    "ConversationMessage",
    "Emotion",
    "LearningMemory",
    "MemoryExtractionRequest",
    "MemorySearchFilters",
    "MemoryType",
    "QueryIntent",
    "RetrievedMemory",
    "ScoreBreakdown",
    "Subject",
]


class MemoryType(StrEnum):
    """Category of a learning memory."""

    CORRECTION = "CORRECTION"
    DECISION = "DECISION"
    INSIGHT = "INSIGHT"
    PATTERN = "PATTERN"
    GAP = "GAP"
    LEARNING = "LEARNING"
    MASTERY = "MASTERY"
    STRUGGLE = "STRUGGLE"
    WRONG_ANSWER = "WRONG_ANSWER"
    STRATEGY = "STRATEGY"
    PREFERENCE = "PREFERENCE"
    EMOTION = "EMOTION"
    PLAN_PERFORMANCE = "PLAN_PERFORMANCE"
    REVIEW_PATTERN = "REVIEW_PATTERN"


class Subject(StrEnum):
    """School subject a memory, topic or quest belongs to."""

    KOREAN = "KOREAN"
    MATH = "MATH"
    ENGLISH = "ENGLISH"
    SCIENCE = "SCIENCE"
    SOCIAL = "SOCIAL"
    GENERAL = "GENERAL"


class Emotion(StrEnum):
    """Emotional signal observed in a conversation."""

    CONFIDENT = "CONFIDENT"
    CONFUSED = "CONFUSED"
    FRUSTRATED = "FRUSTRATED"
    CURIOUS = "CURIOUS"
    TIRED = "TIRED"
    MOTIVATED = "MOTIVATED"
    NEUTRAL = "NEUTRAL"


class QueryIntent(StrEnum):
    """What a retrieval query is looking for."""

    RECALL_MISTAKES = "RECALL_MISTAKES"
    FIND_PATTERNS = "FIND_PATTERNS"
    CHECK_PROGRESS = "CHECK_PROGRESS"
    REVIEW_DECISIONS = "REVIEW_DECISIONS"
    GENERAL_SEARCH = "GENERAL_SEARCH"


class LearningMemory(BaseModel, frozen=True):
    """One observed fact about a student's learning.

    Attributes:
        id: Deterministic memory ID
        type: Memory category
        subject: Subject the memory belongs to
        topic: Topic or unit name
        title: Short summary shown in prompts
        content: Original message content
        confidence: Extraction confidence (0.0 - 1.0)
        difficulty: Perceived difficulty (1 - 5)
        mastery_score: Mastery at creation time (0 - 10)
        times_observed: How often this fact was observed
        recall_count: How often it was recalled into a prompt
        positive_feedback: Helpful votes
        negative_feedback: Unhelpful votes
        created_at: Extraction time
        last_recalled: Last recall time (drives recency)
        emotion_at_creation: Emotion detected alongside the memory
        source_conversation_id: Conversation the memory came from
        tags: Free-form tags (detected subjects)
        schema_version: Schema version for forward compatibility
    """

    id: str
    type: MemoryType
    subject: Subject = Subject.GENERAL
    topic: str = "general"
    title: str
    content: str
    confidence: float = Field(ge=0.0, le=1.0)
    difficulty: int = Field(default=3, ge=1, le=5)
    mastery_score: float = Field(default=0.0, ge=0.0, le=10.0)
    times_observed: int = Field(default=1, ge=0)
    recall_count: int = Field(default=0, ge=0)
    positive_feedback: int = Field(default=0, ge=0)
    negative_feedback: int = Field(default=0, ge=0)
    created_at: datetime
    last_recalled: datetime
    emotion_at_creation: Emotion = Emotion.NEUTRAL
    source_conversation_id: str | None = None
    tags: list[str] = Field(default_factory=list)
    schema_version: int = Field(default=1)

    def embedding_text(self) -> str:
        """Text used for embedding, so structural tags influence retrieval."""
        return (
            f"[{self.type}] Title: {self.title} Subject: {self.subject} "
            f"Topic: {self.topic} Content: {self.content}"
        )


class MemorySearchFilters(BaseModel, frozen=True):
    """Metadata filters for similarity search."""

    subject: Subject | None = None
    types: list[MemoryType] | None = None
    min_confidence: float | None = Field(default=None, ge=0.0, le=1.0)

    def matches(self, memory: LearningMemory) -> bool:
        """Check a memory against all set filters."""
        if self.subject is not None and memory.subject != self.subject:
            return False
        if self.types and memory.type not in self.types:
            return False
        if self.min_confidence is not None and memory.confidence < self.min_confidence:
            return False
        return True


class ScoreBreakdown(BaseModel, frozen=True):
    """Weighted contribution of each re-ranking factor."""

    semantic: float = 0.0
    recency: float = 0.0
    confidence: float = 0.0
    type_boost: float = 0.0
    subject_match: float = 0.0
    urgency: float = 0.0

    @property
    def total(self) -> float:
        return (
            self.semantic
            + self.recency
            + self.confidence
            + self.type_boost
            + self.subject_match
            + self.urgency
        )


class RetrievedMemory(BaseModel, frozen=True):
    """A memory with its final retrieval score."""

    memory: LearningMemory
    retrieval_score: float = Field(ge=0.0, le=1.0)
    score_breakdown: ScoreBreakdown
    query_intent: QueryIntent = QueryIntent.GENERAL_SEARCH


class ConversationMessage(BaseModel, frozen=True):
    """One message of a conversation handed to memory extraction."""

    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime


class MemoryExtractionRequest(BaseModel, frozen=True):
    """Conversation slice to mine for learning memories."""

    conversation_id: str
    messages: list[ConversationMessage]
    current_subject: Subject | None = None
    current_emotion: Emotion | None = None
    recent_topics: list[str] = Field(default_factory=list)
