"""Burnout models for questy_coach."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from questy_coach.models.memory import Emotion

__all__ = [
    "BurnoutIndicator",
    "BurnoutLevel",
    "EmotionRecord",
    "EmotionTrend",
    "StudyAdvice",
    "StudyRecommendation",
]


class BurnoutLevel(StrEnum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class EmotionTrend(StrEnum):
    IMPROVING = "IMPROVING"
    STABLE = "STABLE"
    DECLINING = "DECLINING"


class StudyRecommendation(StrEnum):
    CONTINUE = "CONTINUE"
    TAKE_BREAK = "TAKE_BREAK"
    STOP_TODAY = "STOP_TODAY"


class EmotionRecord(BaseModel, frozen=True):
    """A single observed emotion."""

    emotion: Emotion
    timestamp: datetime


class BurnoutIndicator(BaseModel, frozen=True):
    """Burnout assessment derived from the recent emotion window.

    Attributes:
        student_id: Assessed student
        level: LOW, MEDIUM or HIGH
        score: Weighted burnout score (0.0 - 1.0)
        recent_emotions: Last 10 emotion records
        warning_signals: Human-readable warning lines
        coping_strategies: Suggestions matching the level
        last_assessed_at: Assessment time
    """

    student_id: str
    level: BurnoutLevel
    score: float = Field(default=0.0, ge=0.0, le=1.0)
    recent_emotions: list[EmotionRecord] = Field(default_factory=list)
    warning_signals: list[str] = Field(default_factory=list)
    coping_strategies: list[str] = Field(default_factory=list)
    last_assessed_at: datetime


class StudyAdvice(BaseModel, frozen=True):
    """Whether the student should keep studying right now."""

    should_continue: bool
    recommendation: StudyRecommendation
    reason: str
