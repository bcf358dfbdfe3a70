"""Topic mastery models for questy_coach.

These models hold the SM-2 spaced-repetition state of each topic.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from questy_coach.models.memory import Subject

__all__ = [
    "SubjectStats",
    "TopicMastery",
]


class TopicMastery(BaseModel, frozen=True):
    """Spaced-repetition state of one topic for one student.

    Attributes:
        topic_id: Topic identifier (unique per student)
        subject: Subject the topic belongs to
        mastery_score: Exponential moving average of 2 * quality (0 - 10)
        easiness_factor: SM-2 easiness factor (never below 1.3)
        interval: Days until the next review
        repetitions: Consecutive successful reviews
        next_review_date: When the topic is due again
        last_review_date: Last review time
        total_attempts: Number of recorded reviews
        successful_attempts: Reviews with quality >= 3
    """

    topic_id: str
    subject: Subject = Subject.GENERAL
    mastery_score: float = Field(default=0.0, ge=0.0, le=10.0)
    easiness_factor: float = Field(default=2.5, ge=1.3)
    interval: int = Field(default=1, ge=1)
    repetitions: int = Field(default=0, ge=0)
    next_review_date: datetime
    last_review_date: datetime
    total_attempts: int = Field(default=0, ge=0)
    successful_attempts: int = Field(default=0, ge=0)

    @property
    def success_rate(self) -> float:
        if self.total_attempts == 0:
            return 0.0
        return self.successful_attempts / self.total_attempts


class SubjectStats(BaseModel, frozen=True):
    """Aggregated mastery for one subject."""

    subject: Subject
    average_mastery: float = 0.0
    total_topics: int = 0
    mastered_topics: int = 0
    struggling_topics: int = 0
