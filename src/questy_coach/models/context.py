"""Memory context models for questy_coach.

These models carry what MemoryLane hands to a handler and what it
exports for a student.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from questy_coach.models.burnout import BurnoutIndicator, EmotionRecord
from questy_coach.models.mastery import TopicMastery
from questy_coach.models.memory import LearningMemory, RetrievedMemory

__all__ = [
    "MemoryContext",
    "StudentMemoryExport",
]


class MemoryContext(BaseModel, frozen=True):
    """Everything a handler needs to personalize a reply."""

    relevant_memories: list[RetrievedMemory] = Field(default_factory=list)
    mastery_info: list[TopicMastery] = Field(default_factory=list)
    burnout_status: BurnoutIndicator | None = None
    review_due: list[TopicMastery] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return (
            not self.relevant_memories
            and not self.mastery_info
            and not self.review_due
            and self.burnout_status is None
        )


class StudentMemoryExport(BaseModel, frozen=True):
    """Portable snapshot of one student's memory lane state."""

    student_id: str
    memories: list[LearningMemory] = Field(default_factory=list)
    mastery: list[TopicMastery] = Field(default_factory=list)
    emotion_history: list[EmotionRecord] = Field(default_factory=list)
    exported_at: datetime
